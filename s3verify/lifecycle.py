"""Setup and teardown of harness-owned fixtures.

The MakeBucket and PutObject cases create the owned buckets and objects as
part of what they test. When a run selects only some commands, the cases
that rely on that state may run without them, so FixtureSetup creates the
missing pieces itself:

- buckets, when a selected case needs them and MakeBucket is not selected
- objects, when a selected case reads or removes them and PutObject is not
  selected (uploaded after MakeBucket if that case is selected)

Objects uploaded here are removed again before RemoveBucket runs, unless
RemoveObject is selected and removes them itself. Anything setup created
that no selected case removes is deleted after the run.

A setup request that fails aborts the run with SetupError. Teardown is best
effort and only logs.
"""

import logging
from datetime import datetime, timezone

import httpx

from s3verify.builder import (
    Request,
    RequestBuildError,
    new_make_bucket_request,
    new_put_object_request,
    new_remove_bucket_request,
    new_remove_object_request,
)
from s3verify.client import ServerConfig, execute
from s3verify.fixtures import FixtureContext

logger = logging.getLogger(__name__)

# Commands whose cases use the owned set whatever the prepare mode
BUCKET_USERS = {"putobject", "removeobject", "removebucket"}
OBJECT_USERS = {"removeobject"}

# Commands that read the owned set only in prepare mode
PREPARED_BUCKET_READERS = {"listbuckets", "getobject"}
PREPARED_OBJECT_READERS = {"getobject"}


class SetupError(Exception):
    """Raised when owned fixtures cannot be created before the cases run."""

    pass


class FixtureSetup:
    """Creates the owned fixtures a case selection relies on.

    Args:
        config: Server under test
        fixtures: Fixtures of the run; only the owned set is touched
        commands: Commands of the selected cases
    """

    def __init__(self, config: ServerConfig, fixtures: FixtureContext, commands):
        self.config = config
        self.fixtures = fixtures
        self.commands = set(commands)

        bucket_users = set(BUCKET_USERS)
        object_users = set(OBJECT_USERS)
        if fixtures.prepare_mode:
            bucket_users |= PREPARED_BUCKET_READERS
            object_users |= PREPARED_OBJECT_READERS

        needs_objects = bool(self.commands & object_users)
        needs_buckets = needs_objects or bool(self.commands & bucket_users)

        self.pending_buckets = needs_buckets and "makebucket" not in self.commands
        self.pending_objects = needs_objects and "putobject" not in self.commands
        self.created_buckets = []
        self.uploaded_objects = []

    @property
    def required(self) -> bool:
        return self.pending_buckets or self.pending_objects

    def before_case(self, command: str) -> None:
        """Bring the owned fixtures into the state the next case expects.

        Raises:
            SetupError: If a setup request fails.
        """
        if self.pending_buckets:
            self._make_buckets()
            self.pending_buckets = False

        if self.pending_objects and command != "makebucket":
            self._put_objects()
            self.pending_objects = False

        if command == "removeobject":
            # The case removes every owned object from here on.
            self.uploaded_objects = []
        elif command == "removebucket" and self.uploaded_objects:
            self._remove_objects()

    def teardown(self) -> None:
        """Delete what setup created and no selected case removed."""
        leftover_buckets = []
        if "removebucket" not in self.commands:
            leftover_buckets = self.created_buckets

        names = {bucket.name for bucket in leftover_buckets}
        leftover_objects = [obj for obj in self.fixtures.owned.objects if obj.bucket_name in names]
        for obj in self.uploaded_objects:
            if obj not in leftover_objects:
                leftover_objects.append(obj)

        for obj in leftover_objects:
            self._delete(new_remove_object_request(obj.bucket_name, obj.key))
        for bucket in leftover_buckets:
            self._delete(new_remove_bucket_request(bucket.name))

        self.uploaded_objects = []
        self.created_buckets = []

    # === SETUP STEPS ===

    def _make_buckets(self) -> None:
        for bucket in self.fixtures.owned.buckets:
            self._send("PUT", 200, new_make_bucket_request, bucket.name, self.config.region_name)
            bucket.created = datetime.now(timezone.utc)
            self.created_buckets.append(bucket)
            logger.info("Setup created bucket %s", bucket.name)

    def _put_objects(self) -> None:
        for obj in self.fixtures.owned.objects:
            self._send("PUT", 200, new_put_object_request, obj.bucket_name, obj.key, obj.body)
            self.uploaded_objects.append(obj)
            logger.info("Setup uploaded %s/%s (%d bytes)", obj.bucket_name, obj.key, obj.size)

    def _remove_objects(self) -> None:
        for obj in self.uploaded_objects:
            self._send("DELETE", 204, new_remove_object_request, obj.bucket_name, obj.key)
        self.uploaded_objects = []

    def _send(self, method: str, expected_status: int, builder, *args) -> None:
        try:
            req = builder(*args)
        except RequestBuildError as e:
            raise SetupError(f"Could not build setup request: {e}") from e

        status_code = execute_status(self.config, method, req)
        if status_code != expected_status:
            raise SetupError(
                f"{method} {describe(req)}: wanted {expected_status}, got {status_code}"
            )

    def _delete(self, req: Request) -> None:
        try:
            status_code = execute_status(self.config, "DELETE", req)
        except SetupError as e:
            logger.warning("Teardown failed: %s", e)
            return
        if status_code not in (204, 404):
            logger.warning("Teardown could not delete %s: status %d", describe(req), status_code)


def describe(req: Request) -> str:
    return "/" + "/".join(filter(None, (req.bucket_name, req.object_name)))


def execute_status(config: ServerConfig, method: str, req: Request) -> int:
    """Send a setup request and return its status code.

    Raises:
        SetupError: If the request cannot be delivered.
    """
    try:
        with execute(config, method, req) as res:
            return res.status_code
    except httpx.HTTPError as e:
        raise SetupError(f"{method} {describe(req)} failed: {e}") from e
