"""Conformance case definitions.

Each case receives a CaseContext and raises on failure:
- VerificationError when the server's response breaks the S3 contract
- RequestBuildError when a request cannot be built
- httpx.HTTPError when the request cannot be delivered

The runner turns those into FAIL / ERROR results. A case that returns
normally has passed.

Cases run in CASES order. MakeBucket and PutObject create the
harness-owned fixtures that the later cases read and finally remove. When
they are not selected, the runner's setup phase (lifecycle.py) creates them.
"""

import io
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from s3verify.builder import (
    new_get_object_range_request,
    new_get_object_request,
    new_list_buckets_request,
    new_make_bucket_request,
    new_put_object_request,
    new_remove_bucket_request,
    new_remove_object_request,
)
from s3verify.client import ServerConfig, execute
from s3verify.errors import ErrorResponse, no_such_bucket, no_such_key
from s3verify.fixtures import FixtureContext, FixtureSet, random_string
from s3verify.hashing import compute_hash
from s3verify.verify import (
    VerificationError,
    get_object_verify,
    list_buckets_verify,
    make_bucket_verify,
    put_object_verify,
    remove_bucket_verify,
    remove_object_verify,
)

# Length of the random name used for a bucket that does not exist
MISSING_BUCKET_NAME_LENGTH = 60


@dataclass
class CaseContext:
    """Everything a case may use; nothing else is shared between cases."""

    config: ServerConfig
    seq: int
    total: int
    fixtures: FixtureContext
    rng: random.Random


@dataclass
class ConformanceCase:
    """A named case bound to its implementation."""

    name: str
    command: str
    func: Callable[[CaseContext], None]


def _require_objects(fixtures: FixtureSet) -> None:
    if not fixtures.objects:
        raise VerificationError("No objects available to test against")


def _require_buckets(fixtures: FixtureSet) -> None:
    if not fixtures.buckets:
        raise VerificationError("No buckets available to test against")


# === BUCKET CASES ===

def make_bucket(ctx: CaseContext) -> None:
    """Create every harness-owned bucket; S3 answers 200."""
    owned = ctx.fixtures.owned
    _require_buckets(owned)

    for bucket in owned.buckets:
        req = new_make_bucket_request(bucket.name, ctx.config.region_name)
        with execute(ctx.config, "PUT", req) as res:
            make_bucket_verify(res, bucket.name, 200, ErrorResponse())
        bucket.created = datetime.now(timezone.utc)


def list_buckets(ctx: CaseContext) -> None:
    """Every selected bucket must appear in the service listing."""
    selected = ctx.fixtures.select()

    req = new_list_buckets_request()
    with execute(ctx.config, "GET", req) as res:
        list_buckets_verify(res, selected.bucket_names(), 200)


def remove_bucket_exists(ctx: CaseContext) -> None:
    """Remove the harness-owned buckets, newest first; each must give 204."""
    owned = ctx.fixtures.owned
    _require_buckets(owned)

    for bucket in owned.buckets_for_removal():
        req = new_remove_bucket_request(bucket.name)
        with execute(ctx.config, "DELETE", req) as res:
            remove_bucket_verify(res, 204, ErrorResponse(), bucket.name)


def remove_bucket_missing(ctx: CaseContext) -> None:
    """DELETE on a bucket that was never created must give 404 NoSuchBucket."""
    bucket_name = random_string(ctx.rng, MISSING_BUCKET_NAME_LENGTH)
    expected = no_such_bucket(bucket_name)

    req = new_remove_bucket_request(bucket_name)
    with execute(ctx.config, "DELETE", req) as res:
        remove_bucket_verify(res, 404, expected, bucket_name)


# === OBJECT CASES ===

def put_object(ctx: CaseContext) -> None:
    """Upload the harness-owned objects; the ETag must be the body's MD5."""
    owned = ctx.fixtures.owned
    _require_objects(owned)

    for obj in owned.objects:
        req = new_put_object_request(obj.bucket_name, obj.key, obj.body)
        expected_etag = md5_hex(obj.body)
        with execute(ctx.config, "PUT", req) as res:
            put_object_verify(res, expected_etag, 200)


def get_object(ctx: CaseContext) -> None:
    """Full GET of each selected object must return 200 and the whole body."""
    selected = ctx.fixtures.select()
    _require_objects(selected)

    for obj in selected.objects:
        req = new_get_object_request(obj.bucket_name, obj.key)
        with execute(ctx.config, "GET", req) as res:
            get_object_verify(res, obj.body, 200)


def get_object_range(ctx: CaseContext) -> None:
    """Ranged GET of a random slice of each object must return 206 and the slice."""
    selected = ctx.fixtures.select()
    _require_objects(selected)

    readable = [obj for obj in selected.objects if obj.size > 0]
    if not readable:
        raise VerificationError("No non-empty objects to range-read")

    for obj in readable:
        start_range, end_range = pick_range(ctx.rng, obj.size)
        req = new_get_object_range_request(obj.bucket_name, obj.key, start_range, end_range)
        expected_body = obj.body[start_range:end_range + 1]
        with execute(ctx.config, "GET", req) as res:
            get_object_verify(res, expected_body, 206)


def get_object_missing_key(ctx: CaseContext) -> None:
    """GET of a key that does not exist must give 404 NoSuchKey."""
    selected = ctx.fixtures.select()
    _require_buckets(selected)

    bucket_name = selected.primary_bucket.name
    object_name = "s3verify/" + random_string(ctx.rng, 32)
    expected = no_such_key(bucket_name, object_name)

    req = new_get_object_request(bucket_name, object_name)
    with execute(ctx.config, "GET", req) as res:
        get_object_verify(res, None, 404, expected, bucket_name, object_name)


def remove_object(ctx: CaseContext) -> None:
    """Remove the harness-owned objects; each DELETE must give 204."""
    owned = ctx.fixtures.owned
    _require_objects(owned)

    for obj in owned.objects:
        req = new_remove_object_request(obj.bucket_name, obj.key)
        with execute(ctx.config, "DELETE", req) as res:
            remove_object_verify(res, 204)


# === HELPERS ===

def pick_range(rng: random.Random, size: int) -> tuple[int, int]:
    """Pick an inclusive byte range with ``0 <= start <= end < size``."""
    start_range = rng.randrange(size)
    end_range = rng.randrange(start_range, size)
    return start_range, end_range


def md5_hex(body: bytes) -> str:
    return compute_hash(io.BytesIO(body)).md5_hex


CASES = [
    ConformanceCase("MakeBucket", "makebucket", make_bucket),
    ConformanceCase("PutObject", "putobject", put_object),
    ConformanceCase("ListBuckets", "listbuckets", list_buckets),
    ConformanceCase("GetObject", "getobject", get_object),
    ConformanceCase("GetObject (Range)", "getobject", get_object_range),
    ConformanceCase("GetObject (Key DNE)", "getobject", get_object_missing_key),
    ConformanceCase("RemoveObject", "removeobject", remove_object),
    ConformanceCase("RemoveBucket (Bucket Exists)", "removebucket", remove_bucket_exists),
    ConformanceCase("RemoveBucket (Bucket DNE)", "removebucket", remove_bucket_missing),
]

COMMANDS = sorted({case.command for case in CASES})


def select_cases(commands: list[str]) -> list[ConformanceCase]:
    """Cases for the given commands, in run order; all cases if none given."""
    if not commands:
        return list(CASES)
    return [case for case in CASES if case.command in commands]
