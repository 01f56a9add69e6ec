"""Bucket and object fixtures.

Two collections are tracked side by side:

- prepared: buckets and objects the harness creates and owns during the run.
  Cases that create or delete things only ever touch this set.
- unprepared: buckets and objects that already exist on the server, described
  by a JSON manifest. They are read, never mutated, and outlive the run.

Read-only cases exercise whichever set the run's prepare mode selects.

Manifest format::

    {
        "buckets": [
            {
                "name": "existing-bucket",
                "objects": [{"key": "obj1", "path": "data/obj1.bin"}]
            }
        ]
    }

Object paths are relative to the manifest. The local file is the oracle for
the remote object's content.
"""

import json
import random
import string
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from s3verify.config import ConfigError
from s3verify.models import BucketInfo, ObjectInfo

# Characters allowed in generated bucket names
BUCKET_NAME_ALPHABET = string.ascii_lowercase + string.digits

BUCKET_PREFIX = "s3verify-"

DEFAULT_BUCKET_COUNT = 2
DEFAULT_OBJECT_COUNT = 3
MIN_OBJECT_SIZE = 1
MAX_OBJECT_SIZE = 64 * 1024


@dataclass
class FixtureSet:
    """Ordered buckets plus the objects stored in them."""

    buckets: list[BucketInfo] = field(default_factory=list)
    objects: list[ObjectInfo] = field(default_factory=list)

    @property
    def primary_bucket(self) -> Optional[BucketInfo]:
        return self.buckets[0] if self.buckets else None

    def bucket_names(self) -> list[str]:
        return [bucket.name for bucket in self.buckets]

    def buckets_for_removal(self) -> list[BucketInfo]:
        """Buckets ordered newest first; uncreated buckets sort last."""
        created = [b for b in self.buckets if b.created is not None]
        uncreated = [b for b in self.buckets if b.created is None]
        return sorted(created, key=lambda b: b.created, reverse=True) + uncreated


@dataclass
class FixtureContext:
    """Fixtures handed to every conformance case."""

    prepared: FixtureSet
    unprepared: FixtureSet
    prepare_mode: bool = True

    @property
    def owned(self) -> FixtureSet:
        """The harness-owned set, the only one cases may mutate."""
        return self.prepared

    def select(self) -> FixtureSet:
        """The set read-only cases exercise in this run."""
        return self.prepared if self.prepare_mode else self.unprepared


def random_string(rng: random.Random, length: int, prefix: str = "") -> str:
    """Generate a bucket-safe name of exactly ``length`` characters.

    The prefix counts towards the length.
    """
    if length <= len(prefix):
        return prefix[:length]
    suffix = "".join(rng.choice(BUCKET_NAME_ALPHABET) for _ in range(length - len(prefix)))
    return prefix + suffix


def new_prepared_fixtures(
    rng: random.Random,
    bucket_count: int = DEFAULT_BUCKET_COUNT,
    object_count: int = DEFAULT_OBJECT_COUNT,
    max_object_size: int = MAX_OBJECT_SIZE,
) -> FixtureSet:
    """Generate harness-owned bucket names and objects with random content.

    All objects go into the first bucket; the rest stay empty so they can
    be removed directly.
    """
    buckets = [
        BucketInfo(name=random_string(rng, 30, BUCKET_PREFIX))
        for _ in range(bucket_count)
    ]

    objects = []
    if buckets:
        for i in range(object_count):
            size = rng.randint(MIN_OBJECT_SIZE, max_object_size)
            objects.append(ObjectInfo(
                key=f"s3verify/object-{i + 1}",
                size=size,
                body=rng.randbytes(size),
                bucket_name=buckets[0].name,
            ))

    return FixtureSet(buckets=buckets, objects=objects)


def load_unprepared_fixtures(manifest_path: str) -> FixtureSet:
    """Load pre-existing fixtures from a JSON manifest.

    Args:
        manifest_path: Path to the manifest file.

    Returns:
        FixtureSet with every object's body read from its local file.

    Raises:
        ConfigError: If the manifest or an object file is missing or invalid.
    """
    path = Path(manifest_path)

    if not path.exists():
        raise ConfigError(f"Fixture manifest not found: {manifest_path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in fixture manifest: {e}") from e

    buckets = data.get("buckets") if isinstance(data, dict) else None
    if not buckets:
        raise ConfigError(f"Fixture manifest has no buckets: {manifest_path}")

    fixtures = FixtureSet()
    for entry in buckets:
        name = entry.get("name")
        if not name:
            raise ConfigError("Fixture bucket is missing 'name'")
        fixtures.buckets.append(BucketInfo(name=name))

        for obj in entry.get("objects", []):
            key = obj.get("key")
            obj_path = obj.get("path")
            if not key or not obj_path:
                raise ConfigError(f"Fixture object in bucket '{name}' needs 'key' and 'path'")

            body_path = path.parent / obj_path
            try:
                body = body_path.read_bytes()
            except OSError as e:
                raise ConfigError(f"Cannot read fixture object '{key}': {e}") from e

            fixtures.objects.append(ObjectInfo(
                key=key,
                size=len(body),
                body=body,
                bucket_name=name,
            ))

    return fixtures
