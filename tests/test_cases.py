"""Tests for conformance cases against an in-memory S3 server."""

import random
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import httpx
import pytest

from conftest import FakeS3, make_server_config, standard_headers
from s3verify.cases import (
    CASES,
    COMMANDS,
    MISSING_BUCKET_NAME_LENGTH,
    CaseContext,
    get_object,
    get_object_missing_key,
    get_object_range,
    list_buckets,
    make_bucket,
    md5_hex,
    pick_range,
    put_object,
    remove_bucket_exists,
    remove_bucket_missing,
    remove_object,
    select_cases,
)
from s3verify.fixtures import FixtureContext, FixtureSet
from s3verify.models import BucketInfo, ObjectInfo
from s3verify.verify import VerificationError


def make_ctx(config, fixtures, rng=None) -> CaseContext:
    return CaseContext(
        config=config,
        seq=1,
        total=1,
        fixtures=fixtures,
        rng=rng or random.Random(99),
    )


def seeded_fixtures(fake_s3: FakeS3, body: bytes = b"x" * 100) -> FixtureContext:
    """One existing bucket holding obj1, known to the fake server."""
    fake_s3.buckets["bucket1"] = {"obj1": body}
    fixtures = FixtureSet(
        buckets=[BucketInfo(name="bucket1")],
        objects=[ObjectInfo(key="obj1", size=len(body), body=body, bucket_name="bucket1")],
    )
    return FixtureContext(prepared=fixtures, unprepared=FixtureSet(), prepare_mode=True)


class TestCaseTable:
    """Tests for the ordered case list."""

    def test_run_order(self):
        assert [case.name for case in CASES] == [
            "MakeBucket",
            "PutObject",
            "ListBuckets",
            "GetObject",
            "GetObject (Range)",
            "GetObject (Key DNE)",
            "RemoveObject",
            "RemoveBucket (Bucket Exists)",
            "RemoveBucket (Bucket DNE)",
        ]

    def test_commands(self):
        assert COMMANDS == [
            "getobject", "listbuckets", "makebucket", "putobject", "removebucket", "removeobject",
        ]

    def test_select_all_by_default(self):
        assert select_cases([]) == CASES

    def test_select_keeps_run_order(self):
        selected = select_cases(["removebucket", "getobject"])
        assert [case.name for case in selected] == [
            "GetObject",
            "GetObject (Range)",
            "GetObject (Key DNE)",
            "RemoveBucket (Bucket Exists)",
            "RemoveBucket (Bucket DNE)",
        ]


class TestRemoveBucketCases:
    """Tests for the RemoveBucket cases."""

    def test_missing_bucket_404(self, fake_s3, server_config, fixture_context):
        remove_bucket_missing(make_ctx(server_config, fixture_context))

        sent = fake_s3.requests[0]
        bucket = sent.url.path.strip("/")
        assert sent.method == "DELETE"
        assert len(bucket) == MISSING_BUCKET_NAME_LENGTH

    def test_missing_bucket_without_error_body(self, fixture_context):
        """A 404 with no XML body still matches NoSuchBucket."""
        config = make_server_config(FakeS3(omit_error_bodies=True))
        remove_bucket_missing(make_ctx(config, fixture_context))

    def test_missing_bucket_wrong_status(self, fixture_context):
        config = make_server_config(lambda request: httpx.Response(204, headers=standard_headers()))

        with pytest.raises(VerificationError, match="wanted 404, got 204"):
            remove_bucket_missing(make_ctx(config, fixture_context))

    def test_remove_newest_first(self, fake_s3, server_config):
        now = datetime.now(timezone.utc)
        fake_s3.buckets.update({"older": {}, "newer": {}})
        owned = FixtureSet(buckets=[
            BucketInfo(name="older", created=now - timedelta(seconds=5)),
            BucketInfo(name="newer", created=now),
        ])
        fixtures = FixtureContext(prepared=owned, unprepared=FixtureSet())

        remove_bucket_exists(make_ctx(server_config, fixtures))

        assert [r.url.path for r in fake_s3.requests] == ["/newer", "/older"]
        assert fake_s3.buckets == {}

    def test_remove_non_empty_bucket_fails(self, fake_s3, server_config):
        fixtures = seeded_fixtures(fake_s3)

        with pytest.raises(VerificationError, match="wanted 204, got 409"):
            remove_bucket_exists(make_ctx(server_config, fixtures))


class TestGetObjectCases:
    """Tests for the GetObject cases."""

    def test_full_get(self, fake_s3, server_config):
        get_object(make_ctx(server_config, seeded_fixtures(fake_s3)))

    def test_range_request(self, fake_s3, server_config):
        """obj1 of 100 bytes, range 10-42 gives 33 bytes with status 206."""
        body = bytes(range(100))
        fixtures = seeded_fixtures(fake_s3, body)
        rng = Mock(spec=random.Random)
        rng.randrange.side_effect = [10, 42]

        get_object_range(make_ctx(server_config, fixtures, rng))

        sent = fake_s3.requests[0]
        assert sent.headers["Range"] == "bytes=10-42"
        assert sent.url.path == "/bucket1/obj1"

    def test_range_detects_wrong_slice(self, fake_s3):
        fixtures = seeded_fixtures(fake_s3, bytes(range(100)))

        def wrong_slice(request):
            return httpx.Response(206, headers=standard_headers(), content=bytes(range(33)))

        rng = Mock(spec=random.Random)
        rng.randrange.side_effect = [10, 42]
        config = make_server_config(wrong_slice)

        with pytest.raises(VerificationError, match="content does not match"):
            get_object_range(make_ctx(config, fixtures, rng))

    def test_range_ignores_200(self, fake_s3):
        """A server that ignores Range fails the 206 check."""
        body = bytes(range(100))
        fixtures = seeded_fixtures(fake_s3, body)
        config = make_server_config(
            lambda request: httpx.Response(200, headers=standard_headers(), content=body)
        )

        with pytest.raises(VerificationError, match="wanted 206, got 200"):
            get_object_range(make_ctx(config, fixtures))

    def test_range_with_only_empty_objects_fails(self, fake_s3, server_config):
        fixtures = seeded_fixtures(fake_s3, b"")

        with pytest.raises(VerificationError, match="No non-empty objects to range-read"):
            get_object_range(make_ctx(server_config, fixtures))

        assert fake_s3.requests == []

    def test_range_skips_empty_objects(self, fake_s3, server_config):
        fixtures = seeded_fixtures(fake_s3, b"x" * 10)
        fake_s3.buckets["bucket1"]["empty"] = b""
        fixtures.prepared.objects.insert(0, ObjectInfo(key="empty", size=0, body=b"", bucket_name="bucket1"))

        get_object_range(make_ctx(server_config, fixtures))

        assert [r.url.path for r in fake_s3.requests] == ["/bucket1/obj1"]

    def test_missing_key(self, fake_s3, server_config):
        get_object_missing_key(make_ctx(server_config, seeded_fixtures(fake_s3)))

        assert fake_s3.requests[0].url.path.startswith("/bucket1/s3verify/")

    def test_missing_key_without_error_body(self):
        fake = FakeS3(omit_error_bodies=True)
        config = make_server_config(fake)
        get_object_missing_key(make_ctx(config, seeded_fixtures(fake)))

    def test_unprepared_set_is_read(self, fake_s3, server_config):
        fake_s3.buckets["existing"] = {"k": b"data"}
        unprepared = FixtureSet(
            buckets=[BucketInfo(name="existing")],
            objects=[ObjectInfo(key="k", size=4, body=b"data", bucket_name="existing")],
        )
        fixtures = FixtureContext(prepared=FixtureSet(), unprepared=unprepared, prepare_mode=False)

        get_object(make_ctx(server_config, fixtures))

        assert fake_s3.requests[0].url.path == "/existing/k"

    def test_no_objects_fails(self, server_config):
        fixtures = FixtureContext(prepared=FixtureSet(), unprepared=FixtureSet())

        with pytest.raises(VerificationError, match="No objects"):
            get_object(make_ctx(server_config, fixtures))


class TestLifecycleCases:
    """Create, upload, list and delete harness-owned fixtures."""

    def test_make_bucket_stamps_created(self, fake_s3, server_config, fixture_context):
        make_bucket(make_ctx(server_config, fixture_context))

        for bucket in fixture_context.owned.buckets:
            assert bucket.created is not None
            assert bucket.name in fake_s3.buckets

    def test_make_existing_bucket_fails(self, fake_s3, server_config, fixture_context):
        fake_s3.buckets[fixture_context.owned.buckets[0].name] = {}

        with pytest.raises(VerificationError, match="wanted 200, got 409"):
            make_bucket(make_ctx(server_config, fixture_context))

    def test_put_then_list_then_remove(self, fake_s3, server_config, fixture_context):
        ctx = make_ctx(server_config, fixture_context)

        make_bucket(ctx)
        put_object(ctx)
        primary = fixture_context.owned.primary_bucket.name
        assert len(fake_s3.buckets[primary]) == 3

        list_buckets(ctx)
        remove_object(ctx)
        assert fake_s3.buckets[primary] == {}

        remove_bucket_exists(ctx)
        assert fake_s3.buckets == {}

    def test_list_reports_missing_bucket(self, server_config, fixture_context):
        with pytest.raises(VerificationError, match="Buckets missing from listing"):
            list_buckets(make_ctx(server_config, fixture_context))

    def test_put_object_bad_etag(self, fake_s3, fixture_context):
        def bad_etag(request):
            return httpx.Response(200, headers=standard_headers(ETag='"0000"'))

        config = make_server_config(bad_etag)

        with pytest.raises(VerificationError, match="Unexpected ETag"):
            put_object(make_ctx(config, fixture_context))


class TestHelpers:
    """Tests for pick_range and md5_hex."""

    def test_pick_range_within_object(self):
        rng = random.Random(5)
        for size in (1, 2, 100, 4096):
            start, end = pick_range(rng, size)
            assert 0 <= start <= end < size

    def test_pick_range_single_byte_object(self):
        assert pick_range(random.Random(1), 1) == (0, 0)

    def test_md5_hex(self):
        assert md5_hex(b"") == "d41d8cd98f00b204e9800998ecf8427e"
