"""Tests for request descriptor builders."""

import base64
import hashlib
from unittest.mock import patch

import pytest

from s3verify.builder import (
    APP_USER_AGENT,
    Request,
    RequestBuildError,
    new_get_object_range_request,
    new_get_object_request,
    new_list_buckets_request,
    new_make_bucket_request,
    new_put_object_request,
    new_remove_bucket_request,
    new_remove_object_request,
)

EMPTY_SHA256 = hashlib.sha256(b"").hexdigest()


class TestBodylessRequests:
    """DELETE and GET send no body but still carry the empty-body digest."""

    def test_remove_bucket_request(self):
        req = new_remove_bucket_request("my-bucket")

        assert req.bucket_name == "my-bucket"
        assert req.object_name == ""
        assert req.body == b""
        assert req.custom_headers["X-Amz-Content-Sha256"] == EMPTY_SHA256
        assert req.custom_headers["User-Agent"] == APP_USER_AGENT

    def test_remove_object_request(self):
        req = new_remove_object_request("my-bucket", "obj1")

        assert req.object_name == "obj1"
        assert req.custom_headers["X-Amz-Content-Sha256"] == EMPTY_SHA256

    def test_get_object_request_has_no_range(self):
        req = new_get_object_request("my-bucket", "obj1")

        assert "Range" not in req.custom_headers
        assert req.custom_headers["X-Amz-Content-Sha256"] == EMPTY_SHA256

    def test_list_buckets_targets_service(self):
        req = new_list_buckets_request()

        assert req.bucket_name == ""
        assert req.custom_headers["X-Amz-Content-Sha256"] == EMPTY_SHA256

    def test_no_content_md5_for_empty_body(self):
        req = new_remove_bucket_request("my-bucket")
        assert "Content-MD5" not in req.custom_headers

    def test_headers_are_case_insensitive(self):
        req = new_remove_bucket_request("my-bucket")
        assert req.custom_headers["x-amz-content-sha256"] == EMPTY_SHA256

    def test_each_call_builds_fresh_headers(self):
        first = new_get_object_range_request("b", "k", 0, 1)
        second = new_get_object_request("b", "k")

        assert first.custom_headers is not second.custom_headers
        assert "Range" not in second.custom_headers


class TestGetObjectRangeRequest:
    """Tests for new_get_object_range_request."""

    def test_range_header_is_inclusive(self):
        """start=10, end=42 -> Range: bytes=10-42."""
        req = new_get_object_range_request("my-bucket", "obj1", 10, 42)

        assert req.custom_headers["Range"] == "bytes=10-42"
        assert req.custom_headers["X-Amz-Content-Sha256"] == EMPTY_SHA256

    def test_single_byte_range(self):
        req = new_get_object_range_request("my-bucket", "obj1", 5, 5)
        assert req.custom_headers["Range"] == "bytes=5-5"

    def test_reversed_range_rejected(self):
        with pytest.raises(RequestBuildError, match="Invalid byte range"):
            new_get_object_range_request("my-bucket", "obj1", 10, 9)

    def test_negative_start_rejected(self):
        with pytest.raises(RequestBuildError):
            new_get_object_range_request("my-bucket", "obj1", -1, 9)


class TestBodyRequests:
    """Tests for builders that send a body."""

    def test_put_object_digests_body(self):
        body = b"object content"
        req = new_put_object_request("my-bucket", "obj1", body)

        assert req.body == body
        assert req.custom_headers["X-Amz-Content-Sha256"] == hashlib.sha256(body).hexdigest()
        assert req.custom_headers["Content-MD5"] == base64.b64encode(hashlib.md5(body).digest()).decode()

    def test_make_bucket_default_region_has_no_body(self):
        req = new_make_bucket_request("my-bucket", "us-east-1")

        assert req.body == b""
        assert req.custom_headers["X-Amz-Content-Sha256"] == EMPTY_SHA256

    def test_make_bucket_other_region_sends_location_constraint(self):
        req = new_make_bucket_request("my-bucket", "eu-west-1")

        assert b"<LocationConstraint>eu-west-1</LocationConstraint>" in req.body
        assert req.custom_headers["X-Amz-Content-Sha256"] == hashlib.sha256(req.body).hexdigest()


class TestBuildErrors:
    """Digest failures surface as RequestBuildError."""

    def test_digest_failure_is_build_error(self):
        with patch("s3verify.builder.compute_hash", side_effect=OSError("read failed")):
            with pytest.raises(RequestBuildError, match="read failed"):
                new_remove_bucket_request("my-bucket")

    def test_request_defaults(self):
        req = Request()
        assert req.bucket_name == ""
        assert len(req.custom_headers) == 0
