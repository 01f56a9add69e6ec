"""Shared fixtures: an in-memory S3 server behind httpx.MockTransport."""

import hashlib
import itertools
import random
import re
from email.utils import formatdate
from typing import Optional

import httpx
import pytest

from s3verify.client import ServerConfig
from s3verify.errors import ErrorResponse, error_response_to_xml
from s3verify.fixtures import FixtureContext, FixtureSet, new_prepared_fixtures

S3_NS = "http://s3.amazonaws.com/doc/2006-03-01/"

RANGE_RE = re.compile(r"^bytes=(\d+)-(\d+)$")


class FakeS3:
    """Minimal S3 semantics for the operations the harness exercises.

    Args:
        omit_error_bodies: Send error statuses without an XML body, like
            servers that answer some 404s with headers only.
    """

    def __init__(self, omit_error_bodies: bool = False):
        self.buckets: dict[str, dict[str, bytes]] = {}
        self.requests: list[httpx.Request] = []
        self.omit_error_bodies = omit_error_bodies
        self._ids = itertools.count(1)

    def _headers(self, extra: Optional[dict] = None) -> dict:
        headers = {
            "Date": formatdate(usegmt=True),
            "x-amz-request-id": f"REQ{next(self._ids):06d}",
            "x-amz-id-2": "fake-host-id",
        }
        if extra:
            headers.update(extra)
        return headers

    def _error(self, status: int, code: str, message: str, bucket: str = "", key: str = ""):
        headers = self._headers()
        if self.omit_error_bodies:
            return httpx.Response(status, headers=headers)

        body = error_response_to_xml(ErrorResponse(
            code=code,
            message=message,
            bucket_name=bucket,
            key=key,
            request_id=headers["x-amz-request-id"],
            host_id=headers["x-amz-id-2"],
        ))
        headers["Content-Type"] = "application/xml"
        return httpx.Response(status, headers=headers, content=body)

    def _no_such_bucket(self, bucket: str):
        return self._error(404, "NoSuchBucket", "The specified bucket does not exist", bucket)

    def _list_buckets(self):
        entries = "".join(
            f"<Bucket><Name>{name}</Name><CreationDate>2016-01-01T00:00:00.000Z</CreationDate></Bucket>"
            for name in sorted(self.buckets)
        )
        body = (
            '<?xml version="1.0" encoding="UTF-8"?>'
            f'<ListAllMyBucketsResult xmlns="{S3_NS}">'
            "<Owner><ID>owner</ID><DisplayName>owner</DisplayName></Owner>"
            f"<Buckets>{entries}</Buckets>"
            "</ListAllMyBucketsResult>"
        )
        return httpx.Response(200, headers=self._headers(), content=body.encode())

    def _bucket(self, method: str, bucket: str):
        if method == "PUT":
            if bucket in self.buckets:
                return self._error(409, "BucketAlreadyOwnedByYou", "Your previous request to create the named bucket succeeded and you already own it.", bucket)
            self.buckets[bucket] = {}
            return httpx.Response(200, headers=self._headers({"Location": f"/{bucket}"}))

        if method == "DELETE":
            if bucket not in self.buckets:
                return self._no_such_bucket(bucket)
            if self.buckets[bucket]:
                return self._error(409, "BucketNotEmpty", "The bucket you tried to delete is not empty", bucket)
            del self.buckets[bucket]
            return httpx.Response(204, headers=self._headers())

        return self._error(405, "MethodNotAllowed", "The specified method is not allowed against this resource.", bucket)

    def _object(self, request: httpx.Request, bucket: str, key: str):
        if bucket not in self.buckets:
            return self._no_such_bucket(bucket)
        objects = self.buckets[bucket]

        if request.method == "PUT":
            body = request.read()
            objects[key] = body
            etag = f'"{hashlib.md5(body).hexdigest()}"'
            return httpx.Response(200, headers=self._headers({"ETag": etag}))

        if request.method == "DELETE":
            objects.pop(key, None)
            return httpx.Response(204, headers=self._headers())

        if request.method == "GET":
            if key not in objects:
                return self._error(404, "NoSuchKey", "The specified key does not exist.", bucket, key)
            body = objects[key]
            range_header = request.headers.get("Range")
            if range_header:
                match = RANGE_RE.match(range_header)
                start, end = int(match.group(1)), int(match.group(2))
                end = min(end, len(body) - 1)
                headers = self._headers({"Content-Range": f"bytes {start}-{end}/{len(body)}"})
                return httpx.Response(206, headers=headers, content=body[start:end + 1])
            return httpx.Response(200, headers=self._headers(), content=body)

        return self._error(405, "MethodNotAllowed", "The specified method is not allowed against this resource.", bucket, key)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        bucket, _, key = request.url.path.lstrip("/").partition("/")

        if not bucket:
            return self._list_buckets()
        if not key:
            return self._bucket(request.method, bucket)
        return self._object(request, bucket, key)


def make_server_config(handler, **kwargs) -> ServerConfig:
    """ServerConfig whose client is served by ``handler`` instead of the network."""
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return ServerConfig(
        endpoint_url=kwargs.pop("endpoint_url", "http://s3.test"),
        access_key="AKIDEXAMPLE",
        secret_key="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
        region_name=kwargs.pop("region_name", "us-east-1"),
        http_client=client,
        **kwargs,
    )


def standard_headers(**extra) -> dict:
    headers = {
        "Date": "Wed, 12 Oct 2016 17:50:00 GMT",
        "x-amz-request-id": "4442587FB7D0A2F9",
    }
    headers.update(extra)
    return headers


@pytest.fixture
def fake_s3() -> FakeS3:
    return FakeS3()


@pytest.fixture
def server_config(fake_s3):
    config = make_server_config(fake_s3)
    yield config
    config.close()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def fixture_context(rng) -> FixtureContext:
    """Owned fixtures, read in prepare mode."""
    return FixtureContext(
        prepared=new_prepared_fixtures(rng, bucket_count=2, object_count=3, max_object_size=2048),
        unprepared=FixtureSet(),
        prepare_mode=True,
    )
