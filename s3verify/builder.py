"""Request descriptors for each S3 operation under test.

Every builder follows the same steps: allocate a Request with empty custom
headers, set the bucket and object, hash the body (an empty one for
bodyless operations), then fill in the standard and operation-specific
headers. Requests are unsigned here; ServerConfig.exec_request signs them.
"""

import io
from dataclasses import dataclass, field
from typing import Optional

import httpx

from s3verify import __version__
from s3verify.hashing import ContentHash, compute_hash

APP_USER_AGENT = f"s3verify/{__version__} (Python)"

# Region that must not be sent as a LocationConstraint
DEFAULT_REGION = "us-east-1"

CREATE_BUCKET_CONFIGURATION = (
    '<CreateBucketConfiguration xmlns="http://s3.amazonaws.com/doc/2006-03-01/">'
    "<LocationConstraint>{region}</LocationConstraint>"
    "</CreateBucketConfiguration>"
)


class RequestBuildError(Exception):
    """Raised when a request descriptor cannot be built."""

    pass


@dataclass
class Request:
    """An unsigned request against a bucket or object."""

    bucket_name: str = ""
    object_name: str = ""
    custom_headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: bytes = b""


def _hash_body(body: bytes) -> ContentHash:
    try:
        return compute_hash(io.BytesIO(body))
    except OSError as e:
        raise RequestBuildError(f"Unable to compute body digest: {e}") from e


def _new_request(bucket_name: str, object_name: str = "", body: bytes = b"") -> Request:
    request = Request(custom_headers=httpx.Headers())
    request.bucket_name = bucket_name
    request.object_name = object_name
    request.body = body

    content_hash = _hash_body(body)

    request.custom_headers["User-Agent"] = APP_USER_AGENT
    request.custom_headers["X-Amz-Content-Sha256"] = content_hash.sha256_hex
    if content_hash.size:
        request.custom_headers["Content-MD5"] = content_hash.md5_base64
    return request


def new_list_buckets_request() -> Request:
    """GET / on the service endpoint."""
    return _new_request("")


def new_make_bucket_request(bucket_name: str, region: Optional[str] = None) -> Request:
    """PUT bucket, with a LocationConstraint body outside the default region."""
    body = b""
    if region and region != DEFAULT_REGION:
        body = CREATE_BUCKET_CONFIGURATION.format(region=region).encode("utf-8")
    return _new_request(bucket_name, body=body)


def new_put_object_request(bucket_name: str, object_name: str, body: bytes) -> Request:
    return _new_request(bucket_name, object_name, body)


def new_get_object_request(bucket_name: str, object_name: str) -> Request:
    # GET sends no body; the empty-body digest is still required.
    return _new_request(bucket_name, object_name)


def new_get_object_range_request(
    bucket_name: str,
    object_name: str,
    start_range: int,
    end_range: int,
) -> Request:
    """GET object with an inclusive ``Range: bytes=<start>-<end>`` header.

    Raises:
        RequestBuildError: If the range is negative or reversed.
    """
    if start_range < 0 or end_range < start_range:
        raise RequestBuildError(f"Invalid byte range: {start_range}-{end_range}")

    request = _new_request(bucket_name, object_name)
    request.custom_headers["Range"] = f"bytes={start_range}-{end_range}"
    return request


def new_remove_object_request(bucket_name: str, object_name: str) -> Request:
    return _new_request(bucket_name, object_name)


def new_remove_bucket_request(bucket_name: str) -> Request:
    """DELETE bucket. DELETE sends no body, so the empty-body digest is used."""
    return _new_request(bucket_name)
