"""Response verification for each S3 operation.

Every operation is checked by the same three-stage pipeline: headers, then
status code, then body. The first stage that fails raises a
VerificationError and the later stages are not evaluated.
"""

import xml.etree.ElementTree as ET
from email.utils import parsedate_to_datetime
from typing import Callable, Iterable, Mapping, Optional

import httpx

from s3verify.errors import ErrorKind, ErrorResponse, http_response_to_error_response

Check = Callable[[httpx.Response], None]


class VerificationError(Exception):
    """Raised when a response does not match the S3 contract."""

    pass


class ResponseVerifier:
    """Ordered header, status and body checks for one scenario.

    Args:
        header_check: Validates response headers.
        status_check: Validates the status code.
        body_check: Validates the (already read) body.
    """

    def __init__(self, header_check: Check, status_check: Check, body_check: Check):
        self.stages = [header_check, status_check, body_check]

    def verify(self, response: httpx.Response) -> None:
        for stage in self.stages:
            stage(response)


# === HEADER CHECKS ===

def verify_standard_headers(headers: Mapping[str, str]) -> None:
    """Check the headers every S3 response must carry."""
    date = headers.get("Date")
    if not date:
        raise VerificationError("Missing Date header")
    try:
        parsedate_to_datetime(date)
    except (TypeError, ValueError) as e:
        raise VerificationError(f"Invalid Date header: {date}") from e

    if not headers.get("x-amz-request-id"):
        raise VerificationError("Missing x-amz-request-id header")


def verify_etag_header(headers: Mapping[str, str], expected_etag: str) -> None:
    etag = headers.get("ETag")
    if not etag:
        raise VerificationError("Missing ETag header")
    if etag.strip('"') != expected_etag.strip('"'):
        raise VerificationError(f"Unexpected ETag: wanted {expected_etag}, got {etag}")


# === STATUS CHECK ===

def verify_status(status_code: int, expected_status_code: int) -> None:
    if status_code != expected_status_code:
        raise VerificationError(
            f"Unexpected Status: wanted {expected_status_code}, got {status_code}"
        )


# === BODY CHECKS ===

def _same_message(actual: str, expected: str) -> bool:
    # AWS omits the trailing period some servers (and the fallback) include.
    return actual.strip().removesuffix(".") == expected.strip().removesuffix(".")


def verify_error_body(
    response: httpx.Response,
    expected_error: ErrorResponse,
    bucket_name: str = "",
    object_name: str = "",
) -> None:
    """Compare the decoded error against the expected one.

    An expected error with an empty message means no error is expected and
    the body is not inspected.
    """
    if not expected_error.message:
        return

    err = http_response_to_error_response(response, bucket_name, object_name)
    if expected_error.kind is not ErrorKind.OTHER:
        matched = err.kind is expected_error.kind
    else:
        matched = not expected_error.code or err.code == expected_error.code
    if not matched:
        raise VerificationError(
            f"Unexpected Error Code: wanted {expected_error.code}, got {err.code}"
        )
    if not _same_message(err.message, expected_error.message):
        raise VerificationError(f"Unexpected Error: {err.message}")


def verify_body_bytes(body: bytes, expected_body: bytes) -> None:
    if len(body) != len(expected_body):
        raise VerificationError(
            f"Unexpected Body: wanted {len(expected_body)} bytes, got {len(body)} bytes"
        )
    if body != expected_body:
        raise VerificationError("Unexpected Body: content does not match")


def verify_empty_body(body: bytes) -> None:
    if body:
        raise VerificationError(f"Unexpected Body: wanted empty body, got {len(body)} bytes")


def parse_bucket_names(body: bytes) -> list[str]:
    """Extract bucket names from a ListAllMyBucketsResult document."""
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        raise VerificationError(f"Malformed ListAllMyBucketsResult: {e}") from e

    if not root.tag.endswith("ListAllMyBucketsResult"):
        raise VerificationError(f"Unexpected root element: {root.tag}")

    names = []
    for element in root.iter():
        if element.tag.endswith("}Bucket") or element.tag == "Bucket":
            for child in element:
                if child.tag.endswith("}Name") or child.tag == "Name":
                    names.append((child.text or "").strip())
    return names


def verify_bucket_listing(body: bytes, expected_buckets: Iterable[str]) -> None:
    names = set(parse_bucket_names(body))
    missing = [name for name in expected_buckets if name not in names]
    if missing:
        raise VerificationError(f"Buckets missing from listing: {', '.join(missing)}")


# === PER-OPERATION VERIFIERS ===

def list_buckets_verify(
    response: httpx.Response,
    expected_buckets: Iterable[str],
    expected_status_code: int = 200,
) -> None:
    ResponseVerifier(
        lambda res: verify_standard_headers(res.headers),
        lambda res: verify_status(res.status_code, expected_status_code),
        lambda res: verify_bucket_listing(res.content, expected_buckets),
    ).verify(response)


def make_bucket_verify(
    response: httpx.Response,
    bucket_name: str,
    expected_status_code: int,
    expected_error: ErrorResponse,
) -> None:
    ResponseVerifier(
        lambda res: verify_standard_headers(res.headers),
        lambda res: verify_status(res.status_code, expected_status_code),
        lambda res: verify_error_body(res, expected_error, bucket_name),
    ).verify(response)


def put_object_verify(
    response: httpx.Response,
    expected_etag: str,
    expected_status_code: int = 200,
) -> None:
    # The ETag of a single-part upload is the MD5 of the body sent.
    ResponseVerifier(
        lambda res: verify_standard_headers(res.headers),
        lambda res: verify_status(res.status_code, expected_status_code),
        lambda res: verify_etag_header(res.headers, expected_etag),
    ).verify(response)


def get_object_verify(
    response: httpx.Response,
    expected_body: Optional[bytes],
    expected_status_code: int,
    expected_error: Optional[ErrorResponse] = None,
    bucket_name: str = "",
    object_name: str = "",
) -> None:
    """Verify a GET object response.

    On success scenarios ``expected_body`` is the oracle (the full object or
    the requested slice); on error scenarios ``expected_error`` is compared
    instead.
    """
    def check_body(res: httpx.Response) -> None:
        if expected_error is not None and expected_error.message:
            verify_error_body(res, expected_error, bucket_name, object_name)
        elif expected_body is not None:
            verify_body_bytes(res.content, expected_body)

    ResponseVerifier(
        lambda res: verify_standard_headers(res.headers),
        lambda res: verify_status(res.status_code, expected_status_code),
        check_body,
    ).verify(response)


def remove_object_verify(response: httpx.Response, expected_status_code: int = 204) -> None:
    ResponseVerifier(
        lambda res: verify_standard_headers(res.headers),
        lambda res: verify_status(res.status_code, expected_status_code),
        lambda res: verify_empty_body(res.content),
    ).verify(response)


def remove_bucket_verify(
    response: httpx.Response,
    expected_status_code: int,
    expected_error: ErrorResponse,
    bucket_name: str = "",
) -> None:
    """Verify a DELETE bucket response.

    A successful removal must be 204 with an empty body; a failed one must
    carry the expected error.
    """
    def check_body(res: httpx.Response) -> None:
        if expected_error.message:
            verify_error_body(res, expected_error, bucket_name)
        else:
            verify_empty_body(res.content)

    ResponseVerifier(
        lambda res: verify_standard_headers(res.headers),
        lambda res: verify_status(res.status_code, expected_status_code),
        check_body,
    ).verify(response)
