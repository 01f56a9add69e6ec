"""S3 error responses.

Decodes the AWS XML error document into an ErrorResponse. Some servers omit
the body on certain status codes (notably 404 on HEAD/DELETE paths), so when
the body cannot be decoded an equivalent record is synthesized from the
status code and the response headers.

Sample error body::

    <?xml version="1.0" encoding="UTF-8"?>
    <Error>
       <Code>AccessDenied</Code>
       <Message>Access Denied</Message>
       <BucketName>bucketName</BucketName>
       <Key>objectName</Key>
       <RequestId>F19772218238A85A</RequestId>
       <HostId>GuWkjyviSiGHizehqpmsD1ndz5NClSP19DOT+s2mv7gXGQ8/X1lhbDGiIJEXpGFD</HostId>
    </Error>
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from enum import Enum
from typing import Mapping
from xml.sax.saxutils import escape

import httpx

# XML element name -> ErrorResponse attribute
XML_FIELDS = {
    "Code": "code",
    "Message": "message",
    "BucketName": "bucket_name",
    "Key": "key",
    "RequestId": "request_id",
    "HostId": "host_id",
}

REQUEST_ID_HEADER = "x-amz-request-id"
HOST_ID_HEADER = "x-amz-id-2"
BUCKET_REGION_HEADER = "x-amz-bucket-region"


class ErrorKind(Enum):
    """Error codes the harness distinguishes."""

    NO_SUCH_BUCKET = "NoSuchBucket"
    NO_SUCH_KEY = "NoSuchKey"
    ACCESS_DENIED = "AccessDenied"
    CONFLICT = "Conflict"
    OTHER = "Other"


class ErrorDecodeError(ValueError):
    """Raised when a body is not an S3 XML error document."""

    pass


@dataclass
class ErrorResponse(Exception):
    """Typed S3 error.

    An empty ``message`` means "no error expected" when used as the expected
    value in verification. ``region`` is only ever taken from the
    ``x-amz-bucket-region`` header; it is not part of the XML body.
    """

    code: str = ""
    message: str = ""
    bucket_name: str = ""
    key: str = ""
    request_id: str = ""
    host_id: str = ""
    region: str = ""
    status_code: int = 0

    def __post_init__(self):
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    @property
    def kind(self) -> ErrorKind:
        try:
            return ErrorKind(self.code)
        except ValueError:
            return ErrorKind.OTHER


def no_such_bucket(bucket_name: str) -> ErrorResponse:
    return ErrorResponse(
        code=ErrorKind.NO_SUCH_BUCKET.value,
        message="The specified bucket does not exist.",
        bucket_name=bucket_name,
        status_code=404,
    )


def no_such_key(bucket_name: str, object_name: str) -> ErrorResponse:
    return ErrorResponse(
        code=ErrorKind.NO_SUCH_KEY.value,
        message="The specified key does not exist.",
        bucket_name=bucket_name,
        key=object_name,
        status_code=404,
    )


def _local_name(tag: str) -> str:
    # Strip any "{namespace}" prefix.
    return tag.rsplit("}", 1)[-1]


def parse_error_response(body: bytes) -> ErrorResponse:
    """Decode an S3 XML error document.

    Raises:
        ErrorDecodeError: If the body is empty, not XML, or not an Error
            document.
    """
    if not body or not body.strip():
        raise ErrorDecodeError("Empty error body")

    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        raise ErrorDecodeError(f"Malformed error body: {e}") from e

    if _local_name(root.tag) != "Error":
        raise ErrorDecodeError(f"Unexpected root element: {_local_name(root.tag)}")

    err = ErrorResponse()
    for child in root:
        attr = XML_FIELDS.get(_local_name(child.tag))
        if attr:
            setattr(err, attr, child.text or "")
    err.args = (err.message,)
    return err


def error_response_to_xml(err: ErrorResponse) -> bytes:
    """Encode an ErrorResponse as an S3 XML error document."""
    parts = ['<?xml version="1.0" encoding="UTF-8"?>', "<Error>"]
    for element, attr in XML_FIELDS.items():
        parts.append(f"<{element}>{escape(getattr(err, attr))}</{element}>")
    parts.append("</Error>")
    return "\n".join(parts).encode("utf-8")


def status_text(status_code: int) -> str:
    """HTTP status line text, e.g. ``"500 Internal Server Error"``."""
    reason = httpx.codes.get_reason_phrase(status_code)
    return f"{status_code} {reason}".strip()


def to_error_response(
    body: bytes,
    status_code: int,
    headers: Mapping[str, str],
    bucket_name: str = "",
    object_name: str = "",
) -> ErrorResponse:
    """Build an ErrorResponse from a raw response.

    The XML body always takes precedence. Only when it cannot be decoded is
    the error inferred from the status code.

    Args:
        body: Raw response body (may be empty).
        status_code: HTTP status code of the response.
        headers: Response headers; lookups should be case-insensitive.
        bucket_name: Bucket the request targeted.
        object_name: Object the request targeted, or "" for bucket requests.

    Returns:
        The decoded or synthesized ErrorResponse.
    """
    region = headers.get(BUCKET_REGION_HEADER) or ""

    try:
        err = parse_error_response(body)
    except ErrorDecodeError:
        pass
    else:
        err.region = region
        err.status_code = status_code
        return err

    if status_code == 404:
        if not object_name:
            err = no_such_bucket(bucket_name)
        else:
            err = no_such_key(bucket_name, object_name)
    elif status_code == 403:
        err = ErrorResponse(
            code=ErrorKind.ACCESS_DENIED.value,
            message="Access Denied.",
            bucket_name=bucket_name,
            key=object_name,
        )
    elif status_code == 409:
        err = ErrorResponse(
            code=ErrorKind.CONFLICT.value,
            message="Bucket not empty.",
            bucket_name=bucket_name,
        )
    else:
        text = status_text(status_code)
        err = ErrorResponse(code=text, message=text, bucket_name=bucket_name)

    err.status_code = status_code
    err.request_id = headers.get(REQUEST_ID_HEADER) or ""
    err.host_id = headers.get(HOST_ID_HEADER) or ""
    err.region = region
    return err


def http_response_to_error_response(
    response: httpx.Response,
    bucket_name: str = "",
    object_name: str = "",
) -> ErrorResponse:
    """Decode an already-read httpx response into an ErrorResponse."""
    return to_error_response(
        response.content,
        response.status_code,
        response.headers,
        bucket_name,
        object_name,
    )
