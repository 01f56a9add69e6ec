"""Data models for the S3 conformance tester."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class ResultStatus(Enum):
    """Status of a conformance case."""

    PASS = "pass"
    FAIL = "fail"
    ERROR = "error"


@dataclass
class ServerSettings:
    """Resolved connection settings for the server under test."""

    endpoint_url: str
    access_key: str
    secret_key: str
    region_name: str = "us-east-1"
    addressing_style: str = "path"
    timeout: float = 60.0
    fixtures_path: Optional[str] = None


@dataclass
class BucketInfo:
    """A bucket referenced by the harness.

    ``created`` is stamped when the harness itself creates the bucket and is
    used to remove buckets newest first.
    """

    name: str
    created: Optional[datetime] = None


@dataclass
class ObjectInfo:
    """An object whose full content is known ahead of time.

    ``body`` is the oracle every read is compared against.
    """

    key: str
    size: int
    body: bytes
    bucket_name: str = ""


@dataclass
class CaseResult:
    """Result of a single conformance case."""

    seq: int
    case_name: str
    status: ResultStatus
    error_message: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def passed(self) -> bool:
        return self.status == ResultStatus.PASS
