"""Server configuration and request execution.

ServerConfig carries the endpoint, credentials and the httpx client for the
whole run. exec_request signs a built Request with botocore's SigV4 signer
and sends it; execute wraps that in a context manager that always releases
the response.

Payload signing is enabled explicitly so the signed content hash is the same
SHA-256 digest the request builder puts in ``X-Amz-Content-Sha256``, even
over HTTPS where botocore would otherwise send UNSIGNED-PAYLOAD.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator
from urllib.parse import quote, urlsplit

import httpx
from botocore.auth import S3SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.config import Config
from botocore.credentials import Credentials

from s3verify.builder import Request
from s3verify.config import ADDRESSING_STYLES
from s3verify.models import ServerSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServerConfig:
    """Immutable connection state for one run against a server."""

    endpoint_url: str
    access_key: str
    secret_key: str = field(repr=False)
    region_name: str
    http_client: httpx.Client = field(repr=False, compare=False)
    addressing_style: str = "path"

    @property
    def boto_config(self) -> Config:
        return Config(
            signature_version="s3v4",
            s3={
                "addressing_style": self.addressing_style,
                "payload_signing_enabled": True,
            },
        )

    def target_url(self, request: Request) -> str:
        """Resolve the URL for a request using the configured addressing style."""
        parts = urlsplit(self.endpoint_url.rstrip("/"))
        base_path = parts.path
        key_path = quote(request.object_name, safe="/~") if request.object_name else ""

        if not request.bucket_name:
            return f"{parts.scheme}://{parts.netloc}{base_path}/"

        if self.addressing_style == "virtual":
            return f"{parts.scheme}://{request.bucket_name}.{parts.netloc}{base_path}/{key_path}"

        url = f"{parts.scheme}://{parts.netloc}{base_path}/{request.bucket_name}"
        if key_path:
            url += f"/{key_path}"
        return url

    def sign(self, method: str, url: str, request: Request) -> list[tuple[str, str]]:
        """Return the request headers decorated with SigV4 authentication."""
        aws_request = AWSRequest(
            method=method,
            url=url,
            data=request.body,
            headers=dict(request.custom_headers.items()),
        )
        aws_request.context["client_config"] = self.boto_config

        credentials = Credentials(self.access_key, self.secret_key)
        S3SigV4Auth(credentials, "s3", self.region_name).add_auth(aws_request)
        return list(aws_request.headers.items())

    def exec_request(self, method: str, request: Request) -> httpx.Response:
        """Sign and send a request, returning the unread streaming response.

        Raises:
            httpx.HTTPError: On connection, DNS or timeout failures.
        """
        url = self.target_url(request)
        headers = self.sign(method, url, request)

        http_request = self.http_client.build_request(
            method,
            url,
            headers=headers,
            content=request.body or None,
        )
        logger.debug("%s %s", method, url)
        response = self.http_client.send(http_request, stream=True)
        logger.debug("%s %s -> %d", method, url, response.status_code)
        return response

    def close(self) -> None:
        self.http_client.close()


@contextmanager
def execute(config: ServerConfig, method: str, request: Request) -> Iterator[httpx.Response]:
    """Execute a request and guarantee the response is released.

    The body is read before the response is handed out, so callers can use
    ``response.content`` freely. The response is closed on every exit path,
    including verification failures raised inside the ``with`` block.

    Example:
        >>> with execute(config, "DELETE", request) as response:
        ...     remove_bucket_verify(response, 204, ErrorResponse())
    """
    response = config.exec_request(method, request)
    try:
        response.read()
        yield response
    finally:
        response.close()


def build_server_config(settings: ServerSettings) -> ServerConfig:
    """Build a ServerConfig with its own httpx client.

    Args:
        settings: Resolved endpoint, credentials, region and addressing style.

    Returns:
        ServerConfig ready for exec_request.

    Raises:
        ValueError: If the addressing style is not "path" or "virtual".
    """
    if settings.addressing_style not in ADDRESSING_STYLES:
        raise ValueError(f"Unknown addressing style: {settings.addressing_style}")

    return ServerConfig(
        endpoint_url=settings.endpoint_url,
        access_key=settings.access_key,
        secret_key=settings.secret_key,
        region_name=settings.region_name,
        http_client=httpx.Client(timeout=settings.timeout),
        addressing_style=settings.addressing_style,
    )
