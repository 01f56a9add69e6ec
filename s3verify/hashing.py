"""Body digests sent with every request.

S3 requires ``X-Amz-Content-Sha256`` on every signed request, including
bodyless ones such as DELETE and ranged GET, so the digest of an empty
stream is computed rather than omitted.
"""

import base64
import hashlib
from dataclasses import dataclass
from typing import BinaryIO

# Read size used while hashing a body stream
HASH_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class ContentHash:
    """Digests and size of a request body."""

    md5: bytes
    sha256: bytes
    size: int

    @property
    def sha256_hex(self) -> str:
        return self.sha256.hex()

    @property
    def md5_hex(self) -> str:
        return self.md5.hex()

    @property
    def md5_base64(self) -> str:
        """Value for the ``Content-MD5`` header."""
        return base64.b64encode(self.md5).decode("ascii")


def compute_hash(reader: BinaryIO, chunk_size: int = HASH_CHUNK_SIZE) -> ContentHash:
    """Compute MD5 and SHA-256 of a stream, reading it to the end.

    Args:
        reader: Binary stream positioned at the start of the body.
        chunk_size: Number of bytes to read per call.

    Returns:
        ContentHash for everything read from the stream.

    Raises:
        OSError: If reading the stream fails.
    """
    md5 = hashlib.md5()
    sha256 = hashlib.sha256()
    size = 0

    while True:
        chunk = reader.read(chunk_size)
        if not chunk:
            break
        md5.update(chunk)
        sha256.update(chunk)
        size += len(chunk)

    return ContentHash(md5=md5.digest(), sha256=sha256.digest(), size=size)
