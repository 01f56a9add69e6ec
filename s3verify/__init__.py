"""
s3verify: Amazon S3 API conformance tester.

Issues crafted requests against an S3-compatible endpoint and checks that
status codes, headers and XML error bodies match the documented S3 contract.
"""

__version__ = "0.3.0"

from s3verify.cli import main

__all__ = ["main", "__version__"]
