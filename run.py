#!/usr/bin/env python3
"""
s3verify: Amazon S3 API Conformance Tester

Run this script to test an S3-compatible server for conformance with the
Amazon S3 REST API (status codes, headers and XML error bodies).

Usage:
    python run.py --prepare                 # Create fixtures, run all cases
    python run.py --prepare getobject       # Run only the GetObject cases
    python run.py --fixtures fixtures.json  # Read pre-existing objects
    python run.py -c custom.json            # Use custom config
    python run.py -q                        # Quiet mode (summary only)
    python run.py -j results.json           # Output JSON results
    python run.py --seed 42                 # Reproducible ranges and names
"""

import sys
from s3verify.cli import main

if __name__ == "__main__":
    sys.exit(main())
