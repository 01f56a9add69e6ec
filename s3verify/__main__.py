import sys

from s3verify.cli import main

if __name__ == "__main__":
    sys.exit(main())
