"""Command-line interface for the S3 conformance tester.

Provides argument parsing and main entry point for running cases
from the command line.
"""

import argparse
import logging
import random
import sys
import time
from typing import Optional

from s3verify.cases import COMMANDS, select_cases
from s3verify.client import build_server_config
from s3verify.config import ConfigError, load_settings
from s3verify.fixtures import (
    FixtureContext,
    FixtureSet,
    load_unprepared_fixtures,
    new_prepared_fixtures,
)
from s3verify.lifecycle import SetupError
from s3verify.logging_config import configure_logging
from s3verify.reporters import CompositeReporter, ConsoleReporter, JsonReporter, Reporter
from s3verify.runner import ConformanceRunner

logger = logging.getLogger(__name__)

EPILOG = """\
examples:
  Run all cases against a server, creating the fixtures the run needs:
    S3_URL=https://play.min.io S3_ACCESS=... S3_SECRET=... s3verify --prepare

  Run only the bucket cases using flags:
    s3verify --access KEY --secret SECRET --url https://s3.amazonaws.com --prepare \\
        makebucket removebucket

  Read objects that already exist on the server:
    s3verify --fixtures fixtures.json getobject
"""


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="s3verify",
        description="Test an S3-compatible server for Amazon S3 v4 API compatibility",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "commands",
        nargs="*",
        metavar="COMMAND",
        help=f"Operations to test (default: all). One of: {', '.join(COMMANDS)}",
    )

    parser.add_argument("--access", metavar="KEY", help="Access key (or S3_ACCESS)")
    parser.add_argument("--secret", metavar="KEY", help="Secret key (or S3_SECRET)")
    parser.add_argument("--url", metavar="URL", help="Server endpoint URL (or S3_URL)")
    parser.add_argument("--region", metavar="REGION", help="Signing region (default: us-east-1)")

    parser.add_argument(
        "--addressing-style",
        choices=["path", "virtual"],
        help="Bucket addressing style (default: path)",
    )

    parser.add_argument(
        "-c", "--config",
        default="config.json",
        help="Path to configuration file (default: config.json)",
    )

    parser.add_argument(
        "--prepare",
        action="store_true",
        help="Read from the buckets and objects this run creates instead of pre-existing ones",
    )

    parser.add_argument(
        "--fixtures",
        metavar="PATH",
        help="JSON manifest describing pre-existing buckets and objects (or S3_FIXTURES)",
    )

    parser.add_argument(
        "--seed",
        type=int,
        help="Seed for byte ranges and generated names (default: current time)",
    )

    parser.add_argument(
        "--timeout",
        type=float,
        help="HTTP timeout in seconds (default: 60)",
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress per-case output, show only summary",
    )

    parser.add_argument(
        "-j", "--json-output",
        metavar="PATH",
        help="Write JSON results to file",
    )

    parser.add_argument(
        "--github-actions",
        action="store_true",
        help="Enable GitHub Actions output mode",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log requests and diagnostics to stderr",
    )

    args = parser.parse_args(argv)

    unknown = [c for c in args.commands if c not in COMMANDS]
    if unknown:
        parser.error(f"'{unknown[0]}' is not a s3verify command. Choose from: {', '.join(COMMANDS)}")

    return args


def create_reporters(args: argparse.Namespace) -> list[Reporter]:
    """Create reporters based on command-line arguments."""
    reporters: list[Reporter] = [ConsoleReporter(quiet=args.quiet)]

    if args.json_output or args.github_actions:
        reporters.append(JsonReporter(
            output_path=args.json_output,
            github_output=args.github_actions,
        ))

    return reporters


def build_fixtures(
    args: argparse.Namespace,
    fixtures_path: Optional[str],
    rng: random.Random,
) -> FixtureContext:
    """Generate the owned fixtures and load the pre-existing ones.

    Raises:
        ConfigError: If pre-existing fixtures are needed but not available.
    """
    prepared = new_prepared_fixtures(rng)

    if fixtures_path:
        unprepared = load_unprepared_fixtures(fixtures_path)
    elif args.prepare:
        unprepared = FixtureSet()
    else:
        raise ConfigError(
            "No pre-existing fixtures configured. Pass --prepare to use the "
            "fixtures this run creates, or --fixtures PATH (or S3_FIXTURES)."
        )

    return FixtureContext(prepared=prepared, unprepared=unprepared, prepare_mode=args.prepare)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code: 0 for success, 1 for case failures, 2 for errors
    """
    args = parse_args(argv)
    configure_logging(args.verbose)

    seed = args.seed if args.seed is not None else time.time_ns()
    rng = random.Random(seed)

    try:
        settings = load_settings(args.config, overrides={
            "endpoint_url": args.url,
            "access_key": args.access,
            "secret_key": args.secret,
            "region_name": args.region,
            "addressing_style": args.addressing_style,
            "fixtures_path": args.fixtures,
            "timeout": args.timeout,
        })
        fixtures = build_fixtures(args, settings.fixtures_path, rng)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    reporters = create_reporters(args)
    if len(reporters) == 1:
        reporter = reporters[0]
    else:
        reporter = CompositeReporter(reporters)

    logger.debug("Using seed %d", seed)
    config = build_server_config(settings)
    try:
        runner = ConformanceRunner(
            config,
            fixtures,
            rng,
            reporter=reporter,
            cases=select_cases(args.commands),
            seed=seed,
        )
        result = runner.run()
    except SetupError as e:
        print(f"Setup failed: {e}", file=sys.stderr)
        return 2
    finally:
        config.close()

    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
