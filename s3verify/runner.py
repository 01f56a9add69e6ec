"""Main conformance runner.

Runs the selected cases one at a time in their fixed order, managing:
- Creating owned fixtures the selection relies on but does not create
- Sequence numbering
- Translating case exceptions into PASS / FAIL / ERROR results
- Reporter callbacks

A failing case never stops the run; every selected case is executed. Only a
setup failure aborts it.
"""

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from s3verify.builder import RequestBuildError
from s3verify.cases import CASES, CaseContext, ConformanceCase
from s3verify.client import ServerConfig
from s3verify.fixtures import FixtureContext
from s3verify.lifecycle import FixtureSetup, SetupError
from s3verify.models import CaseResult, ResultStatus
from s3verify.verify import VerificationError

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Result of running every selected case against the server."""

    cases: list[CaseResult]
    total_duration: float
    endpoint_url: str = ""
    seed: Optional[int] = None
    timestamp: str = field(default_factory=lambda: time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()))

    @property
    def all_passed(self) -> bool:
        """Check if every case passed."""
        return all(case.passed for case in self.cases)

    @property
    def exit_code(self) -> int:
        return 0 if self.all_passed else 1

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        passed_count = sum(1 for c in self.cases if c.status == ResultStatus.PASS)
        failed_count = sum(1 for c in self.cases if c.status == ResultStatus.FAIL)
        error_count = sum(1 for c in self.cases if c.status == ResultStatus.ERROR)

        return {
            "timestamp": self.timestamp,
            "endpoint_url": self.endpoint_url,
            "seed": self.seed,
            "cases": [
                {
                    "seq": case.seq,
                    "name": case.case_name,
                    "status": case.status.value,
                    "error_message": case.error_message,
                    "duration_seconds": case.duration_seconds,
                }
                for case in self.cases
            ],
            "summary": {
                "total": len(self.cases),
                "passed": passed_count,
                "failed": failed_count,
                "errors": error_count,
                "all_passed": self.all_passed,
            },
            "total_duration": self.total_duration,
        }


def run_case(case: ConformanceCase, ctx: CaseContext) -> CaseResult:
    """Run one case and classify its outcome.

    Args:
        case: The case to execute.
        ctx: Context passed to the case.

    Returns:
        CaseResult with PASS, FAIL (contract mismatch) or ERROR (the request
        could not be built or delivered).
    """
    start_time = time.time()
    status = ResultStatus.PASS
    error_message = None

    try:
        case.func(ctx)
    except VerificationError as e:
        status = ResultStatus.FAIL
        error_message = str(e)
    except RequestBuildError as e:
        status = ResultStatus.ERROR
        error_message = f"Request build failed: {e}"
    except httpx.HTTPError as e:
        status = ResultStatus.ERROR
        error_message = f"Request failed: {e}"
    except Exception as e:
        # Unexpected error
        logger.exception("Case %s raised unexpectedly", case.name)
        status = ResultStatus.ERROR
        error_message = f"Unexpected error: {e}"

    return CaseResult(
        seq=ctx.seq,
        case_name=case.name,
        status=status,
        error_message=error_message,
        duration_seconds=time.time() - start_time,
    )


class ConformanceRunner:
    """Runs conformance cases sequentially against one server.

    Args:
        config: Server under test
        fixtures: Prepared and unprepared fixtures plus the prepare mode
        rng: Random source for byte ranges and generated names
        reporter: Optional reporter for progress callbacks
        cases: Cases to run (defaults to all, in order)
        seed: Seed used for ``rng``, recorded in the result
    """

    def __init__(
        self,
        config: ServerConfig,
        fixtures: FixtureContext,
        rng: random.Random,
        reporter: Optional[Any] = None,
        cases: Optional[list[ConformanceCase]] = None,
        seed: Optional[int] = None,
    ):
        self.config = config
        self.fixtures = fixtures
        self.rng = rng
        self.reporter = reporter
        self.cases = list(CASES) if cases is None else cases
        self.seed = seed

    def run(self) -> RunResult:
        """Run every case and return the aggregated result.

        Raises:
            SetupError: If the owned fixtures the selection relies on
                cannot be created. No further cases run.
        """
        start_time = time.time()
        total = len(self.cases)
        results: list[CaseResult] = []
        setup = FixtureSetup(self.config, self.fixtures, [case.command for case in self.cases])

        logger.info(
            "Running %d case(s) against %s (seed=%s, prepare=%s)",
            total, self.config.endpoint_url, self.seed, self.fixtures.prepare_mode,
        )
        if setup.required:
            logger.info("Creating owned fixtures the selected cases do not create")

        if self.reporter:
            self.reporter.on_run_start(self.config.endpoint_url, total)

        try:
            for seq, case in enumerate(self.cases, start=1):
                setup.before_case(case.command)

                if self.reporter:
                    self.reporter.on_case_start(seq, total, case.name)

                ctx = CaseContext(
                    config=self.config,
                    seq=seq,
                    total=total,
                    fixtures=self.fixtures,
                    rng=self.rng,
                )
                result = run_case(case, ctx)
                results.append(result)
                logger.info("[%02d/%d] %s: %s", seq, total, case.name, result.status.value)

                if self.reporter:
                    self.reporter.on_case_complete(result, total)
        except SetupError:
            logger.error("Setup failed after %d of %d case(s)", len(results), total)
            raise
        finally:
            setup.teardown()

        run_result = RunResult(
            cases=results,
            total_duration=time.time() - start_time,
            endpoint_url=self.config.endpoint_url,
            seed=self.seed,
        )

        if self.reporter:
            self.reporter.on_run_complete(run_result)

        return run_result
