"""Base reporter interface."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from s3verify.models import CaseResult
    from s3verify.runner import RunResult


class Reporter(ABC):
    """Abstract base class for conformance result reporters."""

    @abstractmethod
    def on_run_start(self, endpoint_url: str, total: int) -> None:
        """Called before the first case runs."""
        pass

    @abstractmethod
    def on_case_start(self, seq: int, total: int, case_name: str) -> None:
        """Called when a case starts."""
        pass

    @abstractmethod
    def on_case_complete(self, result: "CaseResult", total: int) -> None:
        """Called when a case completes."""
        pass

    @abstractmethod
    def on_run_complete(self, result: "RunResult") -> None:
        """Called when all cases are complete."""
        pass


class CompositeReporter(Reporter):
    """Reporter that delegates to multiple reporters.

    Allows using both ConsoleReporter and JsonReporter simultaneously.
    """

    def __init__(self, reporters: list[Reporter]):
        self._reporters = reporters

    def on_run_start(self, endpoint_url: str, total: int) -> None:
        for reporter in self._reporters:
            reporter.on_run_start(endpoint_url, total)

    def on_case_start(self, seq: int, total: int, case_name: str) -> None:
        for reporter in self._reporters:
            reporter.on_case_start(seq, total, case_name)

    def on_case_complete(self, result: "CaseResult", total: int) -> None:
        for reporter in self._reporters:
            reporter.on_case_complete(result, total)

    def on_run_complete(self, result: "RunResult") -> None:
        for reporter in self._reporters:
            reporter.on_run_complete(result)
