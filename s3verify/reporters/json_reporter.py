"""JSON reporter for structured output and GitHub Actions integration.

With ``github_output`` enabled the summary is appended to the file named by
``GITHUB_OUTPUT`` and every case that did not pass is echoed as an
``::error`` workflow command, so mismatches show up as annotations on the
workflow run.
"""

import json
import os
from pathlib import Path
from typing import Optional

from s3verify.models import CaseResult
from s3verify.reporters.base import Reporter
from s3verify.runner import RunResult


def _escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _escape_property(value: str) -> str:
    return _escape_data(value).replace(":", "%3A").replace(",", "%2C")


def format_annotation(result: CaseResult) -> str:
    """GitHub Actions ``::error`` command for a case that did not pass."""
    message = result.error_message or result.status.value.upper()
    return f"::error title={_escape_property(result.case_name)}::{_escape_data(message)}"


class JsonReporter(Reporter):
    """JSON reporter for structured output.

    Args:
        output_path: Optional file path to write JSON output
        github_output: If True, write to GITHUB_OUTPUT and annotate failures
    """

    def __init__(
        self,
        output_path: Optional[str] = None,
        github_output: bool = False,
    ):
        self.output_path = output_path
        self.github_output = github_output
        self._results: list[CaseResult] = []

    def on_run_start(self, endpoint_url: str, total: int) -> None:
        self._results = []

    def on_case_start(self, seq: int, total: int, case_name: str) -> None:
        pass

    def on_case_complete(self, result: CaseResult, total: int) -> None:
        self._results.append(result)

    def on_run_complete(self, result: RunResult) -> dict:
        """Write the run data to the configured destinations.

        Args:
            result: The aggregated run result

        Returns:
            The generated JSON data as a dictionary
        """
        output = result.to_dict()

        if self.output_path:
            self._write_to_file(output)

        if self.github_output:
            self._annotate_failures()
            self._write_github_output(output)

        return output

    def _write_to_file(self, output: dict) -> None:
        path = Path(self.output_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            json.dump(output, f, indent=2)

    def _annotate_failures(self) -> None:
        for case in self._results:
            if not case.passed:
                print(format_annotation(case))

    def _write_github_output(self, output: dict) -> None:
        github_output_file = os.environ.get("GITHUB_OUTPUT")
        if not github_output_file:
            return

        summary = output["summary"]
        with open(github_output_file, "a", encoding="utf-8") as f:
            f.write(f"all_passed={str(summary['all_passed']).lower()}\n")
            f.write(f"total_cases={summary['total']}\n")
            f.write(f"passed_cases={summary['passed']}\n")
            f.write(f"failed_cases={summary['failed'] + summary['errors']}\n")

            # Multiline output holding the full results document
            f.write("results<<EOF\n")
            f.write(json.dumps(output))
            f.write("\nEOF\n")
