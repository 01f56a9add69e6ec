"""Console reporter using Rich library for formatted CLI output.

Prints one numbered line per case, for example::

    [05/9] GetObject (Range): [PASS]
    [09/9] RemoveBucket (Bucket DNE): [FAIL]
         Unexpected Status: wanted 404, got 403

followed by a summary table.
"""

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.table import Table

from s3verify.models import CaseResult, ResultStatus
from s3verify.reporters.base import Reporter
from s3verify.runner import RunResult


def format_case_label(seq: int, total: int, case_name: str) -> str:
    return f"[{seq:02d}/{total}] {case_name}:"


class ConsoleReporter(Reporter):
    """Rich-based console reporter for CLI output.

    Args:
        quiet: If True, suppress per-case output (only show summary)
    """

    def __init__(self, quiet: bool = False):
        # Use legacy_windows=True for ASCII-safe output on Windows consoles
        self.console = Console(legacy_windows=True, highlight=False)
        self.quiet = quiet

    def on_run_start(self, endpoint_url: str, total: int) -> None:
        """Displays a header with the endpoint under test."""
        self.console.print()
        self.console.print(
            Rule(f"[bold cyan]Testing: {endpoint_url}[/bold cyan]", style="cyan", characters="-")
        )

    def on_case_start(self, seq: int, total: int, case_name: str) -> None:
        """Currently a no-op for console reporter."""
        pass

    def on_case_complete(self, result: CaseResult, total: int) -> None:
        """Displays the numbered pass/fail line and, on failure, the mismatch."""
        if self.quiet:
            return

        if result.status == ResultStatus.PASS:
            status_text = "[green][PASS][/green]"
        elif result.status == ResultStatus.FAIL:
            status_text = "[red][FAIL][/red]"
        else:
            status_text = "[yellow][ERROR][/yellow]"

        label = escape(format_case_label(result.seq, total, result.case_name))
        self.console.print(f"{label} {status_text}")

        if result.error_message and result.status != ResultStatus.PASS:
            self.console.print(f"     [dim]{escape(result.error_message)}[/dim]")

    def on_run_complete(self, result: RunResult) -> None:
        """Displays a summary table of every case."""
        if not result.cases:
            self.console.print("[yellow]No results to display.[/yellow]")
            return

        self.console.print()
        self.console.print(
            Rule("[bold]Conformance Summary[/bold]", style="magenta", characters="-")
        )

        table = Table(
            title="",
            show_header=True,
            header_style="bold magenta",
            border_style="dim",
            box=box.ASCII,
        )
        table.add_column("#", justify="right", no_wrap=True)
        table.add_column("Case", style="cyan", no_wrap=True)
        table.add_column("Status", justify="center", no_wrap=True)

        for case in result.cases:
            if case.status == ResultStatus.PASS:
                symbol = "[green]PASS[/green]"
            elif case.status == ResultStatus.FAIL:
                symbol = "[red]FAIL[/red]"
            else:
                symbol = "[yellow]ERROR[/yellow]"
            table.add_row(f"{case.seq:02d}", case.case_name, symbol)

        self.console.print(table)

        passed = sum(1 for c in result.cases if c.passed)
        if result.all_passed:
            status = "[bold green]PASSED[/bold green]"
        else:
            status = "[bold red]FAILED[/bold red]"
        self.console.print(
            f"{status}: {passed}/{len(result.cases)} cases in {result.total_duration:.1f}s"
        )
        if result.seed is not None:
            self.console.print(f"[dim]seed: {result.seed}[/dim]")
        self.console.print()
