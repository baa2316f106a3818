"""Console reporter for gh_auditor using Rich for terminal output."""

from typing import TYPE_CHECKING, Any, Dict, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .formatter import render

if TYPE_CHECKING:
    from ..core import AuditReport


class ConsoleReporter:
    """Reporter that formats an audit report for the console using Rich."""

    STATUS_STYLES: Dict[str, Dict[str, Any]] = {
        "pass": {"symbol": "✓", "color": "green"},
        "fail": {"symbol": "✗", "color": "red"},
        "error": {"symbol": "?", "color": "magenta"},
    }

    def __init__(self, console: Optional[Console] = None, show_details: bool = True):
        """Initialize the console reporter.

        Args:
            console: Rich console to print to (stdout by default)
            show_details: Whether to print observation and recommendation per failure
        """
        self.console = console or Console()
        self.show_details = show_details

    def report(self, report: "AuditReport") -> None:
        """Print an audit report.

        Args:
            report: Result of an audit run
        """
        self._display_verdict(report)
        if report.checks_run:
            self._display_checks_table(report)
        if self.show_details:
            self._display_failures(report)

    def _display_verdict(self, report: "AuditReport") -> None:
        if report.passed:
            text, color = "PASSED", "green"
        elif report.has_errors:
            text, color = "INCOMPLETE", "magenta"
        else:
            text, color = "FAILED", "red"

        audit_count = len(report.audit_failures)
        error_count = len(report.failures) - audit_count
        self.console.print(
            Panel(
                Text(f"Audit {text}", style=f"bold {color}"),
                title=f"gh-auditor: {report.organisation}",
                subtitle=f"{audit_count} audit failures, {error_count} errors",
                border_style=color,
            )
        )

    def _display_checks_table(self, report: "AuditReport") -> None:
        table = Table(title="Checks")
        table.add_column("Status", justify="center", width=8)
        table.add_column("Category", style="bold")
        table.add_column("Check ID", style="cyan")

        # group by category, keeping execution order within and between groups
        categories = list(
            dict.fromkeys(report.categories.get(c, "general") for c in report.checks_run)
        )
        for category in categories:
            for check_id in report.checks_run:
                if report.categories.get(check_id, "general") != category:
                    continue
                style = self.STATUS_STYLES[report.statuses.get(check_id, "pass")]
                table.add_row(
                    Text(style["symbol"], style=style["color"]), category, check_id
                )

        self.console.print(table)

    def _display_failures(self, report: "AuditReport") -> None:
        for failure in report.failures:
            observation, recommendation = render(failure)
            color = "red" if failure.is_audit else "magenta"
            self.console.print(
                Panel(
                    f"[bold]Warning:[/bold]\n{escape(observation)}\n\n"
                    f"[bold]Recommendation:[/bold]\n{escape(recommendation)}",
                    title=f"[{color}]{failure.kind.value}[/{color}]",
                    border_style=color,
                )
            )


def create_reporter(show_details: bool = True, console: Optional[Console] = None) -> ConsoleReporter:
    """Create a console reporter with the specified options."""
    return ConsoleReporter(console=console, show_details=show_details)
