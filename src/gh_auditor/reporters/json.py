"""JSON reporter for gh_auditor."""

import json
from typing import IO, TYPE_CHECKING, Any, Dict, Optional

import click

from .formatter import render

if TYPE_CHECKING:
    from ..core import AuditReport


class JSONReporter:
    """Reporter that outputs an audit report in JSON format."""

    def __init__(self, show_details: bool = True, stream: Optional[IO[str]] = None):
        """Initialize the JSON reporter.

        Args:
            show_details: Whether to include the evidence of each failure
            stream: Where to write (stdout by default)
        """
        self.show_details = show_details
        self.stream = stream

    def report(self, report: "AuditReport") -> None:
        """Write a JSON document describing the audit report."""
        click.echo(json.dumps(self.to_dict(report), indent=2), file=self.stream)

    def to_dict(self, report: "AuditReport") -> Dict[str, Any]:
        failures = []
        for failure in report.failures:
            observation, recommendation = render(failure)
            failure_data = {
                "kind": failure.kind.value,
                "is_audit": failure.is_audit,
                "observation": observation,
                "recommendation": recommendation,
            }
            if self.show_details:
                failure_data["evidence"] = failure.evidence()
            failures.append(failure_data)

        return {
            "organisation": report.organisation,
            "passed": report.passed,
            "audit_failure_count": len(report.audit_failures),
            "checks_run": [
                {
                    "check_id": check_id,
                    "category": report.categories.get(check_id, "general"),
                    "status": report.statuses.get(check_id, "pass"),
                }
                for check_id in report.checks_run
            ],
            "failures": failures,
        }


def create_reporter(show_details: bool = True, stream: Optional[IO[str]] = None) -> JSONReporter:
    """Create a JSON reporter with the specified options."""
    return JSONReporter(show_details=show_details, stream=stream)
