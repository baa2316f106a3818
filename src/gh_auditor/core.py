"""Core audit engine for gh_auditor.

This module contains the Auditor, which runs the enabled checks against one
organisation and collects every failure into an AuditReport, and the helpers
that connect to GitHub and run a whole audit from settings.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from .checks import (
    Check,
    CheckErrored,
    CheckStatus,
    FailureDetail,
    NoAuditsRan,
    default_checks,
)
from .config import AuditConfig, AuditorSettings
from .errors import (
    AuditorError,
    DecodeError,
    OrganisationUnavailable,
    TransportError,
)
from .github import GitHubClient, OrganisationContext, Paginator, load_organisation

logger = logging.getLogger(__name__)


class AuditState(Enum):
    """Lifecycle of an Auditor run."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED_SUCCESS = "completed_success"
    COMPLETED_WITH_FAILURES = "completed_with_failures"


@dataclass
class AuditReport:
    """Failures found by one audit run, in check execution order."""

    organisation: str
    failures: List[FailureDetail] = field(default_factory=list)
    checks_run: List[str] = field(default_factory=list)
    statuses: Dict[str, str] = field(default_factory=dict)
    categories: Dict[str, str] = field(default_factory=dict)

    @property
    def no_checks_executed(self) -> bool:
        return not self.checks_run

    @property
    def passed(self) -> bool:
        """The audit passed iff nothing was reported."""
        return not self.failures

    @property
    def has_errors(self) -> bool:
        """Whether a check could not finish, as opposed to failing its policy."""
        return any(not failure.is_audit for failure in self.failures)

    @property
    def audit_failures(self) -> List[FailureDetail]:
        return [failure for failure in self.failures if failure.is_audit]


class AuditObserver:
    """Hooks called by the Auditor as a run progresses. Defaults do nothing."""

    def check_started(self, check: Check) -> None:
        pass

    def check_passed(self, check: Check) -> None:
        pass

    def check_failed(self, check: Check, failure: FailureDetail) -> None:
        pass

    def check_errored(self, check: Check, error: AuditorError) -> None:
        pass

    def audit_finished(self, report: AuditReport) -> None:
        pass


class LoggingObserver(AuditObserver):
    """Reports audit progress through the ``logging`` module."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def check_started(self, check: Check) -> None:
        self.log.info(f"Auditing {check.check_id}: {check.description}")

    def check_passed(self, check: Check) -> None:
        self.log.info(f"Check {check.check_id} passed")

    def check_failed(self, check: Check, failure: FailureDetail) -> None:
        self.log.warning(f"Check {check.check_id} failed: {failure.kind.value}")

    def check_errored(self, check: Check, error: AuditorError) -> None:
        self.log.error(f"Error running check {check.check_id}: {error}")

    def audit_finished(self, report: AuditReport) -> None:
        if report.no_checks_executed:
            self.log.warning("No audits were performed")
        self.log.info(
            f"Audit of {report.organisation} finished: "
            f"{len(report.checks_run)} checks run, {len(report.failures)} failures"
        )


class Auditor:
    """Runs the enabled checks against an organisation.

    Checks run one after another in a fixed order. A failing check never stops
    the run: its failure is recorded and the next check runs. Errors raised by
    a check (transport, decode, missing data) are recorded the same way.
    """

    def __init__(
        self,
        fetcher: Paginator,
        checks: Optional[Sequence[Check]] = None,
        observer: Optional[AuditObserver] = None,
    ):
        """Initialize an auditor.

        Args:
            fetcher: Paginated fetcher the checks read GitHub through
            checks: Checks to consider, in execution order (all built-in by default)
            observer: Receives progress notifications
        """
        self.fetcher = fetcher
        self.checks = list(checks) if checks is not None else default_checks()
        self.observer = observer or AuditObserver()
        self.state = AuditState.NOT_STARTED
        self.has_run_audit = False

    def _enabled_checks(self, config: AuditConfig) -> List[Check]:
        return [check for check in self.checks if check.is_enabled(config)]

    def _run_check(
        self, check: Check, context: OrganisationContext, config: AuditConfig
    ) -> Optional[FailureDetail]:
        self.observer.check_started(check)
        try:
            outcome = check.run(context, config, self.fetcher)
        except AuditorError as e:
            self.observer.check_errored(check, e)
            return CheckErrored(
                check_id=check.check_id,
                error_type=type(e).__name__,
                message=str(e),
            )

        if outcome.status == CheckStatus.FAIL:
            self.observer.check_failed(check, outcome.failure)
            return outcome.failure

        self.observer.check_passed(check)
        return None

    def run_audit(self, context: OrganisationContext, config: AuditConfig) -> AuditReport:
        """Run every enabled check and collect all failures.

        Args:
            context: The organisation to audit
            config: Which checks to run and their allow-lists

        Returns:
            Report of all failures; empty when the organisation passed
        """
        self.state = AuditState.RUNNING
        self.has_run_audit = False
        report = AuditReport(organisation=context.display_name)

        for check in self._enabled_checks(config):
            self.has_run_audit = True
            report.checks_run.append(check.check_id)
            report.categories[check.check_id] = check.category
            failure = self._run_check(check, context, config)
            if failure is None:
                report.statuses[check.check_id] = "pass"
            else:
                report.statuses[check.check_id] = "fail" if failure.is_audit else "error"
                report.failures.append(failure)

        if not self.has_run_audit:
            report.failures.append(NoAuditsRan())

        self.state = (
            AuditState.COMPLETED_SUCCESS
            if report.passed
            else AuditState.COMPLETED_WITH_FAILURES
        )
        self.observer.audit_finished(report)
        return report


def connect(
    settings: AuditorSettings, client: Optional[GitHubClient] = None
) -> Tuple[GitHubClient, OrganisationContext]:
    """Create the GitHub client and load the organisation to audit.

    Raises:
        OrganisationUnavailable: If the organisation cannot be fetched
    """
    client = client or GitHubClient(
        settings.token, api_url=settings.api_url, timeout=settings.timeout
    )
    try:
        context = load_organisation(client, settings.organisation)
    except (TransportError, DecodeError) as e:
        raise OrganisationUnavailable(settings.organisation, e) from e
    return client, context


def audit_organisation(
    settings: AuditorSettings,
    observer: Optional[AuditObserver] = None,
    client: Optional[GitHubClient] = None,
) -> AuditReport:
    """Load the organisation described by ``settings`` and audit it.

    A client created here is closed when the audit ends; a client passed in
    is left open for the caller.

    Raises:
        ConfigurationError: If the organisation cannot be loaded
    """
    owns_client = client is None
    if owns_client:
        client = GitHubClient(settings.token, api_url=settings.api_url, timeout=settings.timeout)
    try:
        client, context = connect(settings, client=client)
        auditor = Auditor(Paginator(client), observer=observer)
        return auditor.run_audit(context, settings.audit)
    finally:
        if owns_client:
            client.close()
