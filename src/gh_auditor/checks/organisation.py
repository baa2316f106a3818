"""Checks on organisation-wide settings."""

from typing import TYPE_CHECKING

from ..github import Installation
from .base import (
    Check,
    CheckOutcome,
    Disabled2Fa,
    InstalledAppsMismatch,
)
from .allowlist import compare_allowlist

if TYPE_CHECKING:
    from ..config import AuditConfig
    from ..github import OrganisationContext, Paginator


class TwoFactorCheck(Check):
    """Check that members must have two-factor authentication enabled."""

    def __init__(self):
        super().__init__(
            check_id="two_factor",
            description="Checks that 2FA is required for all members of the organisation",
        )

    @property
    def category(self) -> str:
        return "organisation"

    def run(
        self,
        context: "OrganisationContext",
        config: "AuditConfig",
        fetcher: "Paginator",
    ) -> CheckOutcome:
        # Only visible to organisation owners; absent means the token can't tell
        if context.require("two_factor_requirement_enabled"):
            return CheckOutcome.passed()
        return CheckOutcome.failed(Disabled2Fa())


class InstalledAppsAllowListCheck(Check):
    """Check the GitHub Apps installed on the organisation against an allow-list."""

    def __init__(self):
        super().__init__(
            check_id="installed_apps_allowlist",
            description="Checks that installed GitHub Apps match the allow-list",
        )

    @property
    def category(self) -> str:
        return "organisation"

    def run(
        self,
        context: "OrganisationContext",
        config: "AuditConfig",
        fetcher: "Paginator",
    ) -> CheckOutcome:
        installations = fetcher.fetch_all(
            context.installations_url(),
            Installation.from_json,
            items_key="installations",
        )
        unexpected, missing = compare_allowlist(
            (i.app_slug for i in installations), config.installed_app_allowlist
        )
        if unexpected or missing:
            return CheckOutcome.failed(
                InstalledAppsMismatch(unexpected=unexpected, missing=missing)
            )
        return CheckOutcome.passed()
