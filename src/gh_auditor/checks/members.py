"""Checks on organisation membership."""

from typing import TYPE_CHECKING, List

from ..github import Event, Member
from .allowlist import compare_allowlist
from .base import (
    AdminsHaveCommits,
    AdminsMismatch,
    Check,
    CheckOutcome,
    MembersMismatch,
)

if TYPE_CHECKING:
    from ..config import AuditConfig
    from ..github import OrganisationContext, Paginator

PUSH_EVENT = "PushEvent"


def list_members(
    context: "OrganisationContext", fetcher: "Paginator", role: str = "all"
) -> List[Member]:
    """List organisation members, optionally only those with ``role``."""
    return fetcher.fetch_all(
        context.members_list_url(), Member.from_json, params={"role": role}
    )


class AdminCommitActivityCheck(Check):
    """Check that admin accounts are not used to push code.

    Only whether an admin pushed at all matters, so each admin's public
    activity feed is read just until the first push event.
    """

    def __init__(self):
        super().__init__(
            check_id="admin_commit_activity",
            description="Checks that organisation admins have no push activity",
        )

    @property
    def category(self) -> str:
        return "members"

    def run(
        self,
        context: "OrganisationContext",
        config: "AuditConfig",
        fetcher: "Paginator",
    ) -> CheckOutcome:
        pushing_admins = []
        for admin in list_members(context, fetcher, role="admin"):
            push = fetcher.find_first(
                admin.public_events_url(),
                lambda event: event.type == PUSH_EVENT,
                Event.from_json,
            )
            if push is not None:
                pushing_admins.append(admin.login)

        if pushing_admins:
            return CheckOutcome.failed(AdminsHaveCommits(admins=tuple(pushing_admins)))
        return CheckOutcome.passed()


class AdminAllowListCheck(Check):
    """Check the organisation's admins against an allow-list."""

    def __init__(self):
        super().__init__(
            check_id="admin_allowlist",
            description="Checks that organisation admins match the allow-list",
        )

    @property
    def category(self) -> str:
        return "members"

    def run(
        self,
        context: "OrganisationContext",
        config: "AuditConfig",
        fetcher: "Paginator",
    ) -> CheckOutcome:
        admins = list_members(context, fetcher, role="admin")
        unexpected, missing = compare_allowlist(
            (a.login for a in admins), config.admin_allowlist
        )
        if unexpected or missing:
            return CheckOutcome.failed(AdminsMismatch(unexpected=unexpected, missing=missing))
        return CheckOutcome.passed()


class MemberAllowListCheck(Check):
    """Check all organisation members against an allow-list."""

    def __init__(self):
        super().__init__(
            check_id="member_allowlist",
            description="Checks that organisation members match the allow-list",
        )

    @property
    def category(self) -> str:
        return "members"

    def run(
        self,
        context: "OrganisationContext",
        config: "AuditConfig",
        fetcher: "Paginator",
    ) -> CheckOutcome:
        members = list_members(context, fetcher)
        unexpected, missing = compare_allowlist(
            (m.login for m in members), config.member_allowlist
        )
        if unexpected or missing:
            return CheckOutcome.failed(MembersMismatch(unexpected=unexpected, missing=missing))
        return CheckOutcome.passed()
