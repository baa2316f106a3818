"""Checks run by gh_auditor, in the order the auditor runs them."""

from typing import List

from .base import (
    AdminsHaveCommits,
    AdminsMismatch,
    AllowListMismatch,
    Check,
    CheckErrored,
    CheckOutcome,
    CheckStatus,
    Disabled2Fa,
    FailureDetail,
    FailureKind,
    InstalledAppsMismatch,
    MembersMismatch,
    NoAuditsRan,
    UnprotectedMasterBranches,
)
from .members import AdminAllowListCheck, AdminCommitActivityCheck, MemberAllowListCheck
from .organisation import InstalledAppsAllowListCheck, TwoFactorCheck
from .repositories import MasterBranchProtectionCheck


def default_checks() -> List[Check]:
    """All built-in checks, in execution order.

    New checks are appended at the end so existing report order is kept.
    """
    return [
        TwoFactorCheck(),
        AdminCommitActivityCheck(),
        MasterBranchProtectionCheck(),
        InstalledAppsAllowListCheck(),
        AdminAllowListCheck(),
        MemberAllowListCheck(),
    ]


__all__ = [
    "AdminAllowListCheck",
    "AdminCommitActivityCheck",
    "AdminsHaveCommits",
    "AdminsMismatch",
    "AllowListMismatch",
    "Check",
    "CheckErrored",
    "CheckOutcome",
    "CheckStatus",
    "Disabled2Fa",
    "FailureDetail",
    "FailureKind",
    "InstalledAppsAllowListCheck",
    "InstalledAppsMismatch",
    "MasterBranchProtectionCheck",
    "MemberAllowListCheck",
    "MembersMismatch",
    "NoAuditsRan",
    "TwoFactorCheck",
    "UnprotectedMasterBranches",
    "default_checks",
]
