"""Base classes for implementing checks in gh_auditor."""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Dict, Optional, Tuple

# Use TYPE_CHECKING to avoid circular imports
if TYPE_CHECKING:
    from ..config import AuditConfig
    from ..github import OrganisationContext, Paginator


class CheckStatus(Enum):
    """Status of a check run."""

    PASS = "pass"
    FAIL = "fail"


class FailureKind(Enum):
    """Tag of a FailureDetail."""

    DISABLED_2FA = "disabled_2fa"
    ADMINS_HAVE_COMMITS = "admins_have_commits"
    UNPROTECTED_MASTER_BRANCHES = "unprotected_master_branches"
    INSTALLED_APPS_MISMATCH = "installed_apps_mismatch"
    ADMINS_MISMATCH = "admins_mismatch"
    MEMBERS_MISMATCH = "members_mismatch"
    NO_AUDITS_RAN = "no_audits_ran"
    CHECK_ERRORED = "check_errored"


@dataclass(frozen=True)
class FailureDetail:
    """Evidence for one failed audit. Subclasses are the variants."""

    kind: ClassVar[FailureKind]

    @property
    def is_audit(self) -> bool:
        """False when the failure is an error rather than a policy violation."""
        return True

    def evidence(self) -> Dict[str, Any]:
        return {}


@dataclass(frozen=True)
class Disabled2Fa(FailureDetail):
    kind: ClassVar[FailureKind] = FailureKind.DISABLED_2FA


@dataclass(frozen=True)
class AdminsHaveCommits(FailureDetail):
    kind: ClassVar[FailureKind] = FailureKind.ADMINS_HAVE_COMMITS

    admins: Tuple[str, ...] = ()

    def evidence(self) -> Dict[str, Any]:
        return {"admins": list(self.admins)}


@dataclass(frozen=True)
class UnprotectedMasterBranches(FailureDetail):
    kind: ClassVar[FailureKind] = FailureKind.UNPROTECTED_MASTER_BRANCHES

    repositories: Tuple[str, ...] = ()

    def evidence(self) -> Dict[str, Any]:
        return {"repositories": list(self.repositories)}


@dataclass(frozen=True)
class AllowListMismatch(FailureDetail):
    """Identifiers present but not allowed, and allowed but not present."""

    unexpected: Tuple[str, ...] = ()
    missing: Tuple[str, ...] = ()

    def evidence(self) -> Dict[str, Any]:
        return {"unexpected": list(self.unexpected), "missing": list(self.missing)}


@dataclass(frozen=True)
class InstalledAppsMismatch(AllowListMismatch):
    kind: ClassVar[FailureKind] = FailureKind.INSTALLED_APPS_MISMATCH


@dataclass(frozen=True)
class AdminsMismatch(AllowListMismatch):
    kind: ClassVar[FailureKind] = FailureKind.ADMINS_MISMATCH


@dataclass(frozen=True)
class MembersMismatch(AllowListMismatch):
    kind: ClassVar[FailureKind] = FailureKind.MEMBERS_MISMATCH


@dataclass(frozen=True)
class NoAuditsRan(FailureDetail):
    kind: ClassVar[FailureKind] = FailureKind.NO_AUDITS_RAN


@dataclass(frozen=True)
class CheckErrored(FailureDetail):
    """A check could not finish because of a transport, decode or data error."""

    kind: ClassVar[FailureKind] = FailureKind.CHECK_ERRORED

    check_id: str = ""
    error_type: str = ""
    message: str = ""

    @property
    def is_audit(self) -> bool:
        return False

    def evidence(self) -> Dict[str, Any]:
        return {
            "check_id": self.check_id,
            "error_type": self.error_type,
            "message": self.message,
        }


@dataclass(frozen=True)
class CheckOutcome:
    """Result of a single check: passed, or failed with its evidence."""

    status: CheckStatus
    failure: Optional[FailureDetail] = field(default=None)

    @classmethod
    def passed(cls) -> "CheckOutcome":
        return cls(CheckStatus.PASS)

    @classmethod
    def failed(cls, failure: FailureDetail) -> "CheckOutcome":
        return cls(CheckStatus.FAIL, failure)


class Check:
    """Base class for all checks.

    A check only reads: the organisation context, the audit configuration and
    whatever it pulls through the paginator. It returns an outcome and leaves
    logging to the caller.
    """

    def __init__(self, check_id: str, description: str):
        self.check_id = check_id
        self.description = description

    def is_enabled(self, config: "AuditConfig") -> bool:
        """Whether the configuration asks for this check to run."""
        return config.is_enabled(self.check_id)

    def run(
        self,
        context: "OrganisationContext",
        config: "AuditConfig",
        fetcher: "Paginator",
    ) -> CheckOutcome:
        """Run this check against an organisation."""
        raise NotImplementedError("Subclasses must implement run()")

    @property
    def category(self) -> str:
        """Category this check belongs to."""
        return "general"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.check_id!r})"
