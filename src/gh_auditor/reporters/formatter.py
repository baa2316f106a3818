"""Remediation text for each kind of audit failure."""

from typing import Callable, Dict, Tuple

from ..checks.base import (
    AllowListMismatch,
    FailureDetail,
    FailureKind,
)


def _join(names) -> str:
    return ", ".join(names)


def _mismatch(detail: AllowListMismatch, what: str) -> str:
    parts = []
    if detail.unexpected:
        parts.append(f"not on the allow-list: {_join(detail.unexpected)}")
    if detail.missing:
        parts.append(f"on the allow-list but absent: {_join(detail.missing)}")
    return f"The organisation's {what} do not match the allow-list ({'; '.join(parts)})."


_OBSERVATIONS: Dict[FailureKind, Callable[[FailureDetail], str]] = {
    FailureKind.DISABLED_2FA: lambda d: (
        "2 Factor Authentication is not required for members of the organisation."
    ),
    FailureKind.ADMINS_HAVE_COMMITS: lambda d: (
        "Admins have commit activity. This is usually an indication that admin "
        "members are using their accounts for purposes other than administration. "
        f"Admins with pushes: {_join(d.admins)}."
    ),
    FailureKind.UNPROTECTED_MASTER_BRANCHES: lambda d: (
        "The default branch of these repositories is not protected: "
        f"{_join(d.repositories)}."
    ),
    FailureKind.INSTALLED_APPS_MISMATCH: lambda d: _mismatch(d, "installed apps"),
    FailureKind.ADMINS_MISMATCH: lambda d: _mismatch(d, "admins"),
    FailureKind.MEMBERS_MISMATCH: lambda d: _mismatch(d, "members"),
    FailureKind.NO_AUDITS_RAN: lambda d: "No audits were performed.",
    FailureKind.CHECK_ERRORED: lambda d: (
        f"The '{d.check_id}' audit could not complete ({d.error_type}): {d.message}"
    ),
}

_RECOMMENDATIONS: Dict[FailureKind, str] = {
    FailureKind.DISABLED_2FA: "Enable 2FA as a requirement for all members of the organisation.",
    FailureKind.ADMINS_HAVE_COMMITS: (
        "Create separate accounts for administration access to the organisation."
    ),
    FailureKind.UNPROTECTED_MASTER_BRANCHES: (
        "Add a branch protection rule for the default branch of each listed repository."
    ),
    FailureKind.INSTALLED_APPS_MISMATCH: (
        "Uninstall apps that are not allowed, or update the installed app allow-list."
    ),
    FailureKind.ADMINS_MISMATCH: (
        "Review the organisation owners, or update the admin allow-list."
    ),
    FailureKind.MEMBERS_MISMATCH: (
        "Review the organisation membership, or update the member allow-list."
    ),
    FailureKind.NO_AUDITS_RAN: "Adjust your configuration to enable some of the audit procedures.",
    FailureKind.CHECK_ERRORED: (
        "Check that the token can read the organisation and that GitHub is reachable, "
        "then run the audit again."
    ),
}


def render(detail: FailureDetail) -> Tuple[str, str]:
    """Render a failure as ``(observation, recommendation)``.

    Args:
        detail: The failure to describe

    Returns:
        What was observed, and what to do about it
    """
    return _OBSERVATIONS[detail.kind](detail), _RECOMMENDATIONS[detail.kind]

