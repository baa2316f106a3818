"""Allow-list comparison shared by the allow-list checks."""

from typing import FrozenSet, Iterable, Tuple


def compare_allowlist(
    actual: Iterable[str], allowed: FrozenSet[str]
) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    """Compare observed identifiers with an allow-list.

    GitHub logins and app slugs are case-insensitive, so is the comparison.

    Args:
        actual: Identifiers found in the organisation
        allowed: Identifiers that are allowed (and expected) to be there

    Returns:
        ``(unexpected, missing)``, each sorted
    """
    actual_by_key = {name.lower(): name for name in actual}
    allowed_by_key = {name.lower(): name for name in allowed}
    unexpected = sorted(
        name for key, name in actual_by_key.items() if key not in allowed_by_key
    )
    missing = sorted(
        name for key, name in allowed_by_key.items() if key not in actual_by_key
    )
    return tuple(unexpected), tuple(missing)
