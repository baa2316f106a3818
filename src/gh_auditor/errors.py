"""Exception hierarchy for gh_auditor.

Only ``ConfigurationError`` stops a run. The other errors are scoped to the
check that raised them and end up in the audit report.
"""

from typing import Optional


class AuditorError(Exception):
    """Base class for all errors raised by gh_auditor."""


class ConfigurationError(AuditorError):
    """The auditor cannot start: bad settings, no token, unreadable config."""


class OrganisationUnavailable(ConfigurationError):
    """The organisation could not be fetched, so no check can run."""

    def __init__(self, organisation: str, cause: AuditorError):
        super().__init__(f"Could not load organisation '{organisation}': {cause}")
        self.organisation = organisation
        self.cause = cause


class TransportError(AuditorError):
    """A request to GitHub failed or returned a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None, url: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class DecodeError(AuditorError):
    """A response body was not the JSON shape the endpoint promises."""


class MissingRequiredData(AuditorError):
    """A field needed by a check is absent from an otherwise valid response."""

    def __init__(self, field: str, source: str = "GitHub data"):
        super().__init__(f"Unexpected key '{field}' missing from {source}.")
        self.field = field
        self.source = source
