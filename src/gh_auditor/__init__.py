"""
gh_auditor
------------------------------------
Audit and enforce an access policy for a GitHub organisation.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("gh-auditor")
except PackageNotFoundError:
    __version__ = "unknown"
