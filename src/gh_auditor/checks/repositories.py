"""Checks on the organisation's repositories."""

from typing import TYPE_CHECKING

from ..errors import TransportError
from ..github import Branch, Repository
from .base import Check, CheckOutcome, UnprotectedMasterBranches

if TYPE_CHECKING:
    from ..config import AuditConfig
    from ..github import OrganisationContext, Paginator


class MasterBranchProtectionCheck(Check):
    """Check that every repository protects its default branch.

    Archived repositories are read-only and are skipped.
    """

    def __init__(self):
        super().__init__(
            check_id="master_branch_protection",
            description="Checks that the default branch of every repository is protected",
        )

    @property
    def category(self) -> str:
        return "repositories"

    def _is_protected(self, repo: Repository, fetcher: "Paginator") -> bool:
        """Find out whether ``repo``'s default branch is protected.

        The branch is first looked up in the listing filtered to unprotected
        branches. The filter is not trusted on its own: a listed branch still
        has its flag read, and a branch that is not listed is fetched by name.
        """
        listed = fetcher.find_first(
            repo.branches_list_url(),
            lambda branch: branch.name == repo.default_branch,
            Branch.from_json,
            params={"protected": "false"},
        )
        if listed is not None:
            return listed.protected

        try:
            branch = fetcher.get_one(repo.branch_url(repo.default_branch), Branch.from_json)
        except TransportError as e:
            # no such branch, e.g. an empty repository
            if e.status_code == 404:
                return False
            raise
        return branch.protected

    def run(
        self,
        context: "OrganisationContext",
        config: "AuditConfig",
        fetcher: "Paginator",
    ) -> CheckOutcome:
        repos = fetcher.fetch_all(context.require("repos_url"), Repository.from_json)
        unprotected = tuple(
            repo.display_name
            for repo in repos
            if not repo.archived and not self._is_protected(repo, fetcher)
        )
        if unprotected:
            return CheckOutcome.failed(UnprotectedMasterBranches(repositories=unprotected))
        return CheckOutcome.passed()
