"""Shared fixtures: a fake GitHub REST API behind a mocked requests session."""

import json
from typing import Any, Dict, Optional
from unittest.mock import MagicMock

import pytest
import requests

from gh_auditor.github import GitHubClient, OrganisationContext, Paginator

API = "https://api.github.com"


def make_response(
    body: Any,
    status: int = 200,
    next_url: Optional[str] = None,
    url: str = API,
    link: Optional[str] = None,
) -> requests.Response:
    """Build a real requests.Response so raise_for_status, json and links behave."""
    response = requests.Response()
    response.status_code = status
    response.url = url
    response.encoding = "utf-8"
    response._content = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
    if next_url:
        response.headers["Link"] = f'<{next_url}>; rel="next", <{url}>; rel="first"'
    elif link is not None:
        response.headers["Link"] = link
    return response


class FakeGitHub:
    """Routes GET requests by URL (query parameters are recorded, not matched)."""

    def __init__(self):
        self.routes: Dict[str, requests.Response] = {}
        self.session = MagicMock()
        self.session.headers = {}
        self.session.get.side_effect = self._get

    def add(self, url: str, body: Any, status: int = 200, next_url: Optional[str] = None, **kwargs):
        self.routes[url] = make_response(body, status=status, next_url=next_url, url=url, **kwargs)

    def add_pages(self, url: str, pages: list) -> None:
        """Register ``pages`` as a linked sequence starting at ``url``."""
        urls = [url] + [f"{url}?page={n}" for n in range(2, len(pages) + 1)]
        for index, page in enumerate(pages):
            next_url = urls[index + 1] if index + 1 < len(pages) else None
            self.add(urls[index], page, next_url=next_url)

    def _get(self, url, params=None, timeout=None):
        if url in self.routes:
            return self.routes[url]
        return make_response({"message": "Not Found"}, status=404, url=url)

    @property
    def requested_urls(self):
        return [c.args[0] for c in self.session.get.call_args_list]


def org_json(login: str = "acme", **overrides) -> Dict[str, Any]:
    data = {
        "login": login,
        "id": 1,
        "name": "Acme Corp",
        "url": f"{API}/orgs/{login}",
        "members_url": f"{API}/orgs/{login}/members{{/member}}",
        "repos_url": f"{API}/orgs/{login}/repos",
        "two_factor_requirement_enabled": True,
    }
    data.update(overrides)
    return data


def member_json(login: str) -> Dict[str, Any]:
    return {"login": login, "events_url": f"{API}/users/{login}/events{{/privacy}}"}


def repo_json(name: str, default_branch: str = "main", org: str = "acme") -> Dict[str, Any]:
    return {
        "name": name,
        "full_name": f"{org}/{name}",
        "default_branch": default_branch,
        "branches_url": f"{API}/repos/{org}/{name}/branches{{/branch}}",
    }


@pytest.fixture
def github():
    return FakeGitHub()


@pytest.fixture
def client(github):
    return GitHubClient("test-token", session=github.session)


@pytest.fixture
def fetcher(client):
    return Paginator(client)


@pytest.fixture
def context():
    return OrganisationContext.from_json(org_json())


@pytest.fixture
def compliant_org(github):
    """An organisation that passes every default check."""
    github.add(f"{API}/orgs/acme", org_json())
    github.add(f"{API}/orgs/acme/members", [member_json("alice"), member_json("bob")])
    github.add(f"{API}/users/alice/events/public", [{"type": "IssuesEvent"}])
    github.add(f"{API}/users/bob/events/public", [])
    github.add(f"{API}/orgs/acme/repos", [repo_json("widget"), repo_json("gadget", "master")])
    github.add(f"{API}/repos/acme/widget/branches", [{"name": "feature", "protected": False}])
    github.add(f"{API}/repos/acme/widget/branches/main", {"name": "main", "protected": True})
    github.add(f"{API}/repos/acme/gadget/branches", [])
    github.add(f"{API}/repos/acme/gadget/branches/master", {"name": "master", "protected": True})
    return OrganisationContext.from_json(org_json())
