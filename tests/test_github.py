"""Tests for the GitHub client, typed schemas and paginated fetcher."""

from unittest.mock import MagicMock

import pytest
import requests

from conftest import API, member_json, org_json
from gh_auditor.errors import DecodeError, MissingRequiredData, TransportError
from gh_auditor.github import (
    Branch,
    GitHubClient,
    Installation,
    Member,
    OrganisationContext,
    Repository,
    expand_template,
    load_organisation,
)

ITEMS_URL = f"{API}/orgs/acme/items"


def parse_item(data):
    return data["id"]


@pytest.fixture
def three_pages(github):
    """Pages of sizes 2, 2 and 1, linked with next links."""
    github.add_pages(
        ITEMS_URL,
        [
            [{"id": 1}, {"id": 2}],
            [{"id": 3}, {"id": 4}],
            [{"id": 5}],
        ],
    )
    return github


class TestExpandTemplate:
    """Tests for URL template expansion."""

    def test_drops_unset_path_segment(self):
        assert expand_template(f"{API}/orgs/acme/members{{/member}}") == f"{API}/orgs/acme/members"

    def test_fills_path_segment(self):
        url = expand_template(f"{API}/users/bob/events{{/privacy}}", privacy="public")
        assert url == f"{API}/users/bob/events/public"

    def test_quotes_values(self):
        url = expand_template(f"{API}/repos/a/b/branches{{/branch}}", branch="release/1.0")
        assert url == f"{API}/repos/a/b/branches/release%2F1.0"

    def test_query_expression(self):
        url = expand_template("https://x/y{?since,all}", since="2020", all=None)
        assert url == "https://x/y?since=2020"

    def test_malformed_template(self):
        with pytest.raises(ValueError):
            expand_template(f"{API}/orgs/acme/members{{/member")


class TestFetchAll:
    """Tests for collecting every page."""

    def test_concatenates_pages_in_order(self, three_pages, fetcher):
        items = fetcher.fetch_all(ITEMS_URL, parse_item)

        assert items == [1, 2, 3, 4, 5]
        assert three_pages.session.get.call_count == 3

    def test_params_only_on_first_request(self, three_pages, fetcher):
        fetcher.fetch_all(ITEMS_URL, parse_item, params={"role": "admin"})

        calls = three_pages.session.get.call_args_list
        assert calls[0].kwargs["params"] == {"role": "admin", "per_page": 100}
        assert calls[1].kwargs["params"] is None
        assert calls[2].kwargs["params"] is None

    def test_missing_link_header_is_last_page(self, github, fetcher):
        github.add(ITEMS_URL, [{"id": 1}])

        assert fetcher.fetch_all(ITEMS_URL, parse_item) == [1]
        assert github.session.get.call_count == 1

    def test_malformed_link_header_is_last_page(self, github, fetcher):
        github.add(ITEMS_URL, [{"id": 1}], link="this is not a link header")

        assert fetcher.fetch_all(ITEMS_URL, parse_item) == [1]
        assert github.session.get.call_count == 1

    def test_transport_error_aborts(self, github, fetcher):
        github.add(ITEMS_URL, [{"id": 1}], next_url=f"{ITEMS_URL}?page=2")
        github.add(f"{ITEMS_URL}?page=2", {"message": "boom"}, status=502)

        with pytest.raises(TransportError) as excinfo:
            fetcher.fetch_all(ITEMS_URL, parse_item)

        assert excinfo.value.status_code == 502

    def test_object_body_is_decode_error(self, github, fetcher):
        github.add(ITEMS_URL, {"id": 1})

        with pytest.raises(DecodeError):
            fetcher.fetch_all(ITEMS_URL, parse_item)

    def test_invalid_json_is_decode_error(self, github, fetcher):
        github.add(ITEMS_URL, b"<html>not json</html>")

        with pytest.raises(DecodeError):
            fetcher.fetch_all(ITEMS_URL, parse_item)

    def test_wrapped_list(self, github, fetcher):
        github.add(ITEMS_URL, {"total_count": 1, "installations": [{"app_slug": "ci-bot"}]})

        installations = fetcher.fetch_all(
            ITEMS_URL, Installation.from_json, items_key="installations"
        )

        assert installations == [Installation(app_slug="ci-bot")]


class TestFindFirst:
    """Tests for the early-exit search."""

    def test_stops_on_page_with_match(self, three_pages, fetcher):
        found = fetcher.find_first(ITEMS_URL, lambda item: item == 3, parse_item)

        assert found == 3
        assert three_pages.session.get.call_count == 2
        assert f"{ITEMS_URL}?page=3" not in three_pages.requested_urls

    def test_match_on_first_page(self, three_pages, fetcher):
        assert fetcher.find_first(ITEMS_URL, lambda item: item == 1, parse_item) == 1
        assert three_pages.session.get.call_count == 1

    def test_no_match_returns_none(self, three_pages, fetcher):
        assert fetcher.find_first(ITEMS_URL, lambda item: item > 10, parse_item) is None
        assert three_pages.session.get.call_count == 3


class TestGitHubClient:
    """Tests for the REST client."""

    def test_sets_bearer_auth(self, github, client):
        assert github.session.headers["Authorization"] == "Bearer test-token"
        assert github.session.headers["Accept"] == "application/vnd.github+json"

    def test_relative_url_joined_to_api(self, github, client):
        github.add(f"{API}/orgs/acme", org_json())

        assert client.get_json("/orgs/acme")["login"] == "acme"

    def test_connection_error(self):
        session = MagicMock()
        session.headers = {}
        session.get.side_effect = requests.ConnectionError("refused")
        client = GitHubClient("t", session=session)

        with pytest.raises(TransportError) as excinfo:
            client.get("/orgs/acme")

        assert excinfo.value.status_code is None

    def test_not_found(self, client):
        with pytest.raises(TransportError) as excinfo:
            client.get("/orgs/missing")

        assert excinfo.value.status_code == 404

    def test_passes_timeout(self, github):
        client = GitHubClient("t", timeout=5, session=github.session)
        github.add(f"{API}/orgs/acme", org_json())

        client.get("/orgs/acme")

        assert github.session.get.call_args.kwargs["timeout"] == 5


class TestSchemas:
    """Tests for the typed response schemas."""

    def test_member_requires_login(self):
        with pytest.raises(MissingRequiredData) as excinfo:
            Member.from_json({"events_url": "x"})
        assert excinfo.value.field == "login"

    def test_non_object_item(self):
        with pytest.raises(DecodeError):
            Member.from_json("octocat")

    def test_member_events_url(self):
        member = Member.from_json(member_json("octocat"))
        assert member.public_events_url() == f"{API}/users/octocat/events/public"

    def test_member_without_events_url(self):
        with pytest.raises(MissingRequiredData):
            Member.from_json({"login": "octocat"}).public_events_url()

    def test_branch_protected_must_be_bool(self):
        with pytest.raises(MissingRequiredData):
            Branch.from_json({"name": "main", "protected": "yes"})

    def test_repository_requires_default_branch(self):
        with pytest.raises(MissingRequiredData) as excinfo:
            Repository.from_json({"name": "widget", "branches_url": "x{/branch}"})
        assert excinfo.value.field == "default_branch"

    def test_organisation_missing_fields_are_none(self):
        context = OrganisationContext.from_json({"login": "acme"})

        assert context.two_factor_requirement_enabled is None
        with pytest.raises(MissingRequiredData):
            context.require("two_factor_requirement_enabled")
        with pytest.raises(MissingRequiredData):
            context.members_list_url()

    def test_organisation_malformed_template(self):
        context = OrganisationContext.from_json(
            org_json(members_url=f"{API}/orgs/acme/members{{/member")
        )
        with pytest.raises(MissingRequiredData):
            context.members_list_url()

    def test_installations_url(self, context):
        assert context.installations_url() == f"{API}/orgs/acme/installations"


def test_load_organisation(github, client):
    github.add(f"{API}/orgs/acme", org_json())

    context = load_organisation(client, "acme")

    assert context.login == "acme"
    assert context.two_factor_requirement_enabled is True
    assert github.requested_urls == [f"{API}/orgs/acme"]


def test_load_organisation_not_found(client):
    with pytest.raises(TransportError):
        load_organisation(client, "nope")
