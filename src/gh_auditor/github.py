"""GitHub REST API access for gh_auditor.

This module holds the thin HTTP client, the typed schemas for each endpoint the
checks read, and the paginated fetcher that walks GitHub's ``Link`` headers.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Dict,
    Iterator,
    List,
    Optional,
    Tuple,
    TypeVar,
)
from urllib.parse import quote

import requests

from .errors import DecodeError, MissingRequiredData, TransportError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 30.0
DEFAULT_PAGE_SIZE = 100
API_VERSION = "2022-11-28"

T = TypeVar("T")

_TEMPLATE_EXPRESSION = re.compile(r"\{([/?&]?)([A-Za-z0-9_,]+)\}")


def expand_template(template: str, **values: Any) -> str:
    """Expand a GitHub hypermedia URL template.

    GitHub only uses a handful of RFC 6570 forms (``{/member}``,
    ``{?since,all}``, ``{&page}`` and plain ``{owner}``); variables without a
    value are dropped together with their prefix.

    Args:
        template: URL template as returned by the API
        **values: Variables to substitute

    Returns:
        The expanded URL

    Raises:
        ValueError: If the template contains unbalanced or unknown expressions
    """

    def substitute(match: "re.Match[str]") -> str:
        operator, names = match.group(1), match.group(2).split(",")
        present = [(name, values[name]) for name in names if values.get(name) is not None]
        if not present:
            return ""
        if operator == "/":
            return "".join(f"/{quote(str(value), safe='')}" for _, value in present)
        if operator in ("?", "&"):
            query = "&".join(
                f"{name}={quote(str(value), safe='')}" for name, value in present
            )
            return f"{operator}{query}"
        return ",".join(quote(str(value), safe="") for _, value in present)

    expanded = _TEMPLATE_EXPRESSION.sub(substitute, template)
    if "{" in expanded or "}" in expanded:
        raise ValueError(f"Malformed URL template: {template}")
    return expanded


def _expand(template: Optional[str], field_name: str, source: str, **values: Any) -> str:
    if not template:
        raise MissingRequiredData(field_name, source)
    try:
        return expand_template(template, **values)
    except ValueError:
        raise MissingRequiredData(field_name, f"{source} (malformed URL template)")


def _require(data: Dict[str, Any], key: str, kind: type, source: str) -> Any:
    value = data.get(key)
    # bool is a subclass of int, keep them apart
    if value is None or not isinstance(value, kind) or (
        kind is not bool and isinstance(value, bool)
    ):
        raise MissingRequiredData(key, source)
    return value


def _optional(data: Dict[str, Any], key: str, kind: type) -> Any:
    value = data.get(key)
    return value if isinstance(value, kind) else None


def _as_object(item: Any, source: str) -> Dict[str, Any]:
    if not isinstance(item, dict):
        raise DecodeError(f"Expected a JSON object for {source}, got {type(item).__name__}")
    return item


@dataclass(frozen=True)
class OrganisationContext:
    """Snapshot of the audited organisation, as returned by ``GET /orgs/{org}``.

    Every field is optional here. Checks call :meth:`require` for the fields
    they need so that a missing field only fails the check that wanted it.
    """

    login: Optional[str] = None
    id: Optional[int] = None
    name: Optional[str] = None
    url: Optional[str] = None
    members_url: Optional[str] = None
    repos_url: Optional[str] = None
    two_factor_requirement_enabled: Optional[bool] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_json(cls, data: Any) -> "OrganisationContext":
        data = _as_object(data, "organisation")
        return cls(
            login=_optional(data, "login", str),
            id=_optional(data, "id", int),
            name=_optional(data, "name", str),
            url=_optional(data, "url", str),
            members_url=_optional(data, "members_url", str),
            repos_url=_optional(data, "repos_url", str),
            two_factor_requirement_enabled=_optional(
                data, "two_factor_requirement_enabled", bool
            ),
            raw=dict(data),
        )

    @property
    def display_name(self) -> str:
        return self.login or self.name or "<unknown organisation>"

    def require(self, field_name: str) -> Any:
        """Get a field that a check cannot do without.

        Raises:
            MissingRequiredData: If the field was absent from the API response
        """
        value = getattr(self, field_name, None)
        if value is None:
            raise MissingRequiredData(field_name, "organisation")
        return value

    def members_list_url(self) -> str:
        return _expand(self.members_url, "members_url", "organisation")

    def installations_url(self) -> str:
        return f"{self.require('url').rstrip('/')}/installations"


@dataclass(frozen=True)
class Member:
    """An organisation member (``GET /orgs/{org}/members``)."""

    login: str
    events_url: Optional[str] = None

    @classmethod
    def from_json(cls, data: Any) -> "Member":
        data = _as_object(data, "member")
        return cls(
            login=_require(data, "login", str, "member"),
            events_url=_optional(data, "events_url", str),
        )

    def public_events_url(self) -> str:
        return _expand(self.events_url, "events_url", f"member '{self.login}'", privacy="public")


@dataclass(frozen=True)
class Event:
    """An entry of a user's activity feed."""

    type: str
    id: Optional[str] = None

    @classmethod
    def from_json(cls, data: Any) -> "Event":
        data = _as_object(data, "event")
        return cls(type=_require(data, "type", str, "event"), id=_optional(data, "id", str))


@dataclass(frozen=True)
class Repository:
    """An organisation repository (``GET /orgs/{org}/repos``)."""

    name: str
    default_branch: str
    branches_url: str
    full_name: Optional[str] = None
    archived: bool = False

    @classmethod
    def from_json(cls, data: Any) -> "Repository":
        data = _as_object(data, "repository")
        name = _require(data, "name", str, "repository")
        source = f"repository '{name}'"
        return cls(
            name=name,
            default_branch=_require(data, "default_branch", str, source),
            branches_url=_require(data, "branches_url", str, source),
            full_name=_optional(data, "full_name", str),
            archived=bool(_optional(data, "archived", bool)),
        )

    @property
    def display_name(self) -> str:
        return self.full_name or self.name

    def branches_list_url(self) -> str:
        return _expand(self.branches_url, "branches_url", f"repository '{self.name}'")

    def branch_url(self, branch: str) -> str:
        return _expand(
            self.branches_url, "branches_url", f"repository '{self.name}'", branch=branch
        )


@dataclass(frozen=True)
class Branch:
    """A repository branch with its protection flag."""

    name: str
    protected: bool

    @classmethod
    def from_json(cls, data: Any) -> "Branch":
        data = _as_object(data, "branch")
        name = _require(data, "name", str, "branch")
        return cls(name=name, protected=_require(data, "protected", bool, f"branch '{name}'"))


@dataclass(frozen=True)
class Installation:
    """A GitHub App installed on the organisation."""

    app_slug: str
    id: Optional[int] = None

    @classmethod
    def from_json(cls, data: Any) -> "Installation":
        data = _as_object(data, "installation")
        return cls(
            app_slug=_require(data, "app_slug", str, "installation"),
            id=_optional(data, "id", int),
        )


class GitHubClient:
    """Client for the GitHub REST API.

    Only issues authenticated GET requests. Every failure, including a non-2xx
    status, is raised as :class:`TransportError`; nothing is retried.
    """

    def __init__(
        self,
        token: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the REST client.

        Args:
            token: GitHub personal access token
            api_url: GitHub REST API URL (override for GitHub Enterprise)
            timeout: Per-request timeout in seconds
            session: Session to send requests with (a new one by default)
        """
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": API_VERSION,
                "User-Agent": "gh-auditor",
            }
        )

    def _absolute(self, url: str) -> str:
        if url.startswith("/"):
            return f"{self.api_url}{url}"
        return url

    def get(self, url: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        """Send a GET request.

        Args:
            url: Absolute URL, or a path relative to the API URL
            params: Query parameters

        Returns:
            The successful response

        Raises:
            TransportError: On connection failure or a non-2xx status
        """
        url = self._absolute(url)
        logger.debug(f"GET {url} params={params}")
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"Request to {url} failed: {e}", url=url) from e

        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise TransportError(
                f"GitHub returned {response.status_code} for {url}",
                status_code=response.status_code,
                url=url,
            ) from e
        return response

    @staticmethod
    def decode(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"Response from {response.url} is not valid JSON: {e}") from e

    def get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET a URL and decode its JSON body."""
        return self.decode(self.get(url, params=params))

    def close(self) -> None:
        self.session.close()


def next_page_url(response: requests.Response) -> Optional[str]:
    """Get the ``next`` relation from a response's ``Link`` header.

    A missing or unparseable header means there is no further page.
    """
    try:
        links = response.links
    except (ValueError, TypeError, AttributeError):
        logger.debug("Ignoring malformed Link header")
        return None
    if not isinstance(links, dict):
        return None
    next_link = links.get("next")
    if not isinstance(next_link, dict):
        return None
    url = next_link.get("url")
    return url if isinstance(url, str) and url else None


class Paginator:
    """Walks GitHub's paginated list endpoints.

    ``fetch_all`` collects every page while ``find_first`` stops as soon as an
    item matches, so a yes/no question never pulls more pages than needed.
    A failure on any page aborts the whole walk.
    """

    def __init__(self, client: GitHubClient, page_size: int = DEFAULT_PAGE_SIZE):
        self.client = client
        self.page_size = page_size

    def _get_page(
        self, url: str, params: Optional[Dict[str, Any]], items_key: Optional[str]
    ) -> Tuple[List[Any], Optional[str]]:
        response = self.client.get(url, params=params)
        body = self.client.decode(response)

        if items_key is not None:
            if not isinstance(body, dict) or not isinstance(body.get(items_key), list):
                raise DecodeError(f"Expected a '{items_key}' array in response from {url}")
            body = body[items_key]
        elif not isinstance(body, list):
            raise DecodeError(f"Expected a JSON array in response from {url}")

        return body, next_page_url(response)

    def iter_pages(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        items_key: Optional[str] = None,
    ) -> Iterator[List[Any]]:
        """Yield raw pages lazily, following ``next`` links until exhausted.

        Query parameters only go on the first request; GitHub repeats them in
        the ``next`` link.
        """
        cursor: Optional[str] = url
        page_params = dict(params or {})
        page_params.setdefault("per_page", self.page_size)
        pages = 0

        while cursor is not None:
            items, next_cursor = self._get_page(cursor, page_params, items_key)
            pages += 1
            logger.debug(f"Fetched page {pages} of {url} ({len(items)} items)")
            yield items
            cursor = next_cursor
            page_params = None

    def fetch_all(
        self,
        url: str,
        parse: Callable[[Any], T],
        params: Optional[Dict[str, Any]] = None,
        items_key: Optional[str] = None,
    ) -> List[T]:
        """Fetch every item of a paginated collection, in server order.

        Args:
            url: URL of the first page
            parse: Converts one JSON item into a typed value
            params: Query parameters for the first request
            items_key: Name of the array member when the endpoint wraps its list

        Returns:
            All items of all pages

        Raises:
            TransportError: If any page request fails
            DecodeError: If any page is not a list of JSON objects
            MissingRequiredData: If an item lacks a required field
        """
        results: List[T] = []
        for page in self.iter_pages(url, params=params, items_key=items_key):
            results.extend(parse(item) for item in page)
        return results

    def find_first(
        self,
        url: str,
        predicate: Callable[[T], bool],
        parse: Callable[[Any], T],
        params: Optional[Dict[str, Any]] = None,
        items_key: Optional[str] = None,
    ) -> Optional[T]:
        """Find the first item matching ``predicate`` without reading further pages.

        Returns:
            The first matching item, or None when the collection is exhausted
        """
        for page in self.iter_pages(url, params=params, items_key=items_key):
            for item in page:
                parsed = parse(item)
                if predicate(parsed):
                    return parsed
        return None

    def get_one(self, url: str, parse: Callable[[Any], T]) -> T:
        """Fetch a singular resource."""
        return parse(self.client.get_json(url))


def load_organisation(client: GitHubClient, identifier: str) -> OrganisationContext:
    """Fetch the organisation every check runs against.

    Raises:
        TransportError: If the request fails
        DecodeError: If the body is not a JSON object
    """
    logger.info(f"Loading organisation {identifier}")
    data = client.get_json(f"/orgs/{quote(identifier, safe='')}")
    return OrganisationContext.from_json(data)
