from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable

import httpx

from rustcred.application.paging import PAGE_SIZE, fetch_all_pages
from rustcred.domain.entities import Contribution, PullRequest, TextRef, User
from rustcred.domain.errors import ErrorKind, RemoteError
from rustcred.domain.interfaces import IRemoteClient

log = logging.getLogger(__name__)

GITHUB_API_URL  = "https://api.github.com"
GITHUB_RAW_URL  = "https://raw.githubusercontent.com"
APP_NAME        = "RustCred"
REQUEST_TIMEOUT = 30.0
MAX_RETRIES     = 5
# GitHub search never returns more than 1,000 results for one query
SEARCH_RESULT_CAP = 1000


class GitHubClient(IRemoteClient):
    """
    Concrete implementation of IRemoteClient for GitHub's REST API.

    Speaks to two hosts: the REST API for stargazers, contributors and
    search, and raw.githubusercontent.com for the configuration files.
    The httpx.AsyncClient is owned by the caller; tests hand in one
    built on a MockTransport.

    One instance holds one credential. Rate-limit backoff is tracked on
    the instance, so every task sharing it pauses together when GitHub
    throttles that credential.
    """

    def __init__(
        self,
        token: str,
        client: httpx.AsyncClient,
        project: str,
        github_user: str | None = None,
        api_url: str = GITHUB_API_URL,
        raw_url: str = GITHUB_RAW_URL,
        page_size: int = PAGE_SIZE,
        max_retries: int = MAX_RETRIES,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if not token:
            raise ValueError("a non-empty GitHub token is required")
        self._client      = client
        self._project     = project
        self._api_url     = api_url.rstrip("/")
        self._raw_url     = raw_url.rstrip("/")
        self._page_size   = page_size
        self._max_retries = max_retries
        self._sleep       = sleep
        self._resume_at   = 0.0
        self._headers = {
            # GitHub rejects requests without a User-Agent outright
            "User-Agent": APP_NAME,
            "Accept":     "application/vnd.github+json",
        }
        self._auth: httpx.Auth | None = None
        if github_user:
            self._auth = httpx.BasicAuth(github_user, token)
        else:
            self._headers["Authorization"] = f"Bearer {token}"

    # Rate limiting
    @staticmethod
    def _rate_limit_wait(response: httpx.Response, attempt: int) -> float | None:
        """
        Seconds to wait if `response` is a throttling response, else None.

        GitHub signals primary limits with 403 + X-RateLimit-Remaining: 0
        and secondary limits with 403/429 + Retry-After or a message body.
        """
        if response.status_code not in (403, 429):
            return None

        retry_after = response.headers.get("Retry-After")
        remaining   = response.headers.get("X-RateLimit-Remaining")
        reset       = response.headers.get("X-RateLimit-Reset")
        limited = (
            response.status_code == 429
            or retry_after is not None
            or remaining == "0"
            or "rate limit" in response.text.lower()
        )
        if not limited:
            return None

        try:
            if retry_after is not None:
                return max(0.0, float(retry_after))
            if remaining == "0" and reset is not None:
                return max(0.0, int(reset) - time.time()) + 1
        except ValueError:
            log.debug("Unparseable rate-limit headers: retry-after=%r reset=%r", retry_after, reset)
        return float(2 ** attempt)   # exponential backoff: 1s, 2s, 4s, 8s, 16s

    async def _wait_for_rate_limit(self) -> None:
        delay = self._resume_at - time.monotonic()
        if delay > 0:
            log.info("Rate limited - sleeping %.0fs before next request …", delay)
            await self._sleep(delay)

    def _check_status(self, response: httpx.Response, attempt: int) -> None:
        """Translate an HTTP error status into a RemoteError."""
        status = response.status_code
        if status < 300:
            return

        url = str(response.request.url)
        if status < 400:
            # A redirect that could not be followed: the resource has moved away
            raise RemoteError(ErrorKind.NOT_FOUND, f"{status} for {url} without a usable Location")
        wait = self._rate_limit_wait(response, attempt)
        if wait is not None:
            raise RemoteError(ErrorKind.RATE_LIMITED, f"{status} for {url}", retry_after=wait)
        if status in (401, 403):
            raise RemoteError(ErrorKind.UNAUTHORIZED, f"{status} for {url}: {response.text[:200]}")
        if status in (404, 422):
            raise RemoteError(ErrorKind.NOT_FOUND, f"{status} for {url}")
        raise RemoteError(ErrorKind.NETWORK, f"{status} for {url}: {response.text[:200]}")

    async def _get(self, url: str, params: dict[str, Any] | None = None) -> httpx.Response:
        """
        GET with the client headers and credential.

        Only rate limiting is retried, up to `max_retries` times; the last
        RATE_LIMITED error is raised once retries run out. Everything else
        fails on the first attempt.
        """
        attempt = 0
        while True:
            await self._wait_for_rate_limit()
            try:
                response = await self._client.get(
                    url,
                    params=params,
                    headers=self._headers,
                    auth=self._auth,
                    timeout=REQUEST_TIMEOUT,
                    follow_redirects=True,
                )
            except httpx.RequestError as exc:
                raise RemoteError(ErrorKind.NETWORK, f"{url}: {exc!r}") from exc

            try:
                self._check_status(response, attempt)
                return response
            except RemoteError as exc:
                if not exc.is_retryable or attempt >= self._max_retries:
                    raise
                self._resume_at = max(self._resume_at, time.monotonic() + exc.retry_after)
                log.warning("Rate limited attempt %d/%d: %s", attempt + 1, self._max_retries, exc.detail)
            attempt += 1

    async def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        response = await self._get(url, params)
        if response.status_code == 204:
            return []
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteError(ErrorKind.DECODE, f"invalid JSON from {url}: {exc}") from exc

    async def _get_list_page(self, path: str, page: int) -> list[dict]:
        url  = f"{self._api_url}{path}"
        data = await self._get_json(url, {"per_page": self._page_size, "page": page})
        if not isinstance(data, list):
            raise RemoteError(ErrorKind.DECODE, f"expected a JSON list from {url}, got {type(data).__name__}")
        return data

    # Anti-Corruption Layer
    @staticmethod
    def _decode(kind: str, parse: Callable[[dict], Any], nodes: list[dict]) -> list:
        """
        Translate raw API objects into domain entities.
        A single malformed object fails the whole page.
        """
        try:
            return [parse(node) for node in nodes]
        except (KeyError, TypeError, ValueError) as exc:
            raise RemoteError(ErrorKind.DECODE, f"malformed {kind} object: {exc!r}") from exc

    @staticmethod
    def _parse_user(node: dict) -> User:
        return User(login=str(node["login"]), url=node.get("url"))

    @staticmethod
    def _parse_contribution(node: dict) -> Contribution:
        return Contribution(login=str(node["login"]), count=int(node["contributions"]))

    @staticmethod
    def _parse_pull_request(node: dict) -> PullRequest:
        return PullRequest(
            url            = node["url"],
            repository_url = node["repository_url"],
            id             = int(node["id"]),
            state          = node["state"],
        )

    # IRemoteClient implementation
    async def list_participants(self) -> list[User]:
        async def page(n: int) -> list[User]:
            nodes = await self._get_list_page(f"/repos/{self._project}/stargazers", n)
            return self._decode("stargazer", self._parse_user, nodes)

        users = await fetch_all_pages(page, self._page_size)
        log.info("Fetched %d stargazers of %s", len(users), self._project)
        return users

    async def list_contributors(self, repo: str) -> list[Contribution]:
        async def page(n: int) -> list[Contribution]:
            nodes = await self._get_list_page(f"/repos/{repo}/contributors", n)
            return self._decode("contributor", self._parse_contribution, nodes)

        contributions = await fetch_all_pages(page, self._page_size)
        log.debug("Fetched %d contributors of %s", len(contributions), repo)
        return contributions

    async def list_merged_pull_requests(self, author: str) -> list[PullRequest]:
        url   = f"{self._api_url}/search/issues"
        query = f"author:{author} is:pr is:merged"

        async def page(n: int) -> list[PullRequest]:
            # Pages past the search cap are rejected with 422
            if (n - 1) * self._page_size >= SEARCH_RESULT_CAP:
                return []
            data = await self._get_json(url, {"q": query, "per_page": self._page_size, "page": n})
            try:
                items = data["items"]
            except (KeyError, TypeError) as exc:
                raise RemoteError(ErrorKind.DECODE, f"search response from {url} has no items") from exc
            return self._decode("pull request", self._parse_pull_request, items)

        prs = await fetch_all_pages(page, self._page_size)
        log.debug("Found %d merged pull requests by %s", len(prs), author)
        return prs

    async def fetch_text_lines(self, ref: TextRef) -> list[str]:
        url = f"{self._raw_url}/{ref.repo}/{ref.branch}/{ref.path}"
        response = await self._get(url)
        lines = [line.strip() for line in response.text.splitlines()]
        return [line for line in lines if line]
