from __future__ import annotations

import asyncio
from typing import Callable

import httpx
import pytest

from rustcred.domain.entities import Contribution, PullRequest, TextRef, User
from rustcred.domain.errors import ErrorKind, RemoteError
from rustcred.domain.interfaces import IRemoteClient


class FakeRemoteClient(IRemoteClient):
    """
    In-memory IRemoteClient serving canned data.

    A value in `contributors`, `pull_requests` or `files` may be an
    exception instead of data; it is raised when that entry is requested.
    `delays` holds per-repo or per-author sleeps to shuffle completion
    order. `finished` lists repos whose contributor fetch returned.
    """

    def __init__(
        self,
        participants: list[str] | None = None,
        contributors: dict | None = None,
        pull_requests: dict | None = None,
        files: dict | None = None,
        delays: dict[str, float] | None = None,
    ) -> None:
        self.participants  = [User(login=login) for login in participants or []]
        self.contributors  = contributors or {}
        self.pull_requests = pull_requests or {}
        self.files         = files or {}
        self.delays        = delays or {}
        self.calls: list[tuple[str, str]] = []
        self.finished: list[str] = []
        self.in_flight     = 0
        self.max_in_flight = 0

    @staticmethod
    def _serve(table: dict, key: str):
        if key not in table:
            raise RemoteError(ErrorKind.NOT_FOUND, f"no such resource: {key}")
        value = table[key]
        if isinstance(value, Exception):
            raise value
        return list(value)

    async def list_participants(self) -> list[User]:
        self.calls.append(("participants", ""))
        return list(self.participants)

    async def list_contributors(self, repo: str) -> list[Contribution]:
        self.calls.append(("contributors", repo))
        await asyncio.sleep(self.delays.get(repo, 0))
        found = [Contribution(login, count) for login, count in self._serve(self.contributors, repo)]
        self.finished.append(repo)
        return found

    async def list_merged_pull_requests(self, author: str) -> list[PullRequest]:
        self.calls.append(("pull_requests", author))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(author, 0))
        finally:
            self.in_flight -= 1
        return self._serve(self.pull_requests, author) if author in self.pull_requests else []

    async def fetch_text_lines(self, ref: TextRef) -> list[str]:
        self.calls.append(("text", ref.path))
        return self._serve(self.files, ref.path)


@pytest.fixture
def fake_client() -> Callable[..., FakeRemoteClient]:
    return FakeRemoteClient


@pytest.fixture
def mock_http() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Build an httpx.AsyncClient whose requests are answered by `handler`."""

    def build(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return build
