"""
Domain Layer — Interfaces (Abstract Contracts)
-----------------------------------------------
The application layer talks to the remote source only through
IRemoteClient. GitHubClient implements it over HTTP; tests substitute
an in-memory fake that serves canned pages.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from .entities import Contribution, PullRequest, TextRef, User


class IRemoteClient(ABC):
    """
    Contract that any source-hosting API client must fulfil.

    Every operation raises RemoteError on failure.
    """

    @abstractmethod
    async def list_participants(self) -> list[User]:
        """All users who starred the project's own repository."""
        ...

    @abstractmethod
    async def list_contributors(self, repo: str) -> list[Contribution]:
        """All contributors of `repo` (an `owner/name` string)."""
        ...

    @abstractmethod
    async def list_merged_pull_requests(self, author: str) -> list[PullRequest]:
        """Merged pull requests opened by `author`, across all repositories."""
        ...

    @abstractmethod
    async def fetch_text_lines(self, ref: TextRef) -> list[str]:
        """
        Fetch a plain-text file and return its non-blank lines, each
        stripped of surrounding whitespace.
        """
        ...
