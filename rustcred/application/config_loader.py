from __future__ import annotations
import logging

from rustcred.domain.entities import TextRef
from rustcred.domain.errors import ConfigMissingError, ErrorKind, RemoteError
from rustcred.domain.interfaces import IRemoteClient
from .aggregator import unique_repos

log = logging.getLogger(__name__)

DEFAULT_BRANCH             = "master"
DEFAULT_TRACKED_REPOS_PATH = "tracked_repos"
DEFAULT_OPTED_OUT_PATH     = "opted_out"


def strip_comments(lines: list[str]) -> list[str]:
    return [line for line in lines if not line.startswith("#")]


class ConfigLoader:
    """
    Reads the two line-oriented configuration files from a repository.

    tracked_repos is required: if it is gone the run cannot proceed.
    opted_out is optional: a missing file means nobody opted out.
    """

    def __init__(
        self,
        client: IRemoteClient,
        config_repo: str,
        branch: str = DEFAULT_BRANCH,
        tracked_repos_path: str = DEFAULT_TRACKED_REPOS_PATH,
        opted_out_path: str = DEFAULT_OPTED_OUT_PATH,
    ) -> None:
        self._client        = client
        self._tracked_repos = TextRef(repo=config_repo, branch=branch, path=tracked_repos_path)
        self._opted_out     = TextRef(repo=config_repo, branch=branch, path=opted_out_path)

    async def load_tracked_repos(self) -> list[str]:
        try:
            lines = await self._client.fetch_text_lines(self._tracked_repos)
        except RemoteError as exc:
            if exc.kind is ErrorKind.NOT_FOUND:
                raise ConfigMissingError("tracked_repos", exc.detail) from exc
            raise
        repos = unique_repos(strip_comments(lines))
        log.info("Loaded %d tracked repos from %s", len(repos), self._tracked_repos.path)
        return repos

    async def load_opted_out(self) -> list[str]:
        try:
            lines = await self._client.fetch_text_lines(self._opted_out)
        except RemoteError as exc:
            if exc.kind is not ErrorKind.NOT_FOUND:
                raise
            log.warning("No opt-out list at %s, treating it as empty", self._opted_out.path)
            return []
        opted_out = strip_comments(lines)
        log.info("Loaded %d opted-out users", len(opted_out))
        return opted_out
