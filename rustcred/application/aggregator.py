from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Iterable, Mapping, Sequence, TypeVar

from rustcred.domain.entities import AggregationResult, Contribution, RepoContribution
from rustcred.domain.errors import ErrorKind, RemoteError
from rustcred.domain.interfaces import IRemoteClient

log = logging.getLogger(__name__)

MAX_CONCURRENT = 8

T = TypeVar("T")


async def gather_or_cancel(aws: Iterable[Awaitable[T]]) -> list[T]:
    """
    Like asyncio.gather, but the first failure cancels every task still
    running and waits for them to wind down before re-raising.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def unique_repos(repos: Iterable[str]) -> list[str]:
    """Drop repeated repo identifiers, keeping the first occurrence's position."""
    seen: set[str] = set()
    out:  list[str] = []
    for repo in repos:
        if repo in seen:
            log.debug("Ignoring duplicate tracked repo %s", repo)
            continue
        seen.add(repo)
        out.append(repo)
    return out


def fold_contributions(
    tracked_repos: Sequence[str],
    participants: set[str],
    contributions_by_repo: Mapping[str, Sequence[Contribution]],
    skipped_repos: Sequence[str] = (),
) -> AggregationResult:
    """
    Fold per-repo contributor lists into per-user records.

    Pure: repos are visited in `tracked_repos` order, so the result only
    depends on the inputs, never on the order fetches completed in.
    Contributions from non-participants are dropped. Repos missing from
    `contributions_by_repo` contribute nothing.
    """
    records:      dict[str, list[RepoContribution]] = {}
    repo_counts:  dict[str, int] = {}

    for repo in unique_repos(tracked_repos):
        if repo not in contributions_by_repo:
            continue
        seen_logins: set[str] = set()
        for c in contributions_by_repo[repo]:
            if c.login not in participants or c.login in seen_logins:
                continue
            seen_logins.add(c.login)
            records.setdefault(c.login, []).append(RepoContribution(repo=repo, count=c.count))
        repo_counts[repo] = len(seen_logins)

    return AggregationResult(
        records                 = {login: tuple(entries) for login, entries in records.items()},
        repo_contributor_counts = repo_counts,
        skipped_repos           = tuple(skipped_repos),
    )


class ContributionAggregator:
    """
    Fetches contributor lists for every tracked repo and folds them
    into per-user records.

    Fetches run concurrently, bounded by a semaphore. Each task only
    returns its own repo's contributor list; nothing shared is mutated
    until every task has finished and fold_contributions runs once.
    A fatal error cancels the fetches still in flight.
    """

    def __init__(self, client: IRemoteClient, max_concurrent: int = MAX_CONCURRENT) -> None:
        self._client    = client
        self._semaphore = asyncio.Semaphore(max_concurrent)

    async def _fetch_repo(self, repo: str, index: int, total: int) -> list[Contribution] | None:
        """
        Contributors of one repo, or None if the repo no longer exists.
        Every other RemoteError propagates and aborts the aggregation.
        """
        async with self._semaphore:
            log.info("Repo %d/%d | %s", index, total, repo)
            try:
                return await self._client.list_contributors(repo)
            except RemoteError as exc:
                if exc.kind is not ErrorKind.NOT_FOUND:
                    raise
                log.warning("Tracked repo %s not found, skipping: %s", repo, exc.detail)
                return None

    async def aggregate(self, tracked_repos: Sequence[str], participants: set[str]) -> AggregationResult:
        repos = unique_repos(tracked_repos)
        if len(repos) != len(tracked_repos):
            log.info("Tracked repos contain %d duplicates, each repo is counted once", len(tracked_repos) - len(repos))

        results = await gather_or_cancel(
            self._fetch_repo(repo, i, len(repos)) for i, repo in enumerate(repos, start=1)
        )

        contributions_by_repo = {repo: found for repo, found in zip(repos, results) if found is not None}
        skipped = [repo for repo, found in zip(repos, results) if found is None]

        result = fold_contributions(repos, participants, contributions_by_repo, skipped)
        log.info(
            "Aggregated %d repos | %d participating contributors | %d skipped",
            len(contributions_by_repo),
            len(result.records),
            len(skipped),
        )
        return result
