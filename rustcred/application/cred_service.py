from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Sequence

from rustcred.domain.entities import CredResult, PullRequest, Score
from rustcred.domain.errors import RustCredError
from rustcred.domain.interfaces import IRemoteClient
from .aggregator import MAX_CONCURRENT, ContributionAggregator, gather_or_cancel
from .config_loader import ConfigLoader
from .participant_filter import filter_participants
from .scoring import ScoreCalculator

log = logging.getLogger(__name__)


class CredApplicationService:
    """
    One scoring run: config, participants, aggregation, ranking and the
    optional merged-PR lookup, in that order. Any RustCredError turns the
    whole run into a failed CredResult.
    """

    def __init__(
        self,
        client: IRemoteClient,
        config: ConfigLoader,
        aggregator: ContributionAggregator,
        calculator: ScoreCalculator,
        include_pull_requests: bool = False,
        max_concurrent: int = MAX_CONCURRENT,
    ) -> None:
        self._client                = client
        self._config                = config
        self._aggregator            = aggregator
        self._calculator            = calculator
        self._include_pull_requests = include_pull_requests
        self._max_concurrent        = max_concurrent

    async def _merged_pull_requests(self, scores: Sequence[Score], tracked: set[str]) -> dict[str, tuple[PullRequest, ...]]:
        """Merged PRs of every scored user, limited to tracked repositories."""
        semaphore = asyncio.Semaphore(self._max_concurrent)

        async def search(login: str) -> tuple[PullRequest, ...]:
            async with semaphore:
                prs = await self._client.list_merged_pull_requests(login)
            return tuple(pr for pr in prs if pr.repo in tracked)

        found = await gather_or_cancel(search(s.user) for s in scores)
        return {s.user: prs for s, prs in zip(scores, found)}

    async def execute(self) -> CredResult:
        """
        Run one full scoring pass.
        Any RustCredError fails the whole run; no partial scores are returned.
        """
        started_at = datetime.now(tz=timezone.utc)

        try:
            tracked_repos = await self._config.load_tracked_repos()
            opted_out     = await self._config.load_opted_out()

            users        = await self._client.list_participants()
            participants = filter_participants(users, opted_out)
            log.info("%d stargazers | %d participants after opt-outs", len(users), len(participants))

            aggregation = await self._aggregator.aggregate(tracked_repos, participants)
            scores      = self._calculator.rank(self._calculator.score_all(aggregation.records))

            pull_requests: dict[str, tuple[PullRequest, ...]] = {}
            if self._include_pull_requests:
                pull_requests = await self._merged_pull_requests(scores, set(tracked_repos))

            warnings = tuple(f"tracked repo not found: {repo}" for repo in aggregation.skipped_repos)
            elapsed  = (datetime.now(tz=timezone.utc) - started_at).total_seconds()
            log.info("Scoring complete | %d users scored | %d warnings | %.1fs", len(scores), len(warnings), elapsed)

            return CredResult(
                status                  = "success",
                elapsed_secs            = elapsed,
                scores                  = tuple(scores),
                repo_contributor_counts = aggregation.repo_contributor_counts,
                warnings                = warnings,
                pull_requests           = pull_requests,
            )
        except RustCredError as exc:
            elapsed = (datetime.now(tz=timezone.utc) - started_at).total_seconds()
            log.error("Scoring run failed: %s", exc, exc_info=True)
            return CredResult(
                status        = "failed",
                elapsed_secs  = elapsed,
                error_message = str(exc),
            )
