from __future__ import annotations
import logging
from enum import Enum
from typing import Iterable, Mapping, Sequence

from rustcred.domain.entities import BALLOON_LIMIT, GOLD_LIMIT, SILVER_LIMIT, RepoContribution, Score

log = logging.getLogger(__name__)


class Tier(str, Enum):
    GOLD    = "gold"
    SILVER  = "silver"
    BALLOON = "balloon"


# Highest threshold first: a count lands in exactly one tier
TIERS = [
    (GOLD_LIMIT,    Tier.GOLD),
    (SILVER_LIMIT,  Tier.SILVER),
    (BALLOON_LIMIT, Tier.BALLOON),
]


def classify(count: int) -> Tier | None:
    """The single tier a per-repo contribution count earns, or None."""
    for limit, tier in TIERS:
        if count >= limit:
            return tier
    return None


class ScoreCalculator:
    """
    Turns aggregated per-user records into Scores and ranks them.

    Each (repo, count) entry earns at most one award. The total is the
    weighted sum of the awards.
    """

    def score(self, login: str, record: Iterable[RepoContribution]) -> Score:
        awards = {tier: 0 for tier in Tier}
        for entry in record:
            tier = classify(entry.count)
            if tier is not None:
                awards[tier] += 1
        return Score(
            user     = login,
            gold     = awards[Tier.GOLD],
            silver   = awards[Tier.SILVER],
            balloons = awards[Tier.BALLOON],
        )

    def score_all(self, records: Mapping[str, Sequence[RepoContribution]]) -> list[Score]:
        return [self.score(login, record) for login, record in records.items()]

    @staticmethod
    def rank(scores: Iterable[Score]) -> list[Score]:
        """Highest total first. Ties keep their input order (sorted is stable)."""
        ranked = sorted(scores, key=lambda s: s.total, reverse=True)
        if ranked:
            log.debug("Top score: %s with %d", ranked[0].user, ranked[0].total)
        return ranked
