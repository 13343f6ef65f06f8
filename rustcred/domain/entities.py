from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

# Contribution counts to a single repo needed for each award tier.
# A tier also sets how many points one award of it is worth.
GOLD_LIMIT    = 10
SILVER_LIMIT  = 5
BALLOON_LIMIT = 1


@dataclass(frozen=True)
class User:
    """
    A GitHub user as returned by the stargazers listing.

    `login` is the identity key. It is compared exactly as GitHub
    returns it, no case folding.
    """
    login: str
    url:   str | None = None


@dataclass(frozen=True)
class Contribution:
    """One user's contribution count for one specific repository."""
    login: str
    count: int


@dataclass(frozen=True)
class PullRequest:
    url:            str
    repository_url: str
    id:             int
    state:          str

    @property
    def repo(self) -> str:
        """`owner/name` of the repository this PR belongs to."""
        return "/".join(self.repository_url.rstrip("/").split("/")[-2:])


@dataclass(frozen=True)
class TextRef:
    """Location of a plain-text resource: repository, branch and file path."""
    repo:   str
    branch: str
    path:   str


@dataclass(frozen=True)
class RepoContribution:
    repo:  str
    count: int


@dataclass(frozen=True)
class Score:
    """
    Tiered award counts for one user.

    `total` is computed from the tier counts, never stored.
    """
    user:     str
    gold:     int = 0
    silver:   int = 0
    balloons: int = 0

    @property
    def total(self) -> int:
        return (
            self.gold * GOLD_LIMIT
            + self.silver * SILVER_LIMIT
            + self.balloons * BALLOON_LIMIT
        )


def _frozen(mapping: dict) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class AggregationResult:
    """
    Output of one aggregation pass over the tracked repositories.

    records                  — login → (repo, count) entries, one per repo
    repo_contributor_counts  — repo → number of participating contributors
    skipped_repos            — tracked repos that no longer exist
    """
    records:                 Mapping[str, tuple[RepoContribution, ...]] = field(default_factory=dict)
    repo_contributor_counts: Mapping[str, int] = field(default_factory=dict)
    skipped_repos:           tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "records", _frozen(self.records))
        object.__setattr__(self, "repo_contributor_counts", _frozen(self.repo_contributor_counts))


@dataclass(frozen=True)
class CredResult:
    """
    Immutable value object summarising a completed scoring run.
    Returned by the application service when the run finishes.
    """
    status:                  str
    elapsed_secs:            float
    scores:                  tuple[Score, ...] = ()
    repo_contributor_counts: Mapping[str, int] = field(default_factory=dict)
    warnings:                tuple[str, ...] = ()
    pull_requests:           Mapping[str, tuple[PullRequest, ...]] = field(default_factory=dict)
    error_message:           str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "repo_contributor_counts", _frozen(self.repo_contributor_counts))
        object.__setattr__(self, "pull_requests", _frozen(self.pull_requests))
