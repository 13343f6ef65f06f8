from __future__ import annotations

import asyncio

import pytest

from rustcred.application.aggregator import ContributionAggregator, fold_contributions, gather_or_cancel, unique_repos
from rustcred.domain.entities import Contribution, RepoContribution
from rustcred.domain.errors import ErrorKind, RemoteError


def test_non_participant_contributions_are_discarded() -> None:
    result = fold_contributions(
        ["o/r1"],
        {"a"},
        {"o/r1": [Contribution("a", 12), Contribution("x", 3)]},
    )

    assert dict(result.records) == {"a": (RepoContribution("o/r1", 12),)}
    assert result.repo_contributor_counts["o/r1"] == 1


def test_records_follow_tracked_repo_order() -> None:
    result = fold_contributions(
        ["o/r2", "o/r1"],
        {"a"},
        {"o/r1": [Contribution("a", 1)], "o/r2": [Contribution("a", 7)]},
    )

    assert result.records["a"] == (RepoContribution("o/r2", 7), RepoContribution("o/r1", 1))


def test_login_listed_twice_for_one_repo_counts_once() -> None:
    result = fold_contributions(
        ["o/r1"],
        {"a"},
        {"o/r1": [Contribution("a", 4), Contribution("a", 4)]},
    )

    assert len(result.records["a"]) == 1
    assert result.repo_contributor_counts["o/r1"] == 1


def test_repo_count_ignores_individual_contribution_sizes() -> None:
    result = fold_contributions(
        ["o/r1"],
        {"a", "b", "c"},
        {"o/r1": [Contribution("a", 300), Contribution("b", 1), Contribution("z", 9)]},
    )

    assert result.repo_contributor_counts == {"o/r1": 2}


def test_result_is_read_only() -> None:
    result = fold_contributions(["o/r1"], {"a"}, {"o/r1": [Contribution("a", 1)]})

    with pytest.raises(TypeError):
        result.records["b"] = ()


def test_unique_repos_keeps_first_occurrence() -> None:
    assert unique_repos(["o/b", "o/a", "o/b", "o/c", "o/a"]) == ["o/b", "o/a", "o/c"]


@pytest.mark.asyncio
async def test_duplicate_tracked_repo_is_fetched_and_counted_once(fake_client) -> None:
    client = fake_client(contributors={"o/r1": [("a", 10)]})

    result = await ContributionAggregator(client).aggregate(["o/r1", "o/r1"], {"a"})

    assert result.records["a"] == (RepoContribution("o/r1", 10),)
    assert client.calls.count(("contributors", "o/r1")) == 1


@pytest.mark.asyncio
async def test_missing_repo_is_skipped_and_reported(fake_client) -> None:
    client = fake_client(contributors={"o/alive": [("a", 2)]})

    result = await ContributionAggregator(client).aggregate(["o/gone", "o/alive"], {"a"})

    assert result.skipped_repos == ("o/gone",)
    assert dict(result.records) == {"a": (RepoContribution("o/alive", 2),)}
    assert "o/gone" not in result.repo_contributor_counts


@pytest.mark.asyncio
@pytest.mark.parametrize("kind", [ErrorKind.UNAUTHORIZED, ErrorKind.DECODE, ErrorKind.RATE_LIMITED, ErrorKind.NETWORK])
async def test_other_remote_errors_abort_aggregation(fake_client, kind: ErrorKind) -> None:
    client = fake_client(contributors={"o/ok": [("a", 1)], "o/bad": RemoteError(kind, "boom")})

    with pytest.raises(RemoteError) as excinfo:
        await ContributionAggregator(client).aggregate(["o/ok", "o/bad"], {"a"})
    assert excinfo.value.kind is kind


@pytest.mark.asyncio
async def test_result_does_not_depend_on_completion_order(fake_client) -> None:
    contributors = {"o/r1": [("a", 10), ("b", 1)], "o/r2": [("a", 5)], "o/r3": [("b", 6)]}
    participants = {"a", "b"}
    repos = ["o/r1", "o/r2", "o/r3"]

    slow_first = fake_client(contributors=contributors, delays={"o/r1": 0.03, "o/r2": 0.01})
    slow_last  = fake_client(contributors=contributors, delays={"o/r3": 0.03, "o/r2": 0.01})

    first = await ContributionAggregator(slow_first).aggregate(repos, participants)
    last  = await ContributionAggregator(slow_last, max_concurrent=1).aggregate(repos, participants)

    assert dict(first.records) == dict(last.records)
    assert dict(first.repo_contributor_counts) == dict(last.repo_contributor_counts) == {"o/r1": 2, "o/r2": 1, "o/r3": 1}


@pytest.mark.asyncio
async def test_fatal_error_cancels_fetches_still_in_flight(fake_client) -> None:
    client = fake_client(
        contributors = {
            "o/bad":   RemoteError(ErrorKind.UNAUTHORIZED, "bad credentials"),
            "o/slow1": [("a", 1)],
            "o/slow2": [("a", 2)],
        },
        delays = {"o/slow1": 0.05, "o/slow2": 0.05},
    )

    with pytest.raises(RemoteError):
        await ContributionAggregator(client).aggregate(["o/bad", "o/slow1", "o/slow2"], {"a"})
    await asyncio.sleep(0.1)

    assert [repo for kind, repo in client.calls if kind == "contributors"] == ["o/bad", "o/slow1", "o/slow2"]
    assert client.finished == []


@pytest.mark.asyncio
async def test_gather_or_cancel_returns_results_in_input_order() -> None:
    async def after(delay: float, value: str) -> str:
        await asyncio.sleep(delay)
        return value

    assert await gather_or_cancel([after(0.02, "first"), after(0, "second")]) == ["first", "second"]
