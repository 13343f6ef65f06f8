"""
main.py — Dependency Wiring (Composition Root)
------------------------------------------------
Reads the credential from the environment and the run options from the
command line, builds the concrete GitHubClient, injects it into the
application services, runs one scoring pass and logs the ranking.

Dependency graph (what depends on what):
                         main.py  (wires everything)
                            │
                 CredApplicationService
                            │
    ┌──────────────┬────────┴─────────┬────────────────┐
    ▼              ▼                  ▼                ▼
ConfigLoader  ContributionAggregator  ScoreCalculator  IRemoteClient
    │              │                                  (GitHubClient)
    └──────────────┴──────────► IRemoteClient
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

import httpx

# Application layer
from rustcred.application.aggregator import MAX_CONCURRENT, ContributionAggregator
from rustcred.application.config_loader import (
    DEFAULT_BRANCH,
    DEFAULT_OPTED_OUT_PATH,
    DEFAULT_TRACKED_REPOS_PATH,
    ConfigLoader,
)
from rustcred.application.cred_service import CredApplicationService
from rustcred.application.scoring import ScoreCalculator
from rustcred.domain.entities import CredResult

# Infrastructure layer
from rustcred.infrastructure.github_client import GitHubClient

log = logging.getLogger(__name__)

DEFAULT_PROJECT = "saidaspen/rustcred"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
        datefmt="%H:%M:%S",
    )


def _read_env() -> tuple[str, str | None]:
    """
    Read the credential from the environment.
    Fails fast with a clear error if the token is missing.
    """
    token = os.environ.get("GITHUB_TOKEN", "").strip()
    user  = os.environ.get("GITHUB_USER", "").strip() or None

    if not token:
        log.error("GITHUB_TOKEN environment variable is required")
        sys.exit(1)

    return token, user


def _report(result: CredResult) -> None:
    for rank, score in enumerate(result.scores, start=1):
        log.info(
            "#%-3d %-24s total=%-4d gold=%d silver=%d balloons=%d",
            rank, score.user, score.total, score.gold, score.silver, score.balloons,
        )
        prs = result.pull_requests.get(score.user)
        if prs:
            log.info("     %d merged pull requests in tracked repos", len(prs))
    for repo, count in result.repo_contributor_counts.items():
        log.debug("%s | %d participating contributors", repo, count)
    for warning in result.warnings:
        log.warning(warning)


async def build_and_run(args: argparse.Namespace, token: str, github_user: str | None) -> CredResult:
    """
    Wires all dependencies together and executes the scoring use case.
    The only place that knows which concrete class implements IRemoteClient.
    """
    async with httpx.AsyncClient(follow_redirects=True) as client:
        github = GitHubClient(
            token       = token,
            client      = client,       # injected — GitHubClient doesn't create this
            project     = args.project,
            github_user = github_user,
        )
        config = ConfigLoader(
            client             = github,
            config_repo        = args.config_repo or args.project,
            branch             = args.branch,
            tracked_repos_path = args.tracked_repos_path,
            opted_out_path     = args.opted_out_path,
        )
        service = CredApplicationService(
            client                = github,
            config                = config,
            aggregator            = ContributionAggregator(github, max_concurrent=args.concurrency),
            calculator            = ScoreCalculator(),
            include_pull_requests = args.with_prs,
            max_concurrent        = args.concurrency,
        )
        return await service.execute()


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Score project stargazers by their contributions to tracked repositories"
    )
    parser.add_argument("--project", default=DEFAULT_PROJECT,
                        help=f"Repository whose stargazers are the participants (default: {DEFAULT_PROJECT})")
    parser.add_argument("--config-repo", default=None,
                        help="Repository holding the configuration files (default: --project)")
    parser.add_argument("--branch", default=DEFAULT_BRANCH,
                        help=f"Branch of the configuration files (default: {DEFAULT_BRANCH})")
    parser.add_argument("--tracked-repos-path", default=DEFAULT_TRACKED_REPOS_PATH,
                        help=f"Path of the tracked repos list (default: {DEFAULT_TRACKED_REPOS_PATH})")
    parser.add_argument("--opted-out-path", default=DEFAULT_OPTED_OUT_PATH,
                        help=f"Path of the opt-out list (default: {DEFAULT_OPTED_OUT_PATH})")
    parser.add_argument("--concurrency", type=int, default=MAX_CONCURRENT,
                        help=f"Concurrent contributor fetches and PR searches (default: {MAX_CONCURRENT})")
    parser.add_argument("--with-prs", action="store_true",
                        help="Also collect each scored user's merged pull requests")
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    _configure_logging(args.verbose)
    token, github_user = _read_env()

    result = asyncio.run(build_and_run(args, token, github_user))

    if result.status != "success":
        log.error("❌ Failed | error: %s", result.error_message)
        sys.exit(1)

    _report(result)
    log.info("✅ Success | %d users ranked | %.0fs", len(result.scores), result.elapsed_secs)


if __name__ == "__main__":
    main()
