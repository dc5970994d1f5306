"""Assemble the public GitHub user summary for one request."""

import asyncio
import logging
import time
from datetime import datetime, timezone

import httpx

from commit_estimator import CommitEstimator, EstimationContext
from connectors import fetch_rest_user, fetch_user_snapshot
from errors import MissingParameter, UserNotFound
from languages import top_languages, total_stars
from models import Credentials, GitHubUserSummary, SummaryMetadata

logger = logging.getLogger("devcard")


async def build_user_summary(
    client: httpx.AsyncClient,
    username: str,
    credentials: Credentials,
    exclude: frozenset[str],
    estimator: CommitEstimator,
    now: datetime | None = None,
) -> GitHubUserSummary:
    """REST profile + GraphQL snapshot in parallel, then commits and languages from the snapshot."""
    if not username:
        raise MissingParameter(["username"])
    started = time.monotonic()
    now = now or datetime.now(timezone.utc)

    rest_result, snapshot_result = await asyncio.gather(
        fetch_rest_user(client, username, credentials.token),
        fetch_user_snapshot(client, username, credentials),
        return_exceptions=True,
    )
    # REST outcome decides first so a missing user is always reported as such.
    if isinstance(rest_result, Exception):
        raise rest_result
    if not rest_result.is_success:
        raise UserNotFound(f"User not found: {rest_result.status_code}", upstream_status=rest_result.status_code)
    if isinstance(snapshot_result, Exception):
        raise snapshot_result

    profile = rest_result.json()
    snapshot = snapshot_result

    ctx = EstimationContext(client=client, credentials=credentials, username=username, now=now)
    commits = await estimator.estimate(snapshot, ctx)

    private_repos = sum(1 for r in snapshot.repositories if r.is_private)
    logger.info(
        "summary %s built in %dms: %d repos (%d public, %d private), commits=%d via %s",
        username, (time.monotonic() - started) * 1000, snapshot.total_repository_count,
        len(snapshot.repositories) - private_repos, private_repos, commits.count, commits.method,
    )

    login = profile.get("login") or username
    return GitHubUserSummary(
        login=login,
        name=profile.get("name") or login,
        avatar_url=profile.get("avatar_url") or "",
        bio=profile.get("bio") or "",
        company=profile.get("company") or "",
        location=profile.get("location") or "",
        created_at=profile.get("created_at") or "",
        public_repos=profile.get("public_repos") or 0,
        followers=profile.get("followers") or 0,
        totalCommits=commits.count,
        totalStars=total_stars(snapshot.repositories, exclude),
        totalPRs=snapshot.pull_request_count,
        totalIssues=snapshot.total_issue_count,
        topLanguages=top_languages(snapshot.repositories, exclude),
        metadata=SummaryMetadata(
            authenticated=credentials.is_authenticated,
            timestamp=now.isoformat().replace("+00:00", "Z"),
            commitCalculationMethod=commits.method,
            dataScope="public-and-private" if credentials.is_authenticated else "public-only",
        ),
    )
