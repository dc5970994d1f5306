"""Best-effort lifetime commit count.

GitHub exposes no single "total commits" number, so a cascade of strategies
is tried in order of preference:

  1. Contribution timeline: per-year contributionsCollection totals since the
     account was created, plus a correction term for commits the graph misses.
  2. Repository history: default-branch history filtered by author, summed over
     the user's own non-fork, non-archived repositories.
  3. Commit search: max `total_count` over a few author/committer queries.
  4. Fallback: repositories x account age x an assumed commits/repo/year.

A strategy is accepted only when it yields a count > 0. Failures are logged
and fall through; the fallback always produces a value. Every estimate carries
a method tag describing which strategy produced it and with what parameters.
"""

import asyncio
import logging
import math
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone

import httpx

from connectors.commit_search import search_commit_total, search_variants
from connectors.graphql import bearer_headers, post_graphql
from models import CommitEstimate, Credentials, RepositorySnapshot, UserSnapshot
from pacing import Pacer

logger = logging.getLogger("devcard")

# Empirical tuning constants, overridable per deployment.
TIMELINE_CORRECTION_BASE = int(os.environ.get("TIMELINE_CORRECTION_BASE", "1"))
REPO_INITIAL_COMMIT_BONUS = int(os.environ.get("REPO_INITIAL_COMMIT_BONUS", "1"))
FALLBACK_COMMITS_PER_REPO_YEAR = int(os.environ.get("FALLBACK_COMMITS_PER_REPO_YEAR", "10"))
COMMIT_BATCH_SIZE = int(os.environ.get("COMMIT_BATCH_SIZE", "5"))
COMMIT_BATCH_DELAY = float(os.environ.get("COMMIT_BATCH_DELAY", "0.3"))  # seconds
COMMIT_SEARCH_DELAY = float(os.environ.get("COMMIT_SEARCH_DELAY", "1.0"))  # seconds


def non_negative(value) -> int:
    """Coerce a sub-query result to a non-negative int; None, NaN, inf and negatives become 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value) or value < 0:
        return 0
    return int(value)


def _round_half_up(value: float) -> int:
    # .5 goes up, not to the nearest even integer
    if not math.isfinite(value) or value < 0:
        return 0
    return math.floor(value + 0.5)


@dataclass
class EstimationContext:
    client: httpx.AsyncClient
    credentials: Credentials
    username: str
    now: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def headers(self) -> dict:
        return bearer_headers(self.credentials.token)


class CommitStrategy:
    """One heuristic. Returns an estimate, None when inconclusive, or raises."""

    name = "strategy"

    async def attempt(self, snapshot: UserSnapshot, ctx: EstimationContext) -> CommitEstimate | None:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# 1. Contribution timeline
# ---------------------------------------------------------------------------

def _iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class ContributionTimelineStrategy(CommitStrategy):
    name = "contribution-timeline"

    def __init__(self, correction_base: int = TIMELINE_CORRECTION_BASE):
        self.correction_base = correction_base

    @staticmethod
    def years(snapshot: UserSnapshot, now: datetime) -> list[int]:
        start = snapshot.created_at.year if snapshot.created_at else now.year
        return list(range(min(start, now.year), now.year + 1))

    @staticmethod
    def build_query(years: list[int], now: datetime, include_restricted: bool) -> str:
        """One query aliasing a contributionsCollection per calendar year (<= 1 year each)."""
        fields = "totalCommitContributions"
        if include_restricted:
            fields += "\n          restrictedContributionsCount"
        blocks = []
        for year in years:
            to = _iso(now) if year == now.year else f"{year}-12-31T23:59:59Z"
            blocks.append(
                f'      y{year}: contributionsCollection(from: "{year}-01-01T00:00:00Z", to: "{to}") {{\n'
                f"          {fields}\n"
                f"      }}"
            )
        return (
            "query contributionTimeline($login: String!) {\n"
            "  user(login: $login) {\n"
            + "\n".join(blocks)
            + "\n  }\n}"
        )

    def correction_term(self, snapshot: UserSnapshot) -> int:
        """Commits the graph tends to miss: repo creation, PR- and issue-linked work."""
        return (
            self.correction_base
            + snapshot.total_repository_count
            + snapshot.pull_request_count
            + snapshot.total_issue_count
        )

    async def attempt(self, snapshot, ctx):
        years = self.years(snapshot, ctx.now)
        authed = ctx.credentials.is_authenticated
        query = self.build_query(years, ctx.now, include_restricted=authed)
        resp = await post_graphql(ctx.client, query, {"login": ctx.username}, ctx.headers)

        user = resp.payload.get("user")
        if not user:
            raise RuntimeError(f"contribution timeline query failed ({resp.status}): {resp.errors}")

        timeline = 0
        for year in years:
            collection = user.get(f"y{year}") or {}
            timeline += non_negative(collection.get("totalCommitContributions"))
            if authed:
                timeline += non_negative(collection.get("restrictedContributionsCount"))

        logger.info("contribution timeline for %s: %d commits over %d years",
                    ctx.username, timeline, len(years))
        if timeline == 0:
            return None

        correction = self.correction_term(snapshot)
        return CommitEstimate(
            count=timeline + correction,
            method=f"contribution-timeline-{ctx.credentials.scope_label}-{len(years)}years+{correction}initial",
        )


# ---------------------------------------------------------------------------
# 2. Per-repository commit history
# ---------------------------------------------------------------------------

USER_ID_QUERY = """
query userId($login: String!) {
  user(login: $login) {
    id
  }
}
"""

REPO_HISTORY_QUERY = """
query repoCommits($owner: String!, $name: String!, $authorId: ID!) {
  repository(owner: $owner, name: $name) {
    defaultBranchRef {
      target {
        ... on Commit {
          history(author: {id: $authorId}) {
            totalCount
          }
        }
      }
    }
  }
}
"""


class RepositoryHistoryStrategy(CommitStrategy):
    name = "repository-history"

    def __init__(
        self,
        batch_size: int = COMMIT_BATCH_SIZE,
        batch_delay: float = COMMIT_BATCH_DELAY,
        initial_commit_bonus: int = REPO_INITIAL_COMMIT_BONUS,
    ):
        self.batch_size = max(batch_size, 1)
        self.batch_delay = batch_delay
        self.initial_commit_bonus = initial_commit_bonus

    @staticmethod
    def eligible(snapshot: UserSnapshot) -> list[RepositorySnapshot]:
        return [r for r in snapshot.repositories if not r.is_fork and not r.is_archived]

    async def resolve_author_id(self, snapshot: UserSnapshot, ctx: EstimationContext) -> str:
        if snapshot.id:
            return snapshot.id
        resp = await post_graphql(ctx.client, USER_ID_QUERY, {"login": ctx.username}, ctx.headers)
        user_id = (resp.payload.get("user") or {}).get("id")
        if not user_id:
            raise RuntimeError("Could not get user ID")
        return user_id

    async def repo_commits(self, repo: RepositorySnapshot, author_id: str, ctx: EstimationContext) -> int:
        resp = await post_graphql(
            ctx.client,
            REPO_HISTORY_QUERY,
            {"owner": repo.owner or ctx.username, "name": repo.name, "authorId": author_id},
            ctx.headers,
        )
        if resp.errors:
            raise RuntimeError(resp.errors[0].get("message") or "history query failed")
        repository = resp.payload.get("repository") or {}
        target = (repository.get("defaultBranchRef") or {}).get("target") or {}
        return non_negative((target.get("history") or {}).get("totalCount"))

    async def attempt(self, snapshot, ctx):
        repos = self.eligible(snapshot)
        if not repos:
            return None
        author_id = await self.resolve_author_id(snapshot, ctx)

        pacer = Pacer(self.batch_delay)
        total = succeeded = failed = 0
        for start in range(0, len(repos), self.batch_size):
            batch = repos[start:start + self.batch_size]
            await pacer.wait()
            results = await asyncio.gather(
                *(self.repo_commits(repo, author_id, ctx) for repo in batch),
                return_exceptions=True,
            )
            for repo, result in zip(batch, results):
                if isinstance(result, Exception):
                    failed += 1
                    logger.warning("Failed to get commits for %s: %s", repo.name, result)
                elif result > 0:
                    succeeded += 1
                    total += result + self.initial_commit_bonus

        logger.info("repository history for %s: %d successful, %d failed of %d repos",
                    ctx.username, succeeded, failed, len(repos))
        if succeeded == 0:
            return None
        return CommitEstimate(
            count=total,
            method=f"repository-history-{ctx.credentials.scope_label}-{succeeded}of{len(repos)}repos",
        )


# ---------------------------------------------------------------------------
# 3. Commit search
# ---------------------------------------------------------------------------

class CommitSearchStrategy(CommitStrategy):
    name = "commit-search"

    def __init__(self, delay: float = COMMIT_SEARCH_DELAY):
        self.delay = delay

    async def attempt(self, snapshot, ctx):
        variants = search_variants(ctx.username)
        pacer = Pacer(self.delay)
        best = answered = 0
        for query in variants:
            await pacer.wait()
            try:
                count = non_negative(await search_commit_total(ctx.client, query, ctx.credentials.token))
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("commit search %r failed: %s", query, exc)
                continue
            answered += 1
            best = max(best, count)

        if answered == 0:
            raise RuntimeError("all commit search variants failed")
        return CommitEstimate(
            count=best,
            method=f"commit-search-{ctx.credentials.scope_label}-{answered}of{len(variants)}variants",
        )


# ---------------------------------------------------------------------------
# 4. Deterministic fallback
# ---------------------------------------------------------------------------

class FallbackStrategy(CommitStrategy):
    """repositories x account age (years) x commits per repo-year. Pure arithmetic."""

    name = "estimated-fallback"

    def __init__(self, commits_per_repo_year: int = FALLBACK_COMMITS_PER_REPO_YEAR):
        self.commits_per_repo_year = commits_per_repo_year

    def estimate(self, snapshot: UserSnapshot, ctx: EstimationContext) -> CommitEstimate:
        repos = snapshot.total_repository_count
        age = snapshot.account_age_years(ctx.now)
        count = _round_half_up(repos * age * self.commits_per_repo_year)
        return CommitEstimate(
            count=count,
            method=(
                f"estimated-fallback-{ctx.credentials.scope_label}-"
                f"{repos}repos*{age:.1f}years*{self.commits_per_repo_year}"
            ),
        )

    async def attempt(self, snapshot, ctx):
        return self.estimate(snapshot, ctx)


# ---------------------------------------------------------------------------
# Cascade
# ---------------------------------------------------------------------------

class CommitEstimator:
    """Run strategies strictly in order; the first positive count wins."""

    def __init__(self, strategies: list[CommitStrategy], fallback: FallbackStrategy | None = None):
        self.strategies = list(strategies)
        self.fallback = fallback or FallbackStrategy()

    async def estimate(self, snapshot: UserSnapshot, ctx: EstimationContext) -> CommitEstimate:
        for strategy in self.strategies:
            logger.info("commit strategy %s starting for %s", strategy.name, ctx.username)
            try:
                result = await strategy.attempt(snapshot, ctx)
            except Exception as exc:
                logger.warning("commit strategy %s failed for %s: %s", strategy.name, ctx.username, exc)
                continue
            if result is not None and result.count > 0:
                logger.info("commit count for %s: %d (method: %s)", ctx.username, result.count, result.method)
                return result
            logger.info("commit strategy %s inconclusive for %s", strategy.name, ctx.username)

        result = self.fallback.estimate(snapshot, ctx)
        logger.info("commit count for %s: %d (method: %s)", ctx.username, result.count, result.method)
        return result


def build_default_estimator(
    batch_size: int = COMMIT_BATCH_SIZE,
    batch_delay: float = COMMIT_BATCH_DELAY,
    search_delay: float = COMMIT_SEARCH_DELAY,
    commits_per_repo_year: int = FALLBACK_COMMITS_PER_REPO_YEAR,
) -> CommitEstimator:
    return CommitEstimator(
        [
            ContributionTimelineStrategy(),
            RepositoryHistoryStrategy(batch_size=batch_size, batch_delay=batch_delay),
            CommitSearchStrategy(delay=search_delay),
        ],
        FallbackStrategy(commits_per_repo_year),
    )
