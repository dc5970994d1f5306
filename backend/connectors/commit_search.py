"""GitHub commit search (REST). Coarse, heavily rate limited, but needs no per-repo calls."""

import logging

import httpx

from .github_connector import GH_API, USER_AGENT

logger = logging.getLogger(__name__)


def search_variants(username: str) -> list[str]:
    """Query variants; search totals differ depending on which commit identity matched."""
    return [
        f"author:{username}",
        f"committer:{username}",
        f"author:{username} OR committer:{username}",
    ]


async def search_commit_total(client: httpx.AsyncClient, query: str, token: str) -> int:
    """Return `total_count` for one commit-search query. Raises on non-2xx."""
    resp = await client.get(
        f"{GH_API}/search/commits",
        params={"q": query, "per_page": 1},
        headers={
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
            "Authorization": f"token {token}",
        },
    )
    resp.raise_for_status()
    return resp.json().get("total_count") or 0
