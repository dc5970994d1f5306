"""GitHub GraphQL gateway and the retry wrapper used around it."""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

GH_GRAPHQL = "https://api.github.com/graphql"
DEFAULT_GITHUB_TOKEN = os.environ.get("GITHUB_TOKEN", "").strip()
RETRY_BASE_DELAY = 0.5  # seconds; doubles per attempt


@dataclass
class GraphQLResponse:
    """Raw envelope: parsed body plus HTTP status. GraphQL errors stay inside `data`."""

    data: Any
    status: int
    status_text: str

    @property
    def errors(self) -> list[dict]:
        if isinstance(self.data, dict):
            return self.data.get("errors") or []
        return []

    @property
    def payload(self) -> dict:
        """The `data` member of the GraphQL body, or {} when absent."""
        if isinstance(self.data, dict):
            return self.data.get("data") or {}
        return {}


def bearer_headers(token: str) -> dict:
    return {"Authorization": f"bearer {token}"}


async def post_graphql(
    client: httpx.AsyncClient,
    query: str,
    variables: dict[str, Any],
    headers: dict[str, str],
) -> GraphQLResponse:
    """POST one query. Never raises on HTTP status or GraphQL errors; transport errors propagate."""
    resp = await client.post(
        GH_GRAPHQL,
        json={"query": query, "variables": variables},
        headers={"Content-Type": "application/json", **headers},
    )
    try:
        body = resp.json()
    except ValueError:
        body = {}
    return GraphQLResponse(data=body, status=resp.status_code, status_text=resp.reason_phrase)


async def retry_api_call(
    fetcher: Callable[[dict, str], Awaitable[Any]],
    variables: dict,
    token: str | None = None,
    max_retries: int = 2,
    base_delay: float = RETRY_BASE_DELAY,
):
    """Await `fetcher(variables, token)`, retrying with exponential backoff.

    Waits base_delay * 2**attempt between attempts and re-raises the last
    error once `max_retries` attempts have failed.
    """
    token = token or DEFAULT_GITHUB_TOKEN
    attempts = max(max_retries, 1)
    for attempt in range(attempts):
        try:
            return await fetcher(variables, token)
        except Exception as exc:
            if attempt == attempts - 1:
                raise
            wait = base_delay * 2 ** attempt
            logger.warning("API call failed attempt %d/%d: %s, retrying in %.1fs",
                           attempt + 1, attempts, exc, wait)
            await asyncio.sleep(wait)
