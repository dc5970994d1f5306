"""GitHub connector: REST profile lookup and the combined GraphQL snapshot query."""

import logging
import textwrap

import httpx

from errors import GraphQLError, UserNotFound
from models import Credentials, LanguageEdge, RepositorySnapshot, UserSnapshot

from .graphql import GraphQLResponse, bearer_headers, post_graphql, retry_api_call

logger = logging.getLogger(__name__)

GH_API = "https://api.github.com"
USER_AGENT = "GitHub-Card-Generator"
ERROR_WRAP_WIDTH = 90


def user_snapshot_query(is_authenticated: bool) -> str:
    """Single query for profile totals and up to 100 repositories.

    Unauthenticated requests restrict repositories to `privacy: PUBLIC`.
    """
    privacy = "" if is_authenticated else "privacy: PUBLIC"
    return f"""
    query userInfo($login: String!) {{
      user(login: $login) {{
        id
        name
        login
        createdAt
        contributionsCollection {{
          totalCommitContributions
        }}
        pullRequests {{
          totalCount
        }}
        openIssues: issues(states: OPEN) {{
          totalCount
        }}
        closedIssues: issues(states: CLOSED) {{
          totalCount
        }}
        repositories(
          first: 100
          ownerAffiliations: [OWNER, COLLABORATOR, ORGANIZATION_MEMBER]
          {privacy}
          orderBy: {{field: UPDATED_AT, direction: DESC}}
        ) {{
          totalCount
          nodes {{
            name
            owner {{
              login
            }}
            isPrivate
            isFork
            isArchived
            stargazers {{
              totalCount
            }}
            languages(first: 10, orderBy: {{field: SIZE, direction: DESC}}) {{
              edges {{
                size
                node {{
                  color
                  name
                }}
              }}
            }}
          }}
        }}
      }}
    }}
    """


async def fetch_rest_user(client: httpx.AsyncClient, username: str, token: str) -> httpx.Response:
    """GET /users/{username}. The caller decides what a non-2xx status means."""
    return await client.get(
        f"{GH_API}/users/{username}",
        headers={
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": USER_AGENT,
            "Authorization": f"token {token}",
        },
    )


def _total(node: dict | None) -> int:
    count = (node or {}).get("totalCount") or 0
    return count if isinstance(count, int) and count > 0 else 0


def _parse_repository(node: dict, default_owner: str) -> RepositorySnapshot:
    edges = (node.get("languages") or {}).get("edges") or []
    languages = []
    for edge in edges:
        lang = edge.get("node") or {}
        if not lang.get("name"):
            continue
        size = edge.get("size") or 0
        languages.append(LanguageEdge(
            name=lang["name"],
            color_hex=lang.get("color"),
            byte_size=size if size > 0 else 0,
        ))
    return RepositorySnapshot(
        name=node["name"],
        owner=(node.get("owner") or {}).get("login") or default_owner,
        is_private=bool(node.get("isPrivate")),
        is_fork=bool(node.get("isFork")),
        is_archived=bool(node.get("isArchived")),
        star_count=_total(node.get("stargazers")),
        languages=tuple(languages),
    )


def parse_user_snapshot(user: dict) -> UserSnapshot:
    """Translate the raw `user` node into a UserSnapshot. Malformed repo nodes are skipped."""
    login = user.get("login") or ""
    repo_conn = user.get("repositories") or {}
    repositories = []
    for node in repo_conn.get("nodes") or []:
        try:
            repositories.append(_parse_repository(node, login))
        except (KeyError, TypeError) as exc:
            logger.debug("Skipping malformed repository node %r: %s", node, exc)

    total_repos = repo_conn.get("totalCount")
    if not isinstance(total_repos, int) or total_repos < 0:
        total_repos = len(repositories)

    contributions = (user.get("contributionsCollection") or {}).get("totalCommitContributions") or 0
    return UserSnapshot(
        id=user.get("id") or "",
        login=login,
        name=user.get("name"),
        created_at=user.get("createdAt"),
        pull_request_count=_total(user.get("pullRequests")),
        open_issue_count=_total(user.get("openIssues")),
        closed_issue_count=_total(user.get("closedIssues")),
        contributions_this_period=max(contributions, 0),
        total_repository_count=total_repos,
        repositories=tuple(repositories),
    )


def snapshot_from_response(response: GraphQLResponse) -> UserSnapshot:
    """Raise the matching error for a failed snapshot query, else parse it."""
    errors = response.errors
    if errors:
        logger.error("GraphQL errors: %s", errors)
        first = errors[0] if isinstance(errors[0], dict) else {}
        message = first.get("message") or ""
        if first.get("type") == "NOT_FOUND":
            raise UserNotFound(message or "Could not fetch user.")
        if message:
            wrapped = textwrap.wrap(message, ERROR_WRAP_WIDTH) or [message]
            raise GraphQLError(wrapped[0], response.status_text)
        raise GraphQLError(
            "Something went wrong while trying to retrieve the stats data using the GraphQL API.",
            response.status_text,
        )

    user = response.payload.get("user")
    if not user:
        raise UserNotFound("User data not found")
    return parse_user_snapshot(user)


async def fetch_user_snapshot(
    client: httpx.AsyncClient,
    username: str,
    credentials: Credentials,
    max_retries: int = 2,
) -> UserSnapshot:
    """Run the snapshot query (with retry on transport failure) and parse it."""
    query = user_snapshot_query(credentials.is_authenticated)

    async def _fetch(variables: dict, token: str) -> GraphQLResponse:
        return await post_graphql(client, query, variables, bearer_headers(token))

    response = await retry_api_call(
        _fetch, {"login": username}, credentials.token, max_retries=max_retries,
    )
    return snapshot_from_response(response)
