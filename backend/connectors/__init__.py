"""Data connectors for the GitHub REST and GraphQL APIs."""

from .graphql import GraphQLResponse, bearer_headers, post_graphql, retry_api_call
from .github_connector import fetch_rest_user, fetch_user_snapshot
from .commit_search import search_commit_total, search_variants

__all__ = [
    "GraphQLResponse", "bearer_headers", "post_graphql", "retry_api_call",
    "fetch_rest_user", "fetch_user_snapshot",
    "search_commit_total", "search_variants",
]
