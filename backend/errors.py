"""Error taxonomy for the GitHub stats pipeline and its HTTP translation."""

import traceback

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later or login for higher limits."
RATE_LIMIT_SUGGESTION = "Consider logging in with GitHub for higher rate limits"


class GitHubStatsError(Exception):
    """Base class for errors that end a summary request."""

    status_code = 500


class UserNotFound(GitHubStatsError):
    status_code = 404

    def __init__(self, message: str = "User not found", upstream_status: int | None = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class GraphQLError(GitHubStatsError):
    """A GraphQL payload came back with an ``errors`` list."""

    def __init__(self, message: str, status_text: str = ""):
        super().__init__(message)
        self.status_text = status_text


class MissingParameter(GitHubStatsError):
    def __init__(self, params: list[str]):
        super().__init__(f"Missing required parameters: {', '.join(params)}")
        self.params = params


class MissingToken(GitHubStatsError):
    def __init__(self):
        super().__init__("No GitHub token available")


def _is_rate_limit(exc: Exception) -> bool:
    return "rate limit" in str(exc).lower()


def error_payload(exc: Exception, debug: bool = False) -> tuple[int, dict]:
    """Map an exception to ``(http_status, json_body)``.

    UserNotFound -> 404, GraphQLError -> 500 carrying its message, any other
    error mentioning a rate limit -> 429 with a suggestion, the rest -> 500.
    """
    if isinstance(exc, UserNotFound):
        status, body = 404, {"error": "User not found"}
    elif isinstance(exc, GraphQLError):
        status, body = 500, {"error": str(exc) or "GraphQL API error"}
    elif _is_rate_limit(exc):
        status, body = 429, {"error": RATE_LIMIT_MESSAGE, "suggestion": RATE_LIMIT_SUGGESTION}
    else:
        status, body = 500, {"error": str(exc) or "Failed to fetch GitHub data"}

    if debug:
        body["debug"] = {
            "stack": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        }
    return status, body
