from __future__ import annotations

import json

import pytest

from errors import (
    RATE_LIMIT_SUGGESTION,
    GraphQLError,
    MissingParameter,
    MissingToken,
    UserNotFound,
    error_payload,
)
from session import resolve_credentials


def test_error_payload_maps_taxonomy_to_status_codes() -> None:
    assert error_payload(UserNotFound(upstream_status=404)) == (404, {"error": "User not found"})
    assert error_payload(GraphQLError("Field 'x' doesn't exist")) == (500, {"error": "Field 'x' doesn't exist"})
    assert error_payload(MissingParameter(["username"])) == (
        500, {"error": "Missing required parameters: username"},
    )
    assert error_payload(RuntimeError("boom")) == (500, {"error": "boom"})
    assert error_payload(RuntimeError()) == (500, {"error": "Failed to fetch GitHub data"})


@pytest.mark.parametrize("exc", [RuntimeError("API rate limit exceeded for 1.2.3.4"), ValueError("Rate Limit hit")])
def test_rate_limit_errors_map_to_429_with_suggestion(exc: Exception) -> None:
    status, body = error_payload(exc)
    assert status == 429
    assert body["suggestion"] == RATE_LIMIT_SUGGESTION


def test_graphql_errors_mentioning_rate_limit_stay_500() -> None:
    status, body = error_payload(GraphQLError("API rate limit exceeded for user ID 1."))
    assert status == 500
    assert body == {"error": "API rate limit exceeded for user ID 1."}


def test_debug_stack_only_when_requested() -> None:
    try:
        raise RuntimeError("kaput")
    except RuntimeError as exc:
        _, plain = error_payload(exc)
        _, debug = error_payload(exc, debug=True)
    assert "debug" not in plain
    assert "RuntimeError: kaput" in debug["debug"]["stack"]


def test_own_profile_uses_session_token() -> None:
    cookie = json.dumps({"login": "octo", "access_token": "user-token"})
    creds = resolve_credentials(cookie, "octo", "default")
    assert creds.token == "user-token"
    assert creds.is_authenticated


def test_other_profiles_and_bad_cookies_use_default_token() -> None:
    cookie = json.dumps({"login": "someone-else", "access_token": "user-token"})
    for value in (cookie, "{not json", None):
        creds = resolve_credentials(value, "octo", "default")
        assert creds.token == "default"
        assert not creds.is_authenticated
    assert "default" not in repr(creds)


def test_missing_token_raises() -> None:
    with pytest.raises(MissingToken):
        resolve_credentials(None, "octo", "")
