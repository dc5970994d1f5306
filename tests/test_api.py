from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import AsyncIterator

import httpx
import pytest
from fastapi.testclient import TestClient

import main
from commit_estimator import build_default_estimator
from github_fakes import FakeGitHub, repo_node, user_node


@pytest.fixture
def api():
    """Return a factory wiring the app to a FakeGitHub; overrides are cleared afterwards."""

    def _wire(fake: FakeGitHub) -> TestClient:
        async def _client() -> AsyncIterator[httpx.AsyncClient]:
            async with httpx.AsyncClient(transport=httpx.MockTransport(fake.handler)) as client:
                yield client

        main.app.dependency_overrides[main.get_http_client] = _client
        main.app.dependency_overrides[main.get_estimator] = lambda: build_default_estimator(
            batch_delay=0, search_delay=0,
        )
        main.app.dependency_overrides[main.get_default_token] = lambda: "server-token"
        return TestClient(main.app)

    yield _wire
    main.app.dependency_overrides.clear()


def _last_year() -> int:
    return datetime.now(timezone.utc).year - 1


def test_health() -> None:
    assert TestClient(main.app).get("/health").json() == {"status": "ok"}


def test_public_profile_uses_contribution_timeline(api) -> None:
    repos = [
        repo_node("alpha", stars=5, languages=(("Python", 3000),)),
        repo_node("beta", stars=2, languages=(("Go", 1000),)),
        repo_node("gamma", stars=1, languages=(("Python", 500), ("HTML", 200))),
    ]
    fake = FakeGitHub(
        user=user_node(repos, created_at=f"{_last_year()}-06-01T00:00:00Z", prs=6, open_issues=1, closed_issues=3),
        timeline=[30, 12],
    )

    resp = api(fake).get("/githubuser/octo")

    assert resp.status_code == 200
    body = resp.json()
    assert body["totalCommits"] == 42 + (1 + 3 + 6 + 4)
    assert body["totalStars"] == 8
    assert body["totalPRs"] == 6
    assert body["totalIssues"] == 4
    assert body["topLanguages"] == ["#Python", "#Go", "#HTML"]
    assert body["login"] == "octo"
    assert body["name"] == "octo"
    assert body["bio"] == ""
    assert body["company"] == "Acme"
    assert body["public_repos"] == 3
    assert body["followers"] == 7
    meta = body["_metadata"]
    assert meta["commitCalculationMethod"].startswith("contribution-timeline-public-2years+")
    assert meta["authenticated"] is False
    assert meta["dataScope"] == "public-only"
    assert meta["timestamp"].endswith("Z")
    assert fake.count("history") == 0
    assert fake.count("search") == 0

    snapshot_request = next(r for r in fake.requests if r.url.path == "/graphql")
    assert snapshot_request.headers["Authorization"] == "bearer server-token"
    assert "privacy: PUBLIC" in json.loads(snapshot_request.content)["query"]


def test_unknown_user_returns_404(api) -> None:
    fake = FakeGitHub(rest_status=404, snapshot_errors=[{"type": "NOT_FOUND", "message": "Could not resolve"}])

    resp = api(fake).get("/githubuser/nobody-here")

    assert resp.status_code == 404
    assert resp.json() == {"error": "User not found"}


def test_all_strategies_failing_still_returns_fallback_estimate(api) -> None:
    fake = FakeGitHub(
        user=user_node([repo_node("alpha"), repo_node("beta")], created_at="2020-01-01T00:00:00Z"),
        timeline=None,
        history={},
        search=None,
    )

    resp = api(fake).get("/githubuser/octo")

    assert resp.status_code == 200
    body = resp.json()
    assert body["_metadata"]["commitCalculationMethod"].startswith("estimated-fallback-public-2repos*")
    assert isinstance(body["totalCommits"], int)
    assert body["totalCommits"] >= 0
    assert fake.count("timeline") == 1
    assert fake.count("history") == 2
    assert fake.count("search") == 3


def test_excluded_repository_is_left_out_of_stars_and_languages(api) -> None:
    repos = [
        repo_node("visible", stars=3, languages=(("TypeScript", 800),)),
        repo_node("secret-repo", stars=100, languages=(("Rust", 5000),)),
    ]
    fake = FakeGitHub(user=user_node(repos), timeline=[1] * 10)

    resp = api(fake).get("/githubuser/octo", params={"exclude_repo": "secret-repo,not-a-repo"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["totalStars"] == 3
    assert body["topLanguages"] == ["#TypeScript"]


def test_session_cookie_for_own_profile_includes_private_data(api) -> None:
    fake = FakeGitHub(user=user_node([repo_node("alpha")]), timeline=[2] * 10)
    session = json.dumps({"login": "octo", "access_token": "user-token"}, separators=(",", ":"))

    resp = api(fake).get("/githubuser/octo", headers={"Cookie": f"github_user={session}"})

    assert resp.status_code == 200
    meta = resp.json()["_metadata"]
    assert meta["authenticated"] is True
    assert meta["dataScope"] == "public-and-private"
    assert meta["commitCalculationMethod"].startswith("contribution-timeline-authenticated-")
    snapshot_request = next(r for r in fake.requests if r.url.path == "/graphql")
    assert "privacy: PUBLIC" not in json.loads(snapshot_request.content)["query"]
    assert snapshot_request.headers["Authorization"] == "bearer user-token"


class RateLimitedProfile(FakeGitHub):
    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.startswith("/users/"):
            raise httpx.ConnectError("API rate limit exceeded for 1.2.3.4", request=request)
        return super().handler(request)


def test_rate_limited_profile_fetch_maps_to_429(api) -> None:
    fake = RateLimitedProfile(user=user_node([repo_node("alpha")]), timeline=[1])

    resp = api(fake).get("/githubuser/octo")

    assert resp.status_code == 429
    assert resp.json()["suggestion"] == "Consider logging in with GitHub for higher rate limits"


def test_graphql_rate_limited_error_maps_to_500(api) -> None:
    fake = FakeGitHub(snapshot_errors=[{"type": "RATE_LIMITED", "message": "API rate limit exceeded"}])

    resp = api(fake).get("/githubuser/octo")

    assert resp.status_code == 500
    assert resp.json() == {"error": "API rate limit exceeded"}


def test_graphql_error_maps_to_500(api) -> None:
    fake = FakeGitHub(snapshot_errors=[{"type": "INTERNAL", "message": "Something went wrong upstream"}])

    resp = api(fake).get("/githubuser/octo")

    assert resp.status_code == 500
    assert resp.json() == {"error": "Something went wrong upstream"}
