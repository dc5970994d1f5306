import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from commit_estimator import CommitEstimator, build_default_estimator
from connectors.graphql import DEFAULT_GITHUB_TOKEN
from errors import error_payload
from languages import parse_exclude_param
from models import ErrorResponse, GitHubUserSummary
from session import SESSION_COOKIE, resolve_credentials
from summary import build_user_summary

logger = logging.getLogger("devcard")
logger.setLevel(logging.INFO)

DEV_MODE = os.environ.get("ENV") == "dev"
HTTP_TIMEOUT = float(os.environ.get("GITHUB_HTTP_TIMEOUT", "15"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Attach to uvicorn's handler (available now that uvicorn is running)
    uvicorn_logger = logging.getLogger("uvicorn")
    for h in uvicorn_logger.handlers:
        logger.addHandler(h)
    logger.info("DevCard API started (token configured: %s, dev mode: %s)",
                bool(DEFAULT_GITHUB_TOKEN), DEV_MODE)
    yield


# Disable docs in production
docs_url = "/docs" if DEV_MODE else None
redoc_url = "/redoc" if DEV_MODE else None

app = FastAPI(
    title="DevCard API", version="0.1.0",
    docs_url=docs_url, redoc_url=redoc_url, lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["Content-Type"],
)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


# ---------------------------------------------------------------------------
# Dependencies (overridden in tests)
# ---------------------------------------------------------------------------

async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """One client per request; nothing is shared across requests."""
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
        yield client


def get_estimator() -> CommitEstimator:
    return build_default_estimator()


def get_default_token() -> str:
    return DEFAULT_GITHUB_TOKEN


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/health")
def health():
    return {"status": "ok"}


@app.get(
    "/githubuser/{username}",
    response_model=GitHubUserSummary,
    responses={404: {"model": ErrorResponse}, 429: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def github_user(
    username: str,
    request: Request,
    exclude_repo: str = Query(default=""),
    client: httpx.AsyncClient = Depends(get_http_client),
    estimator: CommitEstimator = Depends(get_estimator),
    default_token: str = Depends(get_default_token),
):
    try:
        credentials = resolve_credentials(request.cookies.get(SESSION_COOKIE), username, default_token)
        return await build_user_summary(
            client, username, credentials, parse_exclude_param(exclude_repo), estimator,
        )
    except Exception as exc:
        status, body = error_payload(exc, debug=DEV_MODE)
        if status >= 500:
            logger.exception("githubuser PIPELINE_ERROR user=%s", username)
        else:
            logger.warning("githubuser user=%s status=%d error=%s", username, status, exc)
        return JSONResponse(status_code=status, content=body)
