"""Pydantic models for the per-request snapshot and the API response."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Credentials(BaseModel):
    """Token resolved once at the HTTP boundary and threaded through every call."""

    model_config = ConfigDict(frozen=True)

    token: str = Field(..., repr=False)
    is_authenticated: bool = False

    @property
    def scope_label(self) -> str:
        return "authenticated" if self.is_authenticated else "public"


# ---------------------------------------------------------------------------
# Snapshot (one GraphQL query per request, immutable afterwards)
# ---------------------------------------------------------------------------

class LanguageEdge(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    color_hex: str | None = None
    byte_size: int = Field(default=0, ge=0)


class RepositorySnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    owner: str = ""
    is_private: bool = False
    is_fork: bool = False
    is_archived: bool = False
    star_count: int = Field(default=0, ge=0)
    languages: tuple[LanguageEdge, ...] = ()


class UserSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = ""
    login: str
    name: str | None = None
    created_at: datetime | None = None
    pull_request_count: int = Field(default=0, ge=0)
    open_issue_count: int = Field(default=0, ge=0)
    closed_issue_count: int = Field(default=0, ge=0)
    contributions_this_period: int = Field(default=0, ge=0)
    total_repository_count: int = Field(default=0, ge=0)
    repositories: tuple[RepositorySnapshot, ...] = ()

    @property
    def total_issue_count(self) -> int:
        return self.open_issue_count + self.closed_issue_count

    def account_age_years(self, now: datetime) -> float:
        if self.created_at is None:
            return 0.0
        days = (now - self.created_at).total_seconds() / 86400
        return max(days / 365.25, 0.0)


class CommitEstimate(BaseModel):
    model_config = ConfigDict(frozen=True)

    count: int = Field(..., ge=0)
    method: str


class RankedLanguage(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    color_hex: str | None = None
    total_bytes: int = 0
    occurrences: int = 0

    @property
    def tag(self) -> str:
        return f"#{self.name}"


# ---------------------------------------------------------------------------
# Public response
# ---------------------------------------------------------------------------

class SummaryMetadata(BaseModel):
    authenticated: bool
    timestamp: str
    commitCalculationMethod: str
    dataScope: Literal["public-only", "public-and-private"]


class GitHubUserSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    login: str
    name: str
    avatar_url: str = ""
    bio: str = ""
    company: str = ""
    location: str = ""
    created_at: str = ""
    public_repos: int = 0
    followers: int = 0
    totalCommits: int = Field(..., ge=0)
    totalStars: int = Field(..., ge=0)
    totalPRs: int = Field(..., ge=0)
    totalIssues: int = Field(..., ge=0)
    topLanguages: list[str] = Field(default_factory=list, max_length=5)
    metadata: SummaryMetadata = Field(..., alias="_metadata")


class ErrorResponse(BaseModel):
    error: str
    suggestion: str | None = None
    debug: dict | None = None
