"""Pydantic v2 schemas for the cannibalization and link health endpoints."""

from pydantic import Field

from content_clusters.schemas.base import CamelModel


class CannibalizationCheckRequest(CamelModel):
    topic: str = Field(..., description="Candidate topic to check")


class OverlapMatchResponse(CamelModel):
    document_id: str
    document_type: str
    title: str
    score: float = Field(..., description="Share of topic tokens found in the document")
    reason: str


class CannibalizationCheckResponse(CamelModel):
    """Advisory result; `verified` is False when the corpus could not be read."""

    has_conflict: bool
    conflicts: list[str] = Field(
        default_factory=list, description="Human-readable conflict descriptions"
    )
    matches: list[OverlapMatchResponse] = Field(default_factory=list)
    verified: bool = True
    error: str | None = None


class LinkHealthIssueResponse(CamelModel):
    pillar_title: str
    pillar_slug: str
    broken_product_slug: str


class LinkHealthResponse(CamelModel):
    status: str = Field(..., description="healthy or warning")
    issues: list[LinkHealthIssueResponse] = Field(default_factory=list)
    checked_pages: int = 0
