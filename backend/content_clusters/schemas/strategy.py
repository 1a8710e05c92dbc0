"""Pydantic v2 schemas for SEO strategy endpoints.

- StrategyGenerateRequest: topic + description to generate proposals for
- StrategyResponse: a persisted strategy
- StrategyListResponse / StrategyGenerateResponse: collections
- ClusterSuggestionsResponse: suggested cluster members for a strategy
"""

from datetime import datetime

from pydantic import Field

from content_clusters.schemas.base import CamelModel


class StrategyGenerateRequest(CamelModel):
    """Request schema for generating strategy proposals."""

    topic: str = Field(..., description="Topic to build strategies around")
    description: str = Field(
        ..., description="What the cluster should achieve and for whom"
    )


class StrategyResponse(CamelModel):
    """Response schema for a single SEO strategy."""

    id: str = Field(..., description="SeoStrategy UUID")
    topic: str = Field(..., description="Central topic of the cluster")
    target_keywords: list[str] = Field(default_factory=list)
    suggested_title: str = Field(..., description="Suggested pillar page title")
    rationale: str | None = Field(None, description="Why this strategy should work")
    related_products: list[str] = Field(
        default_factory=list, description="Related product ids"
    )
    related_posts: list[str] = Field(default_factory=list, description="Related post ids")
    suggested_posts: list[str] = Field(
        default_factory=list, description="Supporting articles worth writing"
    )
    status: str = Field(..., description="proposed, approved, rejected or generated")
    created_at: datetime
    updated_at: datetime


class StrategyGenerateResponse(CamelModel):
    count: int
    strategies: list[StrategyResponse]


class StrategyListResponse(CamelModel):
    strategies: list[StrategyResponse]
    total: int


class ProductSuggestion(CamelModel):
    id: str
    name: str
    slug: str
    category: str | None = None


class PostSuggestion(CamelModel):
    id: str
    title: str
    slug: str


class ClusterSuggestionsResponse(CamelModel):
    strategy_id: str
    products: list[ProductSuggestion]
    posts: list[PostSuggestion]
