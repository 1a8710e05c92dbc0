"""Schemas layer - Pydantic request/response models for the HTTP API."""

from content_clusters.schemas.cluster import (
    ApproveChangesRequest,
    ApproveChangesResponse,
    ClusterBuildRequest,
    ClusterBuildResponse,
    DiscardBuildResponse,
    DocumentRefSchema,
    ReviewDataResponse,
    ReviewItemResponse,
)
from content_clusters.schemas.seo import (
    CannibalizationCheckRequest,
    CannibalizationCheckResponse,
    LinkHealthIssueResponse,
    LinkHealthResponse,
    OverlapMatchResponse,
)
from content_clusters.schemas.strategy import (
    ClusterSuggestionsResponse,
    PostSuggestion,
    ProductSuggestion,
    StrategyGenerateRequest,
    StrategyGenerateResponse,
    StrategyListResponse,
    StrategyResponse,
)

__all__ = [
    "ApproveChangesRequest",
    "ApproveChangesResponse",
    "CannibalizationCheckRequest",
    "CannibalizationCheckResponse",
    "ClusterBuildRequest",
    "ClusterBuildResponse",
    "ClusterSuggestionsResponse",
    "DiscardBuildResponse",
    "DocumentRefSchema",
    "LinkHealthIssueResponse",
    "LinkHealthResponse",
    "OverlapMatchResponse",
    "PostSuggestion",
    "ProductSuggestion",
    "ReviewDataResponse",
    "ReviewItemResponse",
    "StrategyGenerateRequest",
    "StrategyGenerateResponse",
    "StrategyListResponse",
    "StrategyResponse",
]
