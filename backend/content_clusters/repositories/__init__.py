"""Repositories layer - Data access and persistence.

Repositories handle all database operations using SQLAlchemy.
They abstract the database implementation from the service layer.
"""

from content_clusters.repositories.cluster_build import ClusterBuildRepository
from content_clusters.repositories.content import (
    ContentDocument,
    ContentRepository,
    KeywordMatches,
    PillarPageRecord,
    PostSummary,
    ProductSummary,
    SqlContentRepository,
)
from content_clusters.repositories.strategy import SeoStrategyRepository

__all__ = [
    "ClusterBuildRepository",
    "ContentDocument",
    "ContentRepository",
    "KeywordMatches",
    "PillarPageRecord",
    "PostSummary",
    "ProductSummary",
    "SeoStrategyRepository",
    "SqlContentRepository",
]
