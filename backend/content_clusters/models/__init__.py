"""Models layer - SQLAlchemy ORM models.

Models define the database schema and relationships.
All models inherit from the Base class defined in core.database.
"""

from content_clusters.core.database import Base
from content_clusters.models.cluster_build import ClusterBuild, DocumentType, ProposedEdit
from content_clusters.models.content import (
    PillarPage,
    PillarPageStatus,
    Post,
    PostStatus,
    Product,
)
from content_clusters.models.seo_strategy import SeoStrategy, StrategyStatus

__all__ = [
    "Base",
    "ClusterBuild",
    "DocumentType",
    "PillarPage",
    "PillarPageStatus",
    "Post",
    "PostStatus",
    "Product",
    "ProposedEdit",
    "SeoStrategy",
    "StrategyStatus",
]
