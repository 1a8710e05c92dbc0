"""Services layer - Business logic and orchestration.

Services coordinate between repositories and the text-generation
integration to implement the cluster workflow:

generate strategies -> check cannibalization -> build cluster -> review
-> approve changes, with link health checks running independently.
"""

from content_clusters.services.approval import ApprovalResult, ApprovalService, DocumentRef
from content_clusters.services.cannibalization import (
    CannibalizationChecker,
    CannibalizationResult,
    OverlapMatch,
)
from content_clusters.services.catalog import (
    CatalogSnapshot,
    StrategyDigest,
    load_catalog_snapshot,
)
from content_clusters.services.cluster_builder import ClusterBuilder, ClusterBuildResult
from content_clusters.services.link_health import (
    LinkHealthChecker,
    LinkHealthIssue,
    LinkHealthReport,
)
from content_clusters.services.link_injection import LinkInjector, LinkTarget
from content_clusters.services.relevance import RelevanceSelector
from content_clusters.services.review import ReviewItem, ReviewService
from content_clusters.services.strategy_generator import StrategyGenerator
from content_clusters.services.strategy_lifecycle import (
    ClusterSuggestions,
    StrategyLifecycleService,
)

__all__ = [
    "ApprovalResult",
    "ApprovalService",
    "CannibalizationChecker",
    "CannibalizationResult",
    "CatalogSnapshot",
    "ClusterBuildResult",
    "ClusterBuilder",
    "ClusterSuggestions",
    "DocumentRef",
    "LinkHealthChecker",
    "LinkHealthIssue",
    "LinkHealthReport",
    "LinkInjector",
    "LinkTarget",
    "OverlapMatch",
    "RelevanceSelector",
    "ReviewItem",
    "ReviewService",
    "StrategyDigest",
    "StrategyGenerator",
    "StrategyLifecycleService",
    "load_catalog_snapshot",
]
