"""FastAPI dependencies wiring repositories and services per request.

Every service in a request shares the request's database session, so one
request is one unit of work: it commits on success and rolls back on error.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from content_clusters.core.database import get_session
from content_clusters.integrations.claude import TextGenerator, get_text_generator
from content_clusters.repositories.cluster_build import ClusterBuildRepository
from content_clusters.repositories.content import SqlContentRepository
from content_clusters.repositories.strategy import SeoStrategyRepository
from content_clusters.services.approval import ApprovalService
from content_clusters.services.cannibalization import CannibalizationChecker
from content_clusters.services.cluster_builder import ClusterBuilder
from content_clusters.services.link_health import LinkHealthChecker
from content_clusters.services.review import ReviewService
from content_clusters.services.strategy_generator import StrategyGenerator
from content_clusters.services.strategy_lifecycle import StrategyLifecycleService


def get_content_repository(
    db: AsyncSession = Depends(get_session),
) -> SqlContentRepository:
    return SqlContentRepository(db)


def get_strategy_repository(
    db: AsyncSession = Depends(get_session),
) -> SeoStrategyRepository:
    return SeoStrategyRepository(db)


def get_build_repository(
    db: AsyncSession = Depends(get_session),
) -> ClusterBuildRepository:
    return ClusterBuildRepository(db)


def get_strategy_generator(
    generator: TextGenerator = Depends(get_text_generator),
    content: SqlContentRepository = Depends(get_content_repository),
    strategies: SeoStrategyRepository = Depends(get_strategy_repository),
) -> StrategyGenerator:
    return StrategyGenerator(generator, content, strategies)


def get_cannibalization_checker(
    content: SqlContentRepository = Depends(get_content_repository),
    strategies: SeoStrategyRepository = Depends(get_strategy_repository),
) -> CannibalizationChecker:
    return CannibalizationChecker(content, strategies)


def get_cluster_builder(
    generator: TextGenerator = Depends(get_text_generator),
    content: SqlContentRepository = Depends(get_content_repository),
    strategies: SeoStrategyRepository = Depends(get_strategy_repository),
    builds: ClusterBuildRepository = Depends(get_build_repository),
) -> ClusterBuilder:
    return ClusterBuilder(generator, content, strategies, builds)


def get_review_service(
    builds: ClusterBuildRepository = Depends(get_build_repository),
) -> ReviewService:
    return ReviewService(builds)


def get_approval_service(
    content: SqlContentRepository = Depends(get_content_repository),
    strategies: SeoStrategyRepository = Depends(get_strategy_repository),
    builds: ClusterBuildRepository = Depends(get_build_repository),
) -> ApprovalService:
    return ApprovalService(content, strategies, builds)


def get_link_health_checker(
    content: SqlContentRepository = Depends(get_content_repository),
) -> LinkHealthChecker:
    return LinkHealthChecker(content)


def get_lifecycle_service(
    strategies: SeoStrategyRepository = Depends(get_strategy_repository),
    builds: ClusterBuildRepository = Depends(get_build_repository),
    content: SqlContentRepository = Depends(get_content_repository),
) -> StrategyLifecycleService:
    return StrategyLifecycleService(strategies, builds, content)
