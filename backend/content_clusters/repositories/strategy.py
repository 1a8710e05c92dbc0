"""SeoStrategyRepository: persistence for SEO strategies.

Status changes go through `set_status`, which logs every transition.
"""

import time
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from content_clusters.core.errors import RepositoryUnavailable
from content_clusters.core.logging import cluster_logger, db_logger, get_logger
from content_clusters.models.seo_strategy import SeoStrategy, StrategyStatus

logger = get_logger(__name__)


class SeoStrategyRepository:
    """Repository for SeoStrategy rows."""

    TABLE_NAME = "seo_strategies"
    SLOW_OPERATION_THRESHOLD_MS = 1000

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_many(self, candidates: list[dict[str, Any]]) -> list[SeoStrategy]:
        """Persist strategy candidates as `proposed`, in order.

        Args:
            candidates: Dicts with topic, target_keywords, suggested_title,
                rationale, related_products, related_posts, suggested_posts

        Returns:
            The created SeoStrategy instances
        """
        start_time = time.monotonic()
        strategies = [
            SeoStrategy(status=StrategyStatus.PROPOSED.value, **candidate)
            for candidate in candidates
        ]
        try:
            self.session.add_all(strategies)
            await self.session.flush()
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e,
                table=self.TABLE_NAME,
                context=f"Creating {len(strategies)} strategies",
            )
            raise RepositoryUnavailable("create_strategies", e) from e

        duration_ms = (time.monotonic() - start_time) * 1000
        if duration_ms > self.SLOW_OPERATION_THRESHOLD_MS:
            db_logger.slow_query(
                query="INSERT INTO seo_strategies",
                duration_ms=duration_ms,
                table=self.TABLE_NAME,
            )
        return strategies

    async def get_by_id(self, strategy_id: str) -> SeoStrategy | None:
        try:
            result = await self.session.execute(
                select(SeoStrategy).where(SeoStrategy.id == strategy_id)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to fetch strategy by ID",
                extra={
                    "strategy_id": strategy_id,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
                exc_info=True,
            )
            raise RepositoryUnavailable("get_strategy", e) from e

    async def list_all(self, status: str | None = None) -> list[SeoStrategy]:
        """List strategies, newest first."""
        stmt = select(SeoStrategy).order_by(SeoStrategy.created_at.desc())
        if status is not None:
            stmt = stmt.where(SeoStrategy.status == status)
        try:
            result = await self.session.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(
                "Failed to list strategies",
                extra={
                    "status": status,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
                exc_info=True,
            )
            raise RepositoryUnavailable("list_strategies", e) from e

    async def list_by_statuses(self, statuses: list[str]) -> list[SeoStrategy]:
        try:
            result = await self.session.execute(
                select(SeoStrategy).where(SeoStrategy.status.in_(statuses))
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(
                "Failed to list strategies by status",
                extra={
                    "statuses": statuses,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
                exc_info=True,
            )
            raise RepositoryUnavailable("list_strategies", e) from e

    async def set_status(self, strategy: SeoStrategy, status: StrategyStatus) -> None:
        """Change a strategy's status and flush."""
        previous = strategy.status
        strategy.status = status.value
        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e,
                table=self.TABLE_NAME,
                context=f"Updating strategy {strategy.id} status to {status.value}",
            )
            raise RepositoryUnavailable("update_strategy_status", e) from e
        cluster_logger.strategy_transition(strategy.id, previous, status.value)
