"""ClusterBuildRepository: persistence for pending cluster builds.

A build and its proposed edits are written in a single flush and deleted
together (ORM cascade plus ON DELETE CASCADE), so no orphan edit can
outlive its build.
"""

from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from content_clusters.core.errors import BuildAlreadyInProgress, RepositoryUnavailable
from content_clusters.core.logging import db_logger, get_logger
from content_clusters.models.cluster_build import ClusterBuild, ProposedEdit

logger = get_logger(__name__)


class ClusterBuildRepository:
    """Repository for ClusterBuild rows and their ProposedEdit children."""

    TABLE_NAME = "cluster_builds"

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, build: ClusterBuild) -> ClusterBuild:
        """Persist a build together with its edits.

        Raises:
            BuildAlreadyInProgress: if another build for the same strategy
                was stored concurrently (unique strategy_id).
        """
        try:
            self.session.add(build)
            await self.session.flush()
        except IntegrityError as e:
            logger.warning(
                "Concurrent cluster build rejected by unique constraint",
                extra={"strategy_id": build.strategy_id, "error_message": str(e)},
            )
            raise BuildAlreadyInProgress(build.strategy_id) from e
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e,
                table=self.TABLE_NAME,
                context=f"Creating build for strategy {build.strategy_id}",
            )
            raise RepositoryUnavailable("create_cluster_build", e) from e
        return build

    async def get_by_id(self, build_id: str) -> ClusterBuild | None:
        return await self._one(
            "get_cluster_build",
            select(ClusterBuild)
            .where(ClusterBuild.id == build_id)
            .options(selectinload(ClusterBuild.edits)),
        )

    async def get_by_strategy(self, strategy_id: str) -> ClusterBuild | None:
        return await self._one(
            "get_cluster_build",
            select(ClusterBuild)
            .where(ClusterBuild.strategy_id == strategy_id)
            .options(selectinload(ClusterBuild.edits)),
        )

    async def get_by_pillar_slug(self, slug: str) -> ClusterBuild | None:
        """A pending build whose pillar draft reserves `slug`, if any."""
        return await self._one(
            "get_cluster_build_by_slug",
            select(ClusterBuild).where(ClusterBuild.pillar_slug == slug).limit(1),
        )

    async def find_build_ids_for_targets(self, target_ids: list[str]) -> set[str]:
        """Ids of builds holding a pending edit or pillar draft for any target."""
        if not target_ids:
            return set()
        try:
            edit_rows = await self.session.execute(
                select(ProposedEdit.build_id).where(ProposedEdit.target_id.in_(target_ids))
            )
            pillar_rows = await self.session.execute(
                select(ClusterBuild.id).where(ClusterBuild.pillar_page_id.in_(target_ids))
            )
        except SQLAlchemyError as e:
            logger.error(
                "Failed to resolve builds for documents",
                extra={
                    "target_count": len(target_ids),
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
                exc_info=True,
            )
            raise RepositoryUnavailable("find_cluster_builds", e) from e
        return set(edit_rows.scalars().all()) | set(pillar_rows.scalars().all())

    async def delete(self, build: ClusterBuild) -> None:
        try:
            await self.session.delete(build)
            await self.session.flush()
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e,
                table=self.TABLE_NAME,
                context=f"Deleting build {build.id}",
            )
            raise RepositoryUnavailable("delete_cluster_build", e) from e

    async def _one(self, operation: str, stmt: Select[Any]) -> ClusterBuild | None:
        try:
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to fetch cluster build",
                extra={
                    "operation": operation,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
                exc_info=True,
            )
            raise RepositoryUnavailable(operation, e) from e
