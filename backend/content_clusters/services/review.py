"""Review surface: pending cluster changes as reviewable items.

The first item is the pillar page draft (original content ""), followed by
every proposed edit in position order. Reading is side-effect free;
re-reading returns the same items until the build is committed or
discarded, after which the sequence is empty.
"""

from collections.abc import AsyncIterator
from dataclasses import dataclass

from content_clusters.models.cluster_build import ClusterBuild, DocumentType
from content_clusters.repositories.cluster_build import ClusterBuildRepository


@dataclass(frozen=True)
class ReviewItem:
    id: str
    type: str
    title: str
    original_content: str
    proposed_content: str


def review_items_for(build: ClusterBuild) -> list[ReviewItem]:
    items = [
        ReviewItem(
            id=build.pillar_page_id,
            type=DocumentType.PILLAR_PAGE.value,
            title=build.pillar_title,
            original_content="",
            proposed_content=build.pillar_body,
        )
    ]
    for edit in sorted(build.edits, key=lambda e: e.position):
        items.append(
            ReviewItem(
                id=edit.target_id,
                type=edit.target_type,
                title=edit.title,
                original_content=edit.original_content,
                proposed_content=edit.proposed_content,
            )
        )
    return items


class ReviewService:
    """Reads pending builds for review."""

    def __init__(self, builds: ClusterBuildRepository) -> None:
        self._builds = builds

    async def _find_build(
        self, strategy_id: str | None, build_id: str | None
    ) -> ClusterBuild | None:
        if build_id:
            return await self._builds.get_by_id(build_id)
        if strategy_id:
            return await self._builds.get_by_strategy(strategy_id)
        return None

    async def iter_review_items(
        self, strategy_id: str | None = None, build_id: str | None = None
    ) -> AsyncIterator[ReviewItem]:
        """Lazily yield review items for a build, by build id or strategy id."""
        build = await self._find_build(strategy_id, build_id)
        if build is None:
            return
        for item in review_items_for(build):
            yield item

    async def get_review_data(
        self, strategy_id: str | None = None, build_id: str | None = None
    ) -> tuple[ClusterBuild | None, list[ReviewItem]]:
        """Review items plus the build they belong to (None when nothing is pending)."""
        build = await self._find_build(strategy_id, build_id)
        if build is None:
            return None, []
        return build, review_items_for(build)
