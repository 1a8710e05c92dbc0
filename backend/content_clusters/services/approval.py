"""Approval batch committer: publish reviewed cluster changes all-or-nothing.

The content store only guarantees single-document writes, so atomicity is
enforced here in two phases:

1. Validate: re-read every target and compare its live content with the
   snapshot taken at build time. Any difference aborts the whole batch
   before the first write (StaleContentConflict) and keeps the build.
2. Write: apply every proposed content in review order. A failure after
   earlier writes is reported as PartialCommitError naming what was and
   was not written.

On success the strategy becomes `generated` and the build is deleted, so
approving the same documents again finds nothing pending and is a no-op.
"""

from dataclasses import dataclass, field

from content_clusters.core.config import get_settings
from content_clusters.core.errors import (
    ApprovalBatchError,
    ClusterEngineError,
    PartialCommitError,
    StaleContentConflict,
)
from content_clusters.core.logging import cluster_logger, get_logger
from content_clusters.models.cluster_build import ClusterBuild, DocumentType
from content_clusters.models.content import PillarPageStatus
from content_clusters.models.seo_strategy import StrategyStatus
from content_clusters.repositories.cluster_build import ClusterBuildRepository
from content_clusters.repositories.content import ContentRepository, PillarPageRecord
from content_clusters.repositories.strategy import SeoStrategyRepository
from content_clusters.services.review import ReviewItem, review_items_for

logger = get_logger(__name__)

VALID_DOCUMENT_TYPES = frozenset(t.value for t in DocumentType)


@dataclass(frozen=True)
class DocumentRef:
    id: str
    type: str


@dataclass
class ApprovalResult:
    published_count: int
    strategy_status: str | None = None
    strategy_id: str | None = None
    build_id: str | None = None
    skipped: list[DocumentRef] = field(default_factory=list)


def _describe(item: ReviewItem) -> dict[str, str]:
    return {"id": item.id, "type": item.type, "title": item.title}


class ApprovalService:
    """Commits reviewed cluster changes to live content."""

    def __init__(
        self,
        content: ContentRepository,
        strategies: SeoStrategyRepository,
        builds: ClusterBuildRepository,
    ) -> None:
        self._content = content
        self._strategies = strategies
        self._builds = builds

    def _validate_documents(self, documents: list[DocumentRef]) -> None:
        if not documents:
            raise ApprovalBatchError("No documents given for approval")
        for doc in documents:
            if doc.type not in VALID_DOCUMENT_TYPES:
                raise ApprovalBatchError(
                    f"Unknown document type '{doc.type}' for document {doc.id}"
                )

    async def _resolve_build(
        self, documents: list[DocumentRef], build_id: str | None
    ) -> ClusterBuild | None:
        if build_id:
            return await self._builds.get_by_id(build_id)

        build_ids = await self._builds.find_build_ids_for_targets(
            [doc.id for doc in documents]
        )
        if not build_ids:
            return None
        if len(build_ids) == 1:
            return await self._builds.get_by_id(build_ids.pop())

        # A post can sit in several builds; only a build holding every document resolves
        wanted = {(doc.id, doc.type) for doc in documents}
        covering = []
        for candidate_id in sorted(build_ids):
            candidate = await self._builds.get_by_id(candidate_id)
            if candidate is None:
                continue
            held = {(item.id, item.type) for item in review_items_for(candidate)}
            if wanted <= held:
                covering.append(candidate)
        if len(covering) != 1:
            raise ApprovalBatchError(
                "Documents do not resolve to a single pending cluster build; "
                "pass build_id or approve one build at a time"
            )
        return covering[0]

    def _require_pillar(self, build: ClusterBuild, selected: list[ReviewItem]) -> None:
        """Edits linking to the pillar page publish only together with the page."""
        if any(item.id == build.pillar_page_id for item in selected):
            return
        pillar_url = f"{get_settings().pillar_url_prefix}{build.pillar_slug}"
        dangling = [
            _describe(item)
            for item in selected
            if pillar_url in item.proposed_content and pillar_url not in item.original_content
        ]
        if dangling:
            raise ApprovalBatchError(
                f"{len(dangling)} edit(s) link to the unpublished pillar page "
                f"'{build.pillar_title}'; approve the pillar page in the same batch"
            )

    async def _live_content(self, item: ReviewItem) -> str | None:
        document = await self._content.get_by_id(DocumentType(item.type), item.id)
        if document is None:
            # A pillar page that does not exist yet has empty live content
            return "" if item.type == DocumentType.PILLAR_PAGE.value else None
        return document.content

    async def _find_conflicts(
        self, build: ClusterBuild, items: list[ReviewItem]
    ) -> list[dict[str, str]]:
        conflicts = []
        for item in items:
            live = await self._live_content(item)
            if live != item.original_content:
                conflicts.append(_describe(item))
                continue
            if item.type == DocumentType.PILLAR_PAGE.value and live == "":
                taken = await self._content.get_pillar_page_by_slug(build.pillar_slug)
                if taken is not None and taken.id != item.id:
                    conflicts.append(_describe(item))
        return conflicts

    async def _write(self, build: ClusterBuild, item: ReviewItem) -> None:
        if item.type == DocumentType.PILLAR_PAGE.value:
            await self._content.save_pillar_page(
                PillarPageRecord(
                    id=item.id,
                    slug=build.pillar_slug,
                    title=build.pillar_title,
                    body=item.proposed_content,
                    topic=build.pillar_topic,
                    seo_description=build.pillar_seo_description,
                    linked_product_slugs=list(build.linked_product_slugs or []),
                    status=PillarPageStatus.PUBLISHED.value,
                )
            )
        elif item.type == DocumentType.POST.value:
            await self._content.save_post(item.id, item.proposed_content)
        else:
            await self._content.save_product(item.id, item.proposed_content)

    async def approve_changes(
        self, documents: list[DocumentRef], build_id: str | None = None
    ) -> ApprovalResult:
        """Publish the proposed content of `documents`.

        Args:
            documents: Reviewed items to publish, as {id, type}
            build_id: Build the documents belong to; inferred when omitted

        Raises:
            ApprovalBatchError: malformed request, documents from several builds,
                or edits linking to a pillar page left out of the batch
            StaleContentConflict: live content changed since the build; nothing written
            PartialCommitError: a write failed after earlier writes
        """
        self._validate_documents(documents)
        build = await self._resolve_build(documents, build_id)
        if build is None:
            logger.info(
                "Approval requested with nothing pending",
                extra={"build_id": build_id, "document_count": len(documents)},
            )
            return ApprovalResult(published_count=0, build_id=build_id, skipped=documents)

        pending = {(item.id, item.type): item for item in review_items_for(build)}
        selected: list[ReviewItem] = []
        skipped: list[DocumentRef] = []
        for doc in documents:
            item = pending.get((doc.id, doc.type))
            if item is None or item in selected:
                skipped.append(doc)
            else:
                selected.append(item)

        strategy = await self._strategies.get_by_id(build.strategy_id)
        if not selected:
            return ApprovalResult(
                published_count=0,
                strategy_status=strategy.status if strategy else None,
                strategy_id=build.strategy_id,
                build_id=build.id,
                skipped=skipped,
            )

        self._require_pillar(build, selected)

        # Phase 1: validate everything before writing anything
        conflicts = await self._find_conflicts(build, selected)
        if conflicts:
            cluster_logger.commit_conflict(build.id, conflicts)
            raise StaleContentConflict(build.id, conflicts)

        # Phase 2: write
        written: list[dict[str, str]] = []
        for item in selected:
            try:
                await self._write(build, item)
            except ClusterEngineError as e:
                failed = _describe(item)
                cluster_logger.partial_commit(build.id, written, failed, e)
                raise PartialCommitError(build.id, written, failed) from e
            written.append(_describe(item))

        strategy_status = None
        if strategy is not None:
            await self._strategies.set_status(strategy, StrategyStatus.GENERATED)
            strategy_status = strategy.status
        await self._builds.delete(build)

        cluster_logger.commit_success(build.strategy_id, build.id, len(written))
        return ApprovalResult(
            published_count=len(written),
            strategy_status=strategy_status,
            strategy_id=build.strategy_id,
            build_id=build.id,
            skipped=skipped,
        )
