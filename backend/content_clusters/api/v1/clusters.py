"""Clusters API router.

Endpoints for building a cluster from a strategy, reviewing the pending
changes, discarding a build and approving changes in a batch.
"""

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Query, status

from content_clusters.api.deps import (
    get_approval_service,
    get_cluster_builder,
    get_lifecycle_service,
    get_review_service,
)
from content_clusters.core.config import get_settings
from content_clusters.core.logging import get_logger
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
from content_clusters.services.approval import ApprovalService, DocumentRef
from content_clusters.services.cluster_builder import ClusterBuilder
from content_clusters.services.review import ReviewService, review_items_for
from content_clusters.services.strategy_lifecycle import StrategyLifecycleService

logger = get_logger(__name__)

router = APIRouter(prefix="/clusters", tags=["Clusters"])


@router.post(
    "/build",
    response_model=ClusterBuildResponse,
    status_code=status.HTTP_201_CREATED,
)
async def build_cluster(
    data: ClusterBuildRequest,
    builder: ClusterBuilder = Depends(get_cluster_builder),
) -> ClusterBuildResponse:
    """Draft a pillar page and link edits for a strategy.

    Nothing is published; the result is stored for review.

    Raises:
        HTTPException: 504 if generation exceeds the configured timeout.
    """
    timeout = get_settings().generation_timeout_seconds
    try:
        result = await asyncio.wait_for(
            builder.build_cluster(
                data.strategy_id,
                data.selected_posts,
                data.selected_products,
                replace_existing=data.replace_existing,
                link_products=data.link_products,
            ),
            timeout=timeout,
        )
    except TimeoutError:
        logger.warning(
            "Cluster build timed out",
            extra={"strategy_id": data.strategy_id, "timeout_seconds": timeout},
        )
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=f"Cluster build timed out (>{timeout}s). Please try again.",
        )

    build = result.build
    # Skip the pillar entry: proposed edits are the changes to existing documents
    edits = review_items_for(build)[1:]
    return ClusterBuildResponse(
        build_id=build.id,
        strategy_id=build.strategy_id,
        pillar_page_id=build.pillar_page_id,
        pillar_slug=build.pillar_slug,
        pillar_title=build.pillar_title,
        proposed_edits=[ReviewItemResponse.model_validate(e) for e in edits],
        omitted_posts=result.omitted_post_ids,
        omitted_products=result.omitted_product_ids,
    )


@router.get("/review", response_model=ReviewDataResponse)
async def get_review_data(
    strategy_id: str | None = Query(None),
    build_id: str | None = Query(None),
    review: ReviewService = Depends(get_review_service),
) -> ReviewDataResponse:
    """Pending changes for a build, pillar page draft first.

    An empty item list means nothing is pending.
    """
    if not strategy_id and not build_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Either strategy_id or build_id is required",
        )
    build, items = await review.get_review_data(strategy_id=strategy_id, build_id=build_id)
    return ReviewDataResponse(
        build_id=build.id if build else None,
        strategy_id=build.strategy_id if build else strategy_id,
        items=[ReviewItemResponse.model_validate(i) for i in items],
    )


@router.delete("/builds/{build_id}", response_model=DiscardBuildResponse)
async def discard_build(
    build_id: str,
    lifecycle: StrategyLifecycleService = Depends(get_lifecycle_service),
) -> DiscardBuildResponse:
    """Delete a pending build and its proposed edits; the strategy is unchanged."""
    strategy_id = await lifecycle.discard_build(build_id)
    return DiscardBuildResponse(build_id=build_id, strategy_id=strategy_id)


@router.post("/approve-changes", response_model=ApproveChangesResponse)
async def approve_changes(
    data: ApproveChangesRequest,
    approval: ApprovalService = Depends(get_approval_service),
) -> ApproveChangesResponse:
    """Publish reviewed changes all-or-nothing."""
    result = await approval.approve_changes(
        [DocumentRef(id=d.id, type=d.type) for d in data.documents],
        build_id=data.build_id,
    )
    return ApproveChangesResponse(
        published_count=result.published_count,
        strategy_status=result.strategy_status,
        strategy_id=result.strategy_id,
        build_id=result.build_id,
        skipped=[DocumentRefSchema(id=d.id, type=d.type) for d in result.skipped],
    )
