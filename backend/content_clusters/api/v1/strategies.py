"""Strategies API router.

Endpoints for generating, listing, approving and rejecting SEO strategies,
and for suggesting cluster members for a strategy.
"""

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Query, status

from content_clusters.api.deps import get_lifecycle_service, get_strategy_generator
from content_clusters.core.config import get_settings
from content_clusters.core.logging import get_logger
from content_clusters.models.seo_strategy import StrategyStatus
from content_clusters.schemas.strategy import (
    ClusterSuggestionsResponse,
    PostSuggestion,
    ProductSuggestion,
    StrategyGenerateRequest,
    StrategyGenerateResponse,
    StrategyListResponse,
    StrategyResponse,
)
from content_clusters.services.strategy_generator import StrategyGenerator
from content_clusters.services.strategy_lifecycle import StrategyLifecycleService

logger = get_logger(__name__)

router = APIRouter(prefix="/strategies", tags=["Strategies"])


@router.post(
    "/generate",
    response_model=StrategyGenerateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_strategies(
    data: StrategyGenerateRequest,
    generator: StrategyGenerator = Depends(get_strategy_generator),
) -> StrategyGenerateResponse:
    """Generate strategy proposals for a topic.

    Raises:
        HTTPException: 504 if generation exceeds the configured timeout.
    """
    timeout = get_settings().generation_timeout_seconds
    try:
        strategies = await asyncio.wait_for(
            generator.generate_strategies(data.topic, data.description),
            timeout=timeout,
        )
    except TimeoutError:
        logger.warning(
            "Strategy generation timed out",
            extra={"topic": data.topic[:200], "timeout_seconds": timeout},
        )
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=f"Strategy generation timed out (>{timeout}s). Please try again.",
        )

    return StrategyGenerateResponse(
        count=len(strategies),
        strategies=[StrategyResponse.model_validate(s) for s in strategies],
    )


@router.get("", response_model=StrategyListResponse)
async def list_strategies(
    status_filter: StrategyStatus | None = Query(None, alias="status"),
    lifecycle: StrategyLifecycleService = Depends(get_lifecycle_service),
) -> StrategyListResponse:
    """List strategies, newest first, optionally filtered by status."""
    strategies = await lifecycle.list_strategies(
        status_filter.value if status_filter else None
    )
    return StrategyListResponse(
        strategies=[StrategyResponse.model_validate(s) for s in strategies],
        total=len(strategies),
    )


@router.post("/{strategy_id}/approve", response_model=StrategyResponse)
async def approve_strategy(
    strategy_id: str,
    lifecycle: StrategyLifecycleService = Depends(get_lifecycle_service),
) -> StrategyResponse:
    strategy = await lifecycle.approve_strategy(strategy_id)
    return StrategyResponse.model_validate(strategy)


@router.post("/{strategy_id}/reject", response_model=StrategyResponse)
async def reject_strategy(
    strategy_id: str,
    lifecycle: StrategyLifecycleService = Depends(get_lifecycle_service),
) -> StrategyResponse:
    """Reject a strategy; any pending cluster build is deleted."""
    strategy = await lifecycle.reject_strategy(strategy_id)
    return StrategyResponse.model_validate(strategy)


@router.get("/{strategy_id}/suggestions", response_model=ClusterSuggestionsResponse)
async def suggest_cluster_members(
    strategy_id: str,
    limit: int = Query(8, ge=1, le=50),
    lifecycle: StrategyLifecycleService = Depends(get_lifecycle_service),
) -> ClusterSuggestionsResponse:
    """Suggest products and posts to select when building the cluster."""
    suggestions = await lifecycle.suggest_cluster_members(strategy_id, limit=limit)
    return ClusterSuggestionsResponse(
        strategy_id=suggestions.strategy_id,
        products=[ProductSuggestion.model_validate(p) for p in suggestions.products],
        posts=[PostSuggestion.model_validate(p) for p in suggestions.posts],
    )
