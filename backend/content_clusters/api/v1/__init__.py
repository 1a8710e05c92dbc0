"""API v1 router and endpoint organization."""

from fastapi import APIRouter

from content_clusters.api.v1 import clusters, seo, strategies

router = APIRouter(tags=["v1"])

router.include_router(strategies.router)
router.include_router(seo.router)
router.include_router(clusters.router)

__all__ = ["router"]
