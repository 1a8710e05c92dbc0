"""SEO API router: cannibalization check and pillar page link health."""

from fastapi import APIRouter, Depends

from content_clusters.api.deps import get_cannibalization_checker, get_link_health_checker
from content_clusters.schemas.seo import (
    CannibalizationCheckRequest,
    CannibalizationCheckResponse,
    LinkHealthIssueResponse,
    LinkHealthResponse,
    OverlapMatchResponse,
)
from content_clusters.services.cannibalization import CannibalizationChecker
from content_clusters.services.link_health import LinkHealthChecker

router = APIRouter(prefix="/seo", tags=["SEO"])


@router.post("/check-cannibalization", response_model=CannibalizationCheckResponse)
async def check_cannibalization(
    data: CannibalizationCheckRequest,
    checker: CannibalizationChecker = Depends(get_cannibalization_checker),
) -> CannibalizationCheckResponse:
    """Check a topic against published content.

    Advisory: when the corpus cannot be read the response has
    `verified: false` and an `error` message instead of failing.
    """
    result = await checker.check(data.topic)
    return CannibalizationCheckResponse(
        has_conflict=result.has_conflict,
        conflicts=result.conflicts,
        matches=[OverlapMatchResponse.model_validate(m) for m in result.matches],
        verified=result.verified,
        error=result.error,
    )


@router.get("/health-check", response_model=LinkHealthResponse)
async def link_health_check(
    checker: LinkHealthChecker = Depends(get_link_health_checker),
) -> LinkHealthResponse:
    """Report product references on published pillar pages that no longer resolve."""
    report = await checker.health_check()
    return LinkHealthResponse(
        status=report.status,
        issues=[LinkHealthIssueResponse.model_validate(i) for i in report.issues],
        checked_pages=report.checked_pages,
    )
