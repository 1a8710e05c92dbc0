"""Link health checker: find published pillar pages referencing missing products.

A pillar page references a product through its linked_product_slugs and
through {{PRODUCT_CARD:slug}} shortcodes in its body. Each distinct
(pillar slug, product slug) pair that no longer resolves is one issue.
Read-only.
"""

import re
from dataclasses import dataclass, field

from content_clusters.core.logging import get_logger
from content_clusters.models.content import PillarPageStatus
from content_clusters.repositories.content import ContentRepository, PillarPageRecord

logger = get_logger(__name__)

PRODUCT_CARD_PATTERN = re.compile(r"\{\{PRODUCT_CARD:([a-zA-Z0-9-]+)\}\}")

STATUS_HEALTHY = "healthy"
STATUS_WARNING = "warning"


@dataclass(frozen=True)
class LinkHealthIssue:
    pillar_title: str
    pillar_slug: str
    broken_product_slug: str


@dataclass
class LinkHealthReport:
    status: str
    issues: list[LinkHealthIssue] = field(default_factory=list)
    checked_pages: int = 0


def referenced_product_slugs(page: PillarPageRecord) -> list[str]:
    """Product slugs a page references, in first-seen order, without duplicates."""
    slugs: list[str] = []
    for slug in [*page.linked_product_slugs, *PRODUCT_CARD_PATTERN.findall(page.body)]:
        if slug and slug not in slugs:
            slugs.append(slug)
    return slugs


class LinkHealthChecker:
    def __init__(self, content: ContentRepository) -> None:
        self._content = content

    async def health_check(self) -> LinkHealthReport:
        products = await self._content.get_product_summaries()
        valid_slugs = {p.slug for p in products}
        pages = await self._content.get_pillar_pages(
            status=PillarPageStatus.PUBLISHED.value
        )

        issues = [
            LinkHealthIssue(
                pillar_title=page.title,
                pillar_slug=page.slug,
                broken_product_slug=slug,
            )
            for page in pages
            for slug in referenced_product_slugs(page)
            if slug not in valid_slugs
        ]

        if issues:
            logger.warning(
                "Broken product references found on pillar pages",
                extra={
                    "issue_count": len(issues),
                    "pillar_slugs": sorted({i.pillar_slug for i in issues}),
                },
            )
        return LinkHealthReport(
            status=STATUS_WARNING if issues else STATUS_HEALTHY,
            issues=issues,
            checked_pages=len(pages),
        )
