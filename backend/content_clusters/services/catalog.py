"""Catalog snapshot: the corpus strategy generation and overlap checks run against.

A snapshot is loaded fresh per operation and passed explicitly, so callers
(and tests) can supply a fixed corpus instead of reading the repository.
"""

from dataclasses import dataclass, field

from content_clusters.core.logging import get_logger
from content_clusters.models.seo_strategy import StrategyStatus
from content_clusters.repositories.content import (
    ContentRepository,
    PillarPageRecord,
    PostSummary,
    ProductSummary,
)
from content_clusters.repositories.strategy import SeoStrategyRepository
from content_clusters.utils.text import normalize

logger = get_logger(__name__)

# Strategies already committed to a topic; a new topic overlapping them competes
COMMITTED_STRATEGY_STATUSES = [
    StrategyStatus.APPROVED.value,
    StrategyStatus.GENERATED.value,
]


@dataclass
class StrategyDigest:
    id: str
    topic: str
    suggested_title: str
    target_keywords: list[str]
    status: str


@dataclass
class CatalogSnapshot:
    """Point-in-time view of products, posts, pillar pages and committed strategies."""

    products: list[ProductSummary] = field(default_factory=list)
    posts: list[PostSummary] = field(default_factory=list)
    pillar_pages: list[PillarPageRecord] = field(default_factory=list)
    strategies: list[StrategyDigest] = field(default_factory=list)

    def resolve_product(self, ref: str) -> ProductSummary | None:
        """Find a product by id, or by name ignoring case and accents."""
        key = normalize(ref).strip()
        for product in self.products:
            if product.id == ref or normalize(product.name).strip() == key:
                return product
        return None

    def resolve_post(self, ref: str) -> PostSummary | None:
        """Find a post by id, or by title ignoring case and accents."""
        key = normalize(ref).strip()
        for post in self.posts:
            if post.id == ref or normalize(post.title).strip() == key:
                return post
        return None


async def load_catalog_snapshot(
    content: ContentRepository,
    strategies: SeoStrategyRepository | None = None,
) -> CatalogSnapshot:
    """Read the current corpus from the repositories.

    Raises:
        RepositoryUnavailable: if the content store cannot be read.
    """
    products = await content.get_product_summaries()
    posts = await content.get_post_summaries()
    pillar_pages = await content.get_pillar_pages()

    digests: list[StrategyDigest] = []
    if strategies is not None:
        for strategy in await strategies.list_by_statuses(COMMITTED_STRATEGY_STATUSES):
            digests.append(
                StrategyDigest(
                    id=strategy.id,
                    topic=strategy.topic,
                    suggested_title=strategy.suggested_title,
                    target_keywords=list(strategy.target_keywords or []),
                    status=strategy.status,
                )
            )

    logger.debug(
        "Catalog snapshot loaded",
        extra={
            "product_count": len(products),
            "post_count": len(posts),
            "pillar_page_count": len(pillar_pages),
            "strategy_count": len(digests),
        },
    )
    return CatalogSnapshot(
        products=products,
        posts=posts,
        pillar_pages=pillar_pages,
        strategies=digests,
    )
