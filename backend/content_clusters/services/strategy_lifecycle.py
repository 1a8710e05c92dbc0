"""Strategy lifecycle: list, approve, reject, discard builds, suggest members.

Allowed operator transitions:
- proposed -> approved
- proposed -> rejected
- approved -> rejected

`generated` is terminal and only reached through the approval batch
committer. A rejected strategy is not re-opened; generating again creates
a new proposal. Rejecting deletes any pending build.
"""

from dataclasses import dataclass, field

from content_clusters.core.errors import (
    BuildNotFoundError,
    InvalidStrategyState,
    StrategyNotFoundError,
)
from content_clusters.core.logging import cluster_logger, get_logger
from content_clusters.models.seo_strategy import SeoStrategy, StrategyStatus
from content_clusters.repositories.cluster_build import ClusterBuildRepository
from content_clusters.repositories.content import (
    ContentRepository,
    PostSummary,
    ProductSummary,
)
from content_clusters.repositories.strategy import SeoStrategyRepository
from content_clusters.services.relevance import RelevanceSelector
from content_clusters.utils.text import tokenize

logger = get_logger(__name__)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    StrategyStatus.PROPOSED.value: frozenset(
        {StrategyStatus.APPROVED.value, StrategyStatus.REJECTED.value}
    ),
    StrategyStatus.APPROVED.value: frozenset({StrategyStatus.REJECTED.value}),
    StrategyStatus.REJECTED.value: frozenset(),
    StrategyStatus.GENERATED.value: frozenset(),
}

DEFAULT_SUGGESTION_LIMIT = 8


@dataclass
class ClusterSuggestions:
    strategy_id: str
    products: list[ProductSummary] = field(default_factory=list)
    posts: list[PostSummary] = field(default_factory=list)


class StrategyLifecycleService:
    """Operator actions on strategies and their pending builds."""

    def __init__(
        self,
        strategies: SeoStrategyRepository,
        builds: ClusterBuildRepository,
        content: ContentRepository,
    ) -> None:
        self._strategies = strategies
        self._builds = builds
        self._content = content

    async def _get(self, strategy_id: str) -> SeoStrategy:
        strategy = await self._strategies.get_by_id(strategy_id)
        if strategy is None:
            raise StrategyNotFoundError(strategy_id)
        return strategy

    async def _transition(
        self, strategy: SeoStrategy, target: StrategyStatus, operation: str
    ) -> None:
        if target.value not in ALLOWED_TRANSITIONS.get(strategy.status, frozenset()):
            raise InvalidStrategyState(strategy.id, strategy.status, operation)
        await self._strategies.set_status(strategy, target)

    async def list_strategies(self, status: str | None = None) -> list[SeoStrategy]:
        return await self._strategies.list_all(status)

    async def approve_strategy(self, strategy_id: str) -> SeoStrategy:
        strategy = await self._get(strategy_id)
        if strategy.status == StrategyStatus.APPROVED.value:
            return strategy
        await self._transition(strategy, StrategyStatus.APPROVED, "approve")
        return strategy

    async def reject_strategy(self, strategy_id: str) -> SeoStrategy:
        """Reject a strategy and delete its pending build, if any."""
        strategy = await self._get(strategy_id)
        if strategy.status == StrategyStatus.REJECTED.value:
            return strategy
        await self._transition(strategy, StrategyStatus.REJECTED, "reject")

        build = await self._builds.get_by_strategy(strategy_id)
        if build is not None:
            await self._builds.delete(build)
            cluster_logger.build_discarded(strategy_id, build.id, "strategy rejected")
        return strategy

    async def discard_build(self, build_id: str) -> str:
        """Delete a pending build; the strategy keeps its status.

        Returns:
            The id of the strategy the build belonged to
        """
        build = await self._builds.get_by_id(build_id)
        if build is None:
            raise BuildNotFoundError(build_id)
        strategy_id = build.strategy_id
        await self._builds.delete(build)
        cluster_logger.build_discarded(strategy_id, build_id, "discarded by operator")
        return strategy_id

    async def suggest_cluster_members(
        self, strategy_id: str, limit: int = DEFAULT_SUGGESTION_LIMIT
    ) -> ClusterSuggestions:
        """Suggest products and posts for a strategy's cluster.

        The strategy's own related products/posts come first, followed by
        keyword matches on its topic and target keywords ranked by relevance.
        """
        strategy = await self._get(strategy_id)
        keywords = [
            strategy.topic,
            *(strategy.target_keywords or []),
            *tokenize(strategy.topic),
        ]
        matches = await self._content.find_by_keywords(keywords, limit=limit * 3)

        selector = RelevanceSelector(strategy.topic, strategy.target_keywords or [])
        related_products = list(strategy.related_products or [])
        related_posts = list(strategy.related_posts or [])

        products = {p.id: p for p in await self._content.get_product_summaries()}
        posts = {p.id: p for p in await self._content.get_post_summaries()}

        ranked_products = [products[i] for i in related_products if i in products]
        for product in selector.rank_products(matches.products):
            if product.id not in related_products:
                ranked_products.append(product)

        ranked_posts = [posts[i] for i in related_posts if i in posts]
        for post in selector.rank_posts(matches.posts):
            if post.id not in related_posts:
                ranked_posts.append(post)

        logger.debug(
            "Cluster members suggested",
            extra={
                "strategy_id": strategy_id,
                "product_count": min(len(ranked_products), limit),
                "post_count": min(len(ranked_posts), limit),
            },
        )
        return ClusterSuggestions(
            strategy_id=strategy_id,
            products=ranked_products[:limit],
            posts=ranked_posts[:limit],
        )
