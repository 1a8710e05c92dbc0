"""Cannibalization checker: advisory overlap check for a candidate topic.

Score per document = |topic tokens & document tokens| / |topic tokens|.
Documents scoring strictly above the configured threshold are reported.

Compared documents:
- published pillar pages: title, seo_description, topic
- published posts: title, seo_description, tags
- approved/generated strategies: topic, suggested_title, target_keywords

The check never blocks. When the content store cannot be read the result
comes back with verified=False and the error message, and the caller
decides whether to proceed.
"""

from dataclasses import dataclass, field

from content_clusters.core.config import get_settings
from content_clusters.core.errors import RepositoryUnavailable, StrategyValidationError
from content_clusters.core.logging import cluster_logger, get_logger
from content_clusters.models.content import PillarPageStatus, PostStatus
from content_clusters.repositories.content import ContentRepository
from content_clusters.repositories.strategy import SeoStrategyRepository
from content_clusters.services.catalog import CatalogSnapshot, load_catalog_snapshot
from content_clusters.utils.text import token_set

logger = get_logger(__name__)


@dataclass
class OverlapMatch:
    document_id: str
    document_type: str
    title: str
    score: float
    reason: str


@dataclass
class CannibalizationResult:
    has_conflict: bool
    conflicts: list[str] = field(default_factory=list)
    matches: list[OverlapMatch] = field(default_factory=list)
    verified: bool = True
    error: str | None = None


def overlap_ratio(topic_tokens: set[str], document_tokens: set[str]) -> float:
    if not topic_tokens:
        return 0.0
    return len(topic_tokens & document_tokens) / len(topic_tokens)


def find_overlaps(
    topic: str, snapshot: CatalogSnapshot, threshold: float
) -> list[OverlapMatch]:
    """Score every published document and committed strategy against `topic`."""
    topic_tokens = token_set(topic)
    matches: list[OverlapMatch] = []

    for page in snapshot.pillar_pages:
        if page.status != PillarPageStatus.PUBLISHED.value:
            continue
        score = overlap_ratio(
            topic_tokens, token_set(page.title, page.seo_description, page.topic)
        )
        if score > threshold:
            matches.append(
                OverlapMatch(
                    document_id=page.id,
                    document_type="PillarPage",
                    title=page.title,
                    score=round(score, 3),
                    reason=f'Existing pillar page: "{page.title}" ({page.slug})',
                )
            )

    for post in snapshot.posts:
        if post.status != PostStatus.PUBLISHED.value:
            continue
        score = overlap_ratio(
            topic_tokens, token_set(post.title, post.seo_description, *post.tags)
        )
        if score > threshold:
            matches.append(
                OverlapMatch(
                    document_id=post.id,
                    document_type="Post",
                    title=post.title,
                    score=round(score, 3),
                    reason=f'Existing blog post: "{post.title}" ({post.slug})',
                )
            )

    for strategy in snapshot.strategies:
        score = overlap_ratio(
            topic_tokens,
            token_set(strategy.topic, strategy.suggested_title, *strategy.target_keywords),
        )
        if score > threshold:
            matches.append(
                OverlapMatch(
                    document_id=strategy.id,
                    document_type="SeoStrategy",
                    title=strategy.topic,
                    score=round(score, 3),
                    reason=f'Strategy already {strategy.status}: "{strategy.topic}"',
                )
            )

    return sorted(matches, key=lambda m: -m.score)


class CannibalizationChecker:
    """Checks a topic for overlap with existing published content."""

    def __init__(
        self,
        content: ContentRepository,
        strategies: SeoStrategyRepository | None = None,
    ) -> None:
        self._content = content
        self._strategies = strategies
        self._threshold = get_settings().cannibalization_threshold

    async def check(
        self, topic: str, snapshot: CatalogSnapshot | None = None
    ) -> CannibalizationResult:
        """Check `topic` for cannibalization.

        Raises:
            StrategyValidationError: if topic is empty
        """
        topic = (topic or "").strip()
        if not topic:
            raise StrategyValidationError("topic", topic, "Topic cannot be empty")

        if snapshot is None:
            try:
                snapshot = await load_catalog_snapshot(self._content, self._strategies)
            except RepositoryUnavailable as e:
                cluster_logger.check_degraded("Cannibalization check", e)
                return CannibalizationResult(
                    has_conflict=False,
                    verified=False,
                    error=f"Could not verify cannibalization: {e.message}",
                )

        matches = find_overlaps(topic, snapshot, self._threshold)
        if matches:
            logger.info(
                "Cannibalization conflicts found",
                extra={
                    "topic": topic[:200],
                    "conflict_count": len(matches),
                    "document_ids": [m.document_id for m in matches],
                },
            )
        return CannibalizationResult(
            has_conflict=bool(matches),
            conflicts=[m.reason for m in matches],
            matches=matches,
        )
