"""Strategy generator: propose pillar-page strategies for a topic.

Flow:
1. Validate topic and description
2. Rank the catalog snapshot against the topic (RelevanceSelector) and
   send the top products/posts as grounding context
3. Parse the response into StrategyCandidate objects
4. Resolve related product/post references against the snapshot
5. Persist every candidate as a `proposed` SeoStrategy

Published content is never touched here.
"""

import time
from typing import Any

from content_clusters.core.config import get_settings
from content_clusters.core.errors import GenerationParseError, StrategyValidationError
from content_clusters.core.logging import cluster_logger, get_logger
from content_clusters.integrations.claude import TextGenerator
from content_clusters.models.seo_strategy import SeoStrategy
from content_clusters.repositories.content import ContentRepository
from content_clusters.repositories.strategy import SeoStrategyRepository
from content_clusters.services.catalog import CatalogSnapshot, load_catalog_snapshot
from content_clusters.services.generation_output import (
    ParseFailure,
    StrategyCandidate,
    parse_strategy_response,
)
from content_clusters.services.relevance import RelevanceSelector

logger = get_logger(__name__)

STRATEGY_PROMPT_TEMPLATE = """Propose pillar-page content strategies (topic clusters) for the topic below.

TOPIC: {topic}
DESCRIPTION: {description}

Each strategy targets one clear search intent, groups several products from the CONTEXT, and lists supporting blog articles worth writing.
Titles must be complete and specific, never placeholders.

Respond ONLY with JSON in this exact shape:
{{
  "strategies": [
    {{
      "topic": "Central topic of the cluster",
      "targetKeywords": ["keyword 1", "keyword 2"],
      "suggestedTitle": "SEO-optimized pillar page title",
      "rationale": "Why this strategy will work",
      "relatedProducts": ["product id from CONTEXT"],
      "relatedPosts": ["post id from CONTEXT"],
      "suggestedPosts": ["Supporting article title"]
    }}
  ]
}}"""


def build_grounding_context(
    snapshot: CatalogSnapshot,
    topic: str,
    max_products: int,
    max_posts: int,
) -> str:
    """Render the ranked catalog as the CONTEXT block of the prompt."""
    selector = RelevanceSelector(topic)
    products = selector.rank_products(snapshot.products, limit=max_products)
    posts = selector.rank_posts(snapshot.posts, limit=max_posts)

    lines = ["PRODUCTS (id | name | category):"]
    lines.extend(f"- {p.id} | {p.name} | {p.category or 'General'}" for p in products)
    lines.append("")
    lines.append("BLOG POSTS (id | title):")
    lines.extend(f"- {p.id} | {p.title}" for p in posts)
    if snapshot.pillar_pages:
        lines.append("")
        lines.append("EXISTING PILLAR PAGES (avoid duplicating these):")
        lines.extend(f"- {p.title}" for p in snapshot.pillar_pages)
    return "\n".join(lines)


class StrategyGenerator:
    """Generates and persists SEO strategy proposals."""

    def __init__(
        self,
        generator: TextGenerator,
        content: ContentRepository,
        strategies: SeoStrategyRepository,
    ) -> None:
        self._generator = generator
        self._content = content
        self._strategies = strategies
        self._settings = get_settings()

    def _validate_inputs(self, topic: str, description: str) -> tuple[str, str]:
        topic = (topic or "").strip()
        description = (description or "").strip()
        if not topic:
            raise StrategyValidationError("topic", topic, "Topic cannot be empty")
        if not description:
            raise StrategyValidationError(
                "description", description, "Description cannot be empty"
            )
        if len(topic) > self._settings.topic_soft_length_limit:
            logger.warning(
                "Strategy topic exceeds recommended length",
                extra={
                    "topic_length": len(topic),
                    "soft_limit": self._settings.topic_soft_length_limit,
                },
            )
        return topic, description

    def _resolve_candidate(
        self, candidate: StrategyCandidate, snapshot: CatalogSnapshot
    ) -> dict[str, Any]:
        product_ids: list[str] = []
        for ref in candidate.related_products:
            product = snapshot.resolve_product(ref)
            if product is None:
                logger.warning(
                    "Dropping unknown product reference from strategy",
                    extra={"topic": candidate.topic, "reference": ref[:100]},
                )
            elif product.id not in product_ids:
                product_ids.append(product.id)

        post_ids: list[str] = []
        for ref in candidate.related_posts:
            post = snapshot.resolve_post(ref)
            if post is None:
                logger.warning(
                    "Dropping unknown post reference from strategy",
                    extra={"topic": candidate.topic, "reference": ref[:100]},
                )
            elif post.id not in post_ids:
                post_ids.append(post.id)

        return {
            "topic": candidate.topic.strip(),
            "target_keywords": [k.strip() for k in candidate.target_keywords if k.strip()],
            "suggested_title": candidate.suggested_title.strip() or candidate.topic.strip(),
            "rationale": candidate.rationale,
            "related_products": product_ids,
            "related_posts": post_ids,
            "suggested_posts": [t.strip() for t in candidate.suggested_posts if t.strip()],
        }

    async def generate_strategies(
        self,
        topic: str,
        description: str,
        snapshot: CatalogSnapshot | None = None,
    ) -> list[SeoStrategy]:
        """Generate strategy proposals and persist them as `proposed`.

        Args:
            topic: Topic to build strategies around
            description: Free-text description of the intent/audience
            snapshot: Corpus to ground on; loaded from the repository if omitted

        Returns:
            Persisted strategies, possibly empty

        Raises:
            StrategyValidationError: if topic or description is empty
            GenerationParseError: if the generated text has the wrong shape
            TextGenerationError: if text generation fails
        """
        topic, description = self._validate_inputs(topic, description)
        start_time = time.monotonic()

        if snapshot is None:
            snapshot = await load_catalog_snapshot(self._content)

        grounding = build_grounding_context(
            snapshot,
            topic,
            max_products=self._settings.grounding_max_products,
            max_posts=self._settings.grounding_max_posts,
        )
        prompt = STRATEGY_PROMPT_TEMPLATE.format(topic=topic, description=description)
        response_text = await self._generator.generate_text(prompt, grounding)

        parsed = parse_strategy_response(response_text)
        if isinstance(parsed, ParseFailure):
            logger.warning(
                "Strategy generation output could not be parsed",
                extra={"reason": parsed.reason, "response_preview": parsed.raw_excerpt},
            )
            raise GenerationParseError(parsed.reason, parsed.raw_excerpt)

        resolved = [self._resolve_candidate(c, snapshot) for c in parsed.candidates]
        strategies = await self._strategies.create_many(resolved) if resolved else []

        duration_ms = (time.monotonic() - start_time) * 1000
        cluster_logger.strategies_generated(topic, len(strategies), duration_ms)
        return strategies
