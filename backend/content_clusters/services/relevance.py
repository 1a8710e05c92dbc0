"""Relevance selector: rank products and posts by textual relevance to a topic.

Scoring is token overlap between the query and each document. Matches in
the name/title count double against matches in descriptive fields. Ties
keep the input order, so rankings are deterministic for a given catalog.
"""

from collections.abc import Sequence

from content_clusters.repositories.content import PostSummary, ProductSummary
from content_clusters.utils.text import token_set

TITLE_WEIGHT = 2.0
BODY_WEIGHT = 1.0


class RelevanceSelector:
    """Ranks catalog items against a topic (plus optional extra terms)."""

    def __init__(self, topic: str, extra_terms: Sequence[str] = ()) -> None:
        self.query_tokens = token_set(topic, *extra_terms)

    def _score(self, title: str, *fields: str | None) -> float:
        if not self.query_tokens:
            return 0.0
        title_hits = len(self.query_tokens & token_set(title))
        body_hits = len(self.query_tokens & token_set(*fields))
        return (TITLE_WEIGHT * title_hits + BODY_WEIGHT * body_hits) / len(
            self.query_tokens
        )

    def score_product(self, product: ProductSummary) -> float:
        return self._score(product.name, product.description, product.category)

    def score_post(self, post: PostSummary) -> float:
        return self._score(
            post.title, post.excerpt, post.seo_description, " ".join(post.tags)
        )

    def rank_products(
        self,
        products: Sequence[ProductSummary],
        limit: int | None = None,
        min_score: float = 0.0,
    ) -> list[ProductSummary]:
        scored = [(self.score_product(p), idx, p) for idx, p in enumerate(products)]
        ranked = [
            p
            for score, _, p in sorted(scored, key=lambda s: (-s[0], s[1]))
            if score >= min_score
        ]
        return ranked[:limit] if limit is not None else ranked

    def rank_posts(
        self,
        posts: Sequence[PostSummary],
        limit: int | None = None,
        min_score: float = 0.0,
    ) -> list[PostSummary]:
        scored = [(self.score_post(p), idx, p) for idx, p in enumerate(posts)]
        ranked = [
            p
            for score, _, p in sorted(scored, key=lambda s: (-s[0], s[1]))
            if score >= min_score
        ]
        return ranked[:limit] if limit is not None else ranked
