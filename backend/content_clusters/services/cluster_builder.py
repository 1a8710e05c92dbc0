"""Cluster builder: draft a pillar page and link edits for an approved strategy.

Nothing built here is live. The pillar draft and every proposed edit are
stored as a ClusterBuild awaiting review; only the approval batch
committer writes live content.

Generation runs before any database write, so a failing or unparseable
generation leaves no partial build behind.
"""

import re
import time
from dataclasses import dataclass, field

from content_clusters.core.config import get_settings
from content_clusters.core.errors import (
    BuildAlreadyInProgress,
    ContentNotFoundError,
    GenerationParseError,
    InvalidStrategyState,
    StrategyNotFoundError,
)
from content_clusters.core.logging import cluster_logger, get_logger
from content_clusters.integrations.claude import TextGenerator
from content_clusters.models.cluster_build import ClusterBuild, DocumentType, ProposedEdit
from content_clusters.models.seo_strategy import SeoStrategy, StrategyStatus
from content_clusters.repositories.cluster_build import ClusterBuildRepository
from content_clusters.repositories.content import ContentDocument, ContentRepository
from content_clusters.repositories.strategy import SeoStrategyRepository
from content_clusters.services.generation_output import ParseFailure, parse_pillar_draft
from content_clusters.services.link_injection import LinkInjector, LinkTarget
from content_clusters.utils.text import slugify

logger = get_logger(__name__)

PRODUCT_CARD_TEMPLATE = "{{{{PRODUCT_CARD:{slug}}}}}"
RECOMMENDED_PRODUCTS_HEADING = "<h2>Productos recomendados</h2>"
MAX_SLUG_SUFFIX = 1000

PILLAR_PROMPT_TEMPLATE = """Write the complete content of a new pillar page.

TOPIC: {topic}
SUGGESTED TITLE: {title}
TARGET KEYWORDS: {keywords}

The page must be the site's reference on this topic: a strong introduction, in-depth informative sections, frequently asked questions, a "recommended products" section presenting the products in the CONTEXT, and a "learn more" section mentioning the blog posts in the CONTEXT.
Insert each product as the shortcode {{{{PRODUCT_CARD:product-slug}}}} using the exact slugs from the CONTEXT.
The body is clean HTML using only <h2>, <h3>, <p>, <ul> and <li>; no <h1>, <html>, <head> or <body>.

Respond ONLY with JSON in this exact shape:
{{"title": "Pillar page title", "seoDescription": "Meta description under 160 characters", "body": "<p>HTML body</p>"}}"""


@dataclass
class ClusterBuildResult:
    build: ClusterBuild
    omitted_post_ids: list[str] = field(default_factory=list)
    omitted_product_ids: list[str] = field(default_factory=list)

    @property
    def proposed_edits(self) -> list[ProposedEdit]:
        return list(self.build.edits)


def _dedupe(ids: list[str]) -> list[str]:
    seen: set[str] = set()
    ordered = []
    for item in ids:
        if item not in seen:
            seen.add(item)
            ordered.append(item)
    return ordered


def ensure_product_cards(body: str, product_slugs: list[str], product_url_prefix: str) -> str:
    """Append a PRODUCT_CARD shortcode for every product the body does not reference.

    A product counts as referenced when its shortcode or its product URL
    already appears in the body.
    """
    missing = []
    for slug in product_slugs:
        shortcode = PRODUCT_CARD_TEMPLATE.format(slug=slug)
        url_pattern = re.escape(product_url_prefix + slug) + r"(?![a-zA-Z0-9-])"
        if shortcode not in body and not re.search(url_pattern, body):
            missing.append(shortcode)
    if not missing:
        return body
    cards = "\n".join(missing)
    return f"{body.rstrip()}\n{RECOMMENDED_PRODUCTS_HEADING}\n{cards}\n"


class ClusterBuilder:
    """Builds a reviewable ClusterBuild from an approved strategy."""

    def __init__(
        self,
        generator: TextGenerator,
        content: ContentRepository,
        strategies: SeoStrategyRepository,
        builds: ClusterBuildRepository,
        injector: LinkInjector | None = None,
    ) -> None:
        self._generator = generator
        self._content = content
        self._strategies = strategies
        self._builds = builds
        self._injector = injector or LinkInjector()
        self._settings = get_settings()

    def _check_state(self, strategy: SeoStrategy) -> None:
        allowed = {StrategyStatus.APPROVED.value}
        if self._settings.cluster_allow_direct_build:
            allowed.add(StrategyStatus.PROPOSED.value)
        if strategy.status not in allowed:
            raise InvalidStrategyState(strategy.id, strategy.status, "build a cluster for")

    async def _fetch_documents(
        self, doc_type: DocumentType, ids: list[str]
    ) -> list[ContentDocument]:
        documents = []
        for doc_id in ids:
            document = await self._content.get_by_id(doc_type, doc_id)
            if document is None:
                raise ContentNotFoundError(doc_type.value, doc_id)
            documents.append(document)
        return documents

    async def _slug_taken(self, slug: str, strategy_id: str) -> bool:
        if await self._content.get_pillar_page_by_slug(slug) is not None:
            return True
        # Pending builds reserve their slug; a build being replaced frees its own
        reserved = await self._builds.get_by_pillar_slug(slug)
        return reserved is not None and reserved.strategy_id != strategy_id

    async def _unique_slug(self, title: str, fallback: str, strategy_id: str) -> str:
        base = slugify(title) or slugify(fallback) or "pillar"
        candidate = base
        for suffix in range(2, MAX_SLUG_SUFFIX):
            if not await self._slug_taken(candidate, strategy_id):
                return candidate
            candidate = f"{base}-{suffix}"
        return f"{base}-{int(time.time())}"

    async def _draft_pillar(
        self,
        strategy: SeoStrategy,
        posts: list[ContentDocument],
        products: list[ContentDocument],
    ) -> tuple[str, str, str]:
        """Generate (title, seo_description, body) for the pillar page."""
        context_lines = ["PRODUCTS (name | slug):"]
        context_lines.extend(f"- {p.title} | {p.slug}" for p in products)
        context_lines.append("")
        context_lines.append("BLOG POSTS (title | url):")
        context_lines.extend(
            f"- {p.title} | {self._settings.post_url_prefix}{p.slug}" for p in posts
        )
        prompt = PILLAR_PROMPT_TEMPLATE.format(
            topic=strategy.topic,
            title=strategy.suggested_title or strategy.topic,
            keywords=", ".join(strategy.target_keywords or []),
        )

        response_text = await self._generator.generate_text(prompt, "\n".join(context_lines))
        parsed = parse_pillar_draft(response_text)
        if isinstance(parsed, ParseFailure):
            logger.warning(
                "Pillar draft output could not be parsed",
                extra={
                    "strategy_id": strategy.id,
                    "reason": parsed.reason,
                    "response_preview": parsed.raw_excerpt,
                },
            )
            raise GenerationParseError(parsed.reason, parsed.raw_excerpt)

        draft = parsed.draft
        title = draft.title.strip() or strategy.suggested_title or strategy.topic
        return title, draft.seo_description.strip(), draft.body.strip()

    def _link_edits(
        self,
        documents: list[ContentDocument],
        doc_type: DocumentType,
        product_targets: list[LinkTarget],
        pillar_target: LinkTarget,
        first_position: int = 0,
    ) -> tuple[list[ProposedEdit], list[str]]:
        """One link edit per document that has an anchor point, in selection order."""
        edits: list[ProposedEdit] = []
        omitted: list[str] = []
        for offset, document in enumerate(documents):
            insertion = self._injector.link_post(
                document.content, product_targets, pillar_target
            )
            if insertion is None:
                omitted.append(document.id)
                logger.info(
                    "Document omitted from cluster: no anchor point",
                    extra={
                        "document_id": document.id,
                        "document_type": doc_type.value,
                        "document_title": document.title,
                    },
                )
                continue
            edits.append(
                ProposedEdit(
                    position=first_position + offset,
                    target_id=document.id,
                    target_type=doc_type.value,
                    title=document.title,
                    original_content=document.content,
                    proposed_content=insertion.html,
                )
            )
            logger.debug(
                "Cluster link planned",
                extra={
                    "document_id": document.id,
                    "kind": insertion.kind,
                    "target_url": insertion.target_url,
                    "paragraph_index": insertion.paragraph_index,
                },
            )
        return edits, omitted

    async def build_cluster(
        self,
        strategy_id: str,
        selected_post_ids: list[str],
        selected_product_ids: list[str],
        replace_existing: bool = False,
        link_products: bool = False,
    ) -> ClusterBuildResult:
        """Build a cluster for a strategy.

        Args:
            strategy_id: Strategy to build from
            selected_post_ids: Posts to link into the cluster, in order
            selected_product_ids: Products the pillar page presents, in order
            replace_existing: Replace a pending build instead of failing
            link_products: Also propose a backlink to the pillar page in each
                selected product's long description

        Raises:
            StrategyNotFoundError: unknown strategy
            InvalidStrategyState: strategy not approved (or proposed, when
                direct builds are enabled)
            BuildAlreadyInProgress: a build is pending and replace_existing is False
            ContentNotFoundError: a selected post or product does not exist
            GenerationParseError: the pillar draft could not be parsed
            TextGenerationError: text generation failed
        """
        start_time = time.monotonic()

        strategy = await self._strategies.get_by_id(strategy_id)
        if strategy is None:
            raise StrategyNotFoundError(strategy_id)
        self._check_state(strategy)

        existing = await self._builds.get_by_strategy(strategy_id)
        if existing is not None and not replace_existing:
            raise BuildAlreadyInProgress(strategy_id, existing.id)

        post_ids = _dedupe(selected_post_ids)
        product_ids = _dedupe(selected_product_ids)
        posts = await self._fetch_documents(DocumentType.POST, post_ids)
        products = await self._fetch_documents(DocumentType.PRODUCT, product_ids)

        title, seo_description, body = await self._draft_pillar(strategy, posts, products)
        product_slugs = [p.slug for p in products]
        body = ensure_product_cards(body, product_slugs, self._settings.product_url_prefix)
        slug = await self._unique_slug(title, strategy.topic, strategy.id)
        pillar_target = LinkTarget(
            anchor_text=title, url=f"{self._settings.pillar_url_prefix}{slug}"
        )
        product_targets = [
            LinkTarget(anchor_text=p.title, url=f"{self._settings.product_url_prefix}{p.slug}")
            for p in products
        ]

        edits, omitted = self._link_edits(
            posts, DocumentType.POST, product_targets, pillar_target
        )
        omitted_products: list[str] = []
        if link_products:
            product_edits, omitted_products = self._link_edits(
                products, DocumentType.PRODUCT, [], pillar_target, first_position=len(posts)
            )
            edits.extend(product_edits)

        if existing is not None:
            await self._builds.delete(existing)
            cluster_logger.build_discarded(strategy_id, existing.id, "replaced")

        build = ClusterBuild(
            strategy_id=strategy.id,
            pillar_slug=slug,
            pillar_title=title,
            pillar_topic=strategy.topic,
            pillar_seo_description=seo_description,
            pillar_body=body,
            linked_product_slugs=product_slugs,
            selected_post_ids=post_ids,
            selected_product_ids=product_ids,
            edits=edits,
        )
        await self._builds.add(build)

        duration_ms = (time.monotonic() - start_time) * 1000
        cluster_logger.build_created(
            strategy_id=strategy.id,
            build_id=build.id,
            pillar_slug=slug,
            edit_count=len(edits),
            omitted_posts=omitted,
            duration_ms=duration_ms,
        )
        return ClusterBuildResult(
            build=build,
            omitted_post_ids=omitted,
            omitted_product_ids=omitted_products,
        )
