"""Content repository: read access to the catalog and single-document writes.

The engine depends on the `ContentRepository` protocol only.
`SqlContentRepository` is the SQLAlchemy implementation over the
products, posts and pillar_pages tables.

Every write is a single-document operation flushed on its own, so a
failing document is detected at the point it is written. Infrastructure
failures surface as `RepositoryUnavailable`.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Protocol

from sqlalchemy import Select, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from content_clusters.core.errors import ContentNotFoundError, RepositoryUnavailable
from content_clusters.core.logging import db_logger, get_logger
from content_clusters.models.cluster_build import DocumentType
from content_clusters.models.content import PillarPage, PillarPageStatus, Post, Product

logger = get_logger(__name__)


@dataclass
class ProductSummary:
    id: str
    name: str
    slug: str
    description: str = ""
    category: str | None = None
    status: str = "activo"


@dataclass
class PostSummary:
    id: str
    title: str
    slug: str
    excerpt: str = ""
    seo_description: str = ""
    tags: list[str] = field(default_factory=list)
    status: str = "published"


@dataclass
class PillarPageRecord:
    id: str
    slug: str
    title: str
    body: str
    topic: str = ""
    seo_description: str = ""
    linked_product_slugs: list[str] = field(default_factory=list)
    status: str = PillarPageStatus.DRAFT.value


@dataclass
class ContentDocument:
    """A document with its live field, as targeted by proposed edits."""

    id: str
    type: DocumentType
    title: str
    slug: str
    content: str


@dataclass
class KeywordMatches:
    products: list[ProductSummary] = field(default_factory=list)
    posts: list[PostSummary] = field(default_factory=list)


class ContentRepository(Protocol):
    """Content store capability consumed by the cluster engine."""

    async def get_product_summaries(self) -> list[ProductSummary]: ...

    async def get_post_summaries(self) -> list[PostSummary]: ...

    async def get_pillar_pages(
        self, status: str | None = None
    ) -> list[PillarPageRecord]: ...

    async def get_pillar_page_by_slug(self, slug: str) -> PillarPageRecord | None: ...

    async def get_by_id(
        self, doc_type: DocumentType, doc_id: str
    ) -> ContentDocument | None: ...

    async def find_by_keywords(
        self, keywords: list[str], limit: int = 20
    ) -> KeywordMatches: ...

    async def save_product(self, product_id: str, long_description: str) -> None: ...

    async def save_post(self, post_id: str, content: str) -> None: ...

    async def save_pillar_page(self, page: PillarPageRecord) -> None: ...


def _product_summary(product: Product) -> ProductSummary:
    return ProductSummary(
        id=product.id,
        name=product.name,
        slug=product.slug,
        description=product.description or "",
        category=product.category,
        status=product.status,
    )


def _post_summary(post: Post) -> PostSummary:
    return PostSummary(
        id=post.id,
        title=post.title,
        slug=post.slug,
        excerpt=post.excerpt or "",
        seo_description=post.seo_description or "",
        tags=list(post.tags or []),
        status=post.status,
    )


def _pillar_record(page: PillarPage) -> PillarPageRecord:
    return PillarPageRecord(
        id=page.id,
        slug=page.slug,
        title=page.title,
        body=page.body or "",
        topic=page.topic or "",
        seo_description=page.seo_description or "",
        linked_product_slugs=list(page.linked_product_slugs or []),
        status=page.status,
    )


class SqlContentRepository:
    """SQLAlchemy implementation of `ContentRepository`."""

    SLOW_OPERATION_THRESHOLD_MS = 1000

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _scalars(self, operation: str, stmt: Select[Any]) -> list[Any]:
        start_time = time.monotonic()
        try:
            result = await self.session.execute(stmt)
            rows = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(
                "Content repository query failed",
                extra={
                    "operation": operation,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
                exc_info=True,
            )
            raise RepositoryUnavailable(operation, e) from e

        duration_ms = (time.monotonic() - start_time) * 1000
        if duration_ms > self.SLOW_OPERATION_THRESHOLD_MS:
            db_logger.slow_query(query=operation, duration_ms=duration_ms)
        return rows

    async def _flush(self, operation: str, doc_id: str) -> None:
        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            logger.error(
                "Content repository write failed",
                extra={
                    "operation": operation,
                    "document_id": doc_id,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
                exc_info=True,
            )
            raise RepositoryUnavailable(operation, e) from e

    async def get_product_summaries(self) -> list[ProductSummary]:
        rows = await self._scalars(
            "get_product_summaries", select(Product).order_by(Product.name)
        )
        return [_product_summary(p) for p in rows]

    async def get_post_summaries(self) -> list[PostSummary]:
        rows = await self._scalars(
            "get_post_summaries", select(Post).order_by(Post.created_at.desc())
        )
        return [_post_summary(p) for p in rows]

    async def get_pillar_pages(
        self, status: str | None = None
    ) -> list[PillarPageRecord]:
        stmt = select(PillarPage).order_by(PillarPage.created_at.desc())
        if status is not None:
            stmt = stmt.where(PillarPage.status == status)
        rows = await self._scalars("get_pillar_pages", stmt)
        return [_pillar_record(p) for p in rows]

    async def get_pillar_page_by_slug(self, slug: str) -> PillarPageRecord | None:
        rows = await self._scalars(
            "get_pillar_page_by_slug",
            select(PillarPage).where(PillarPage.slug == slug),
        )
        return _pillar_record(rows[0]) if rows else None

    async def get_by_id(
        self, doc_type: DocumentType, doc_id: str
    ) -> ContentDocument | None:
        """Fetch one document with its live field.

        PillarPage -> body, Post -> content, Product -> long_description.
        """
        if doc_type == DocumentType.PILLAR_PAGE:
            rows = await self._scalars(
                "get_by_id", select(PillarPage).where(PillarPage.id == doc_id)
            )
            if not rows:
                return None
            page = rows[0]
            return ContentDocument(
                id=page.id,
                type=doc_type,
                title=page.title,
                slug=page.slug,
                content=page.body or "",
            )

        if doc_type == DocumentType.POST:
            rows = await self._scalars("get_by_id", select(Post).where(Post.id == doc_id))
            if not rows:
                return None
            post = rows[0]
            return ContentDocument(
                id=post.id,
                type=doc_type,
                title=post.title,
                slug=post.slug,
                content=post.content or "",
            )

        rows = await self._scalars(
            "get_by_id", select(Product).where(Product.id == doc_id)
        )
        if not rows:
            return None
        product = rows[0]
        return ContentDocument(
            id=product.id,
            type=doc_type,
            title=product.name,
            slug=product.slug,
            content=product.long_description or "",
        )

    async def find_by_keywords(
        self, keywords: list[str], limit: int = 20
    ) -> KeywordMatches:
        """Products and posts whose name/title or descriptions mention any keyword."""
        terms = [k.strip() for k in keywords if k and k.strip()]
        if not terms:
            return KeywordMatches()

        product_filters = []
        post_filters = []
        for term in terms:
            pattern = f"%{term}%"
            product_filters.extend(
                [Product.name.ilike(pattern), Product.description.ilike(pattern)]
            )
            post_filters.extend(
                [
                    Post.title.ilike(pattern),
                    Post.excerpt.ilike(pattern),
                    Post.seo_description.ilike(pattern),
                ]
            )

        products = await self._scalars(
            "find_by_keywords",
            select(Product).where(or_(*product_filters)).limit(limit),
        )
        posts = await self._scalars(
            "find_by_keywords",
            select(Post).where(or_(*post_filters)).limit(limit),
        )
        return KeywordMatches(
            products=[_product_summary(p) for p in products],
            posts=[_post_summary(p) for p in posts],
        )

    async def save_product(self, product_id: str, long_description: str) -> None:
        rows = await self._scalars(
            "save_product", select(Product).where(Product.id == product_id)
        )
        if not rows:
            raise ContentNotFoundError(DocumentType.PRODUCT.value, product_id)
        rows[0].long_description = long_description
        await self._flush("save_product", product_id)

    async def save_post(self, post_id: str, content: str) -> None:
        rows = await self._scalars("save_post", select(Post).where(Post.id == post_id))
        if not rows:
            raise ContentNotFoundError(DocumentType.POST.value, post_id)
        rows[0].content = content
        await self._flush("save_post", post_id)

    async def save_pillar_page(self, page: PillarPageRecord) -> None:
        """Create or update a pillar page by id."""
        rows = await self._scalars(
            "save_pillar_page", select(PillarPage).where(PillarPage.id == page.id)
        )
        if rows:
            existing = rows[0]
            existing.slug = page.slug
            existing.title = page.title
            existing.topic = page.topic
            existing.seo_description = page.seo_description
            existing.body = page.body
            existing.linked_product_slugs = list(page.linked_product_slugs)
            existing.status = page.status
        else:
            self.session.add(
                PillarPage(
                    id=page.id,
                    slug=page.slug,
                    title=page.title,
                    topic=page.topic,
                    seo_description=page.seo_description,
                    body=page.body,
                    linked_product_slugs=list(page.linked_product_slugs),
                    status=page.status,
                )
            )
        await self._flush("save_pillar_page", page.id)
