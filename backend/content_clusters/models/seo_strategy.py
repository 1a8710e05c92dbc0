"""SeoStrategy model: a proposed pillar-page content strategy.

Lifecycle:
- proposed: created by the strategy generator
- approved / rejected: set by an operator
- generated: set only by a successful approval batch commit; terminal
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from sqlalchemy import DateTime, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from content_clusters.core.database import Base


class StrategyStatus(str, Enum):
    """Status of an SEO strategy."""

    PROPOSED = "proposed"
    APPROVED = "approved"
    REJECTED = "rejected"
    GENERATED = "generated"


class SeoStrategy(Base):
    """SeoStrategy model.

    Attributes:
        id: UUID primary key
        topic: Central topic of the cluster (e.g. "Agendas Personalizadas")
        target_keywords: Ordered list of target search keywords
        suggested_title: Suggested pillar page title
        rationale: Why this strategy should work
        related_products: Product ids the strategy suggests linking
        related_posts: Post ids the strategy suggests linking
        suggested_posts: Titles of new supporting articles worth writing
        status: Lifecycle status
    """

    __tablename__ = "seo_strategies"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
        server_default=text("gen_random_uuid()"),
    )

    topic: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    target_keywords: Mapped[list[Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        server_default=text("'[]'::jsonb"),
    )

    suggested_title: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        default="",
    )

    rationale: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    related_products: Mapped[list[Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        server_default=text("'[]'::jsonb"),
    )

    related_posts: Mapped[list[Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        server_default=text("'[]'::jsonb"),
    )

    suggested_posts: Mapped[list[Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        server_default=text("'[]'::jsonb"),
    )

    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=StrategyStatus.PROPOSED.value,
        server_default=text("'proposed'"),
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=text("now()"),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=text("now()"),
        onupdate=lambda: datetime.now(UTC),
    )

    def __repr__(self) -> str:
        return f"<SeoStrategy(id={self.id!r}, topic={self.topic!r}, status={self.status!r})>"
