"""ClusterBuild and ProposedEdit models.

ClusterBuild holds the unpublished result of building a cluster from a
strategy: the pillar page draft plus an ordered list of ProposedEdit rows.
A build lives only between "build cluster" and "approve changes"; it is
deleted on rejection and after a successful commit.

ProposedEdit is a reviewable diff against one live document:
- original_content: verbatim snapshot of the live field at build time
- proposed_content: the replacement (original plus inserted links)
"""

from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from content_clusters.core.database import Base

if TYPE_CHECKING:
    from content_clusters.models.seo_strategy import SeoStrategy


class DocumentType(str, Enum):
    """Document types a proposed edit can target."""

    PILLAR_PAGE = "PillarPage"
    POST = "Post"
    PRODUCT = "Product"


class ClusterBuild(Base):
    """ClusterBuild model.

    Attributes:
        id: UUID primary key
        strategy_id: Originating strategy (unique: one active build each)
        pillar_page_id: Id reserved for the pillar page created on commit
        pillar_slug: Slug of the drafted pillar page
        pillar_title: Drafted title
        pillar_seo_description: Drafted meta description
        pillar_body: Drafted body HTML
        linked_product_slugs: Product slugs the pillar page references
        selected_post_ids: Operator-selected posts, in selection order
        selected_product_ids: Operator-selected products, in selection order
    """

    __tablename__ = "cluster_builds"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
        server_default=text("gen_random_uuid()"),
    )

    strategy_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("seo_strategies.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    pillar_page_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        nullable=False,
        default=lambda: str(uuid4()),
    )

    pillar_slug: Mapped[str] = mapped_column(String(500), nullable=False)

    pillar_title: Mapped[str] = mapped_column(String(500), nullable=False)

    pillar_topic: Mapped[str] = mapped_column(Text, nullable=False, default="")

    pillar_seo_description: Mapped[str] = mapped_column(
        Text, nullable=False, default=""
    )

    pillar_body: Mapped[str] = mapped_column(Text, nullable=False)

    linked_product_slugs: Mapped[list[Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        server_default=text("'[]'::jsonb"),
    )

    selected_post_ids: Mapped[list[Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        server_default=text("'[]'::jsonb"),
    )

    selected_product_ids: Mapped[list[Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        server_default=text("'[]'::jsonb"),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=text("now()"),
    )

    # Relationships
    strategy: Mapped["SeoStrategy"] = relationship("SeoStrategy")

    edits: Mapped[list["ProposedEdit"]] = relationship(
        "ProposedEdit",
        back_populates="build",
        cascade="all, delete-orphan",
        order_by="ProposedEdit.position",
    )

    def __repr__(self) -> str:
        return f"<ClusterBuild(id={self.id!r}, strategy_id={self.strategy_id!r})>"


class ProposedEdit(Base):
    """ProposedEdit model: one pending change to one live document."""

    __tablename__ = "proposed_edits"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
        server_default=text("gen_random_uuid()"),
    )

    build_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("cluster_builds.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    position: Mapped[int] = mapped_column(Integer, nullable=False)

    target_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        nullable=False,
        index=True,
    )

    target_type: Mapped[str] = mapped_column(String(20), nullable=False)

    title: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    original_content: Mapped[str] = mapped_column(Text, nullable=False)

    proposed_content: Mapped[str] = mapped_column(Text, nullable=False)

    build: Mapped["ClusterBuild"] = relationship(
        "ClusterBuild",
        back_populates="edits",
    )

    def __repr__(self) -> str:
        return (
            f"<ProposedEdit(id={self.id!r}, target_type={self.target_type!r}, "
            f"target_id={self.target_id!r})>"
        )
