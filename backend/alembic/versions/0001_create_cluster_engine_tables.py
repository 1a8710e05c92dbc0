"""Create content and cluster engine tables.

- products, posts, pillar_pages: live catalog and editorial content
- seo_strategies: proposed pillar-page strategies and their lifecycle status
- cluster_builds: one pending build per strategy (pillar draft + selections)
- proposed_edits: ordered, reviewable changes belonging to a build

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=False),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _jsonb_list(name: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.JSONB(astext_type=sa.Text()),
        server_default=sa.text("'[]'::jsonb"),
        nullable=False,
    )


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    """Create content and cluster engine tables."""
    # --- products table ---
    op.create_table(
        "products",
        _id_column(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("long_description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=255), nullable=True),
        sa.Column(
            "status",
            sa.String(length=50),
            server_default=sa.text("'activo'"),
            nullable=False,
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_products_slug"), "products", ["slug"], unique=True)

    # --- posts table ---
    op.create_table(
        "posts",
        _id_column(),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("slug", sa.String(length=500), nullable=False),
        sa.Column("excerpt", sa.Text(), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("seo_description", sa.Text(), nullable=True),
        _jsonb_list("tags"),
        sa.Column(
            "status",
            sa.String(length=50),
            server_default=sa.text("'published'"),
            nullable=False,
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_posts_slug"), "posts", ["slug"], unique=True)
    op.create_index(op.f("ix_posts_status"), "posts", ["status"], unique=False)

    # --- pillar_pages table ---
    op.create_table(
        "pillar_pages",
        _id_column(),
        sa.Column("slug", sa.String(length=500), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("topic", sa.Text(), nullable=False),
        sa.Column("seo_description", sa.Text(), nullable=True),
        sa.Column("body", sa.Text(), nullable=False),
        _jsonb_list("linked_product_slugs"),
        sa.Column(
            "status",
            sa.String(length=50),
            server_default=sa.text("'draft'"),
            nullable=False,
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_pillar_pages_slug"), "pillar_pages", ["slug"], unique=True
    )
    op.create_index(
        op.f("ix_pillar_pages_status"), "pillar_pages", ["status"], unique=False
    )

    # --- seo_strategies table ---
    op.create_table(
        "seo_strategies",
        _id_column(),
        sa.Column("topic", sa.Text(), nullable=False),
        _jsonb_list("target_keywords"),
        sa.Column("suggested_title", sa.String(length=500), nullable=False),
        sa.Column("rationale", sa.Text(), nullable=True),
        _jsonb_list("related_products"),
        _jsonb_list("related_posts"),
        _jsonb_list("suggested_posts"),
        sa.Column(
            "status",
            sa.String(length=50),
            server_default=sa.text("'proposed'"),
            nullable=False,
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_seo_strategies_status"),
        "seo_strategies",
        ["status"],
        unique=False,
    )

    # --- cluster_builds table ---
    op.create_table(
        "cluster_builds",
        _id_column(),
        sa.Column("strategy_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("pillar_page_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("pillar_slug", sa.String(length=500), nullable=False),
        sa.Column("pillar_title", sa.String(length=500), nullable=False),
        sa.Column("pillar_topic", sa.Text(), nullable=False),
        sa.Column("pillar_seo_description", sa.Text(), nullable=False),
        sa.Column("pillar_body", sa.Text(), nullable=False),
        _jsonb_list("linked_product_slugs"),
        _jsonb_list("selected_post_ids"),
        _jsonb_list("selected_product_ids"),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["strategy_id"],
            ["seo_strategies.id"],
            name="fk_cluster_builds_strategy_id",
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        op.f("ix_cluster_builds_strategy_id"),
        "cluster_builds",
        ["strategy_id"],
        unique=True,
    )

    # --- proposed_edits table ---
    op.create_table(
        "proposed_edits",
        _id_column(),
        sa.Column("build_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("target_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("target_type", sa.String(length=20), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("original_content", sa.Text(), nullable=False),
        sa.Column("proposed_content", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["build_id"],
            ["cluster_builds.id"],
            name="fk_proposed_edits_build_id",
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        op.f("ix_proposed_edits_build_id"),
        "proposed_edits",
        ["build_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_proposed_edits_target_id"),
        "proposed_edits",
        ["target_id"],
        unique=False,
    )


def downgrade() -> None:
    """Drop cluster engine and content tables."""
    op.drop_index(op.f("ix_proposed_edits_target_id"), table_name="proposed_edits")
    op.drop_index(op.f("ix_proposed_edits_build_id"), table_name="proposed_edits")
    op.drop_table("proposed_edits")

    op.drop_index(op.f("ix_cluster_builds_strategy_id"), table_name="cluster_builds")
    op.drop_table("cluster_builds")

    op.drop_index(op.f("ix_seo_strategies_status"), table_name="seo_strategies")
    op.drop_table("seo_strategies")

    op.drop_index(op.f("ix_pillar_pages_status"), table_name="pillar_pages")
    op.drop_index(op.f("ix_pillar_pages_slug"), table_name="pillar_pages")
    op.drop_table("pillar_pages")

    op.drop_index(op.f("ix_posts_status"), table_name="posts")
    op.drop_index(op.f("ix_posts_slug"), table_name="posts")
    op.drop_table("posts")

    op.drop_index(op.f("ix_products_slug"), table_name="products")
    op.drop_table("products")
