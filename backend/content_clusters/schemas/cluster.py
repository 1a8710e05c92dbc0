"""Pydantic v2 schemas for cluster build, review and approval endpoints.

- ClusterBuildRequest: strategy plus selected posts/products
- ClusterBuildResponse: the stored build with its proposed edits
- ReviewDataResponse: ordered review items (pillar draft first)
- ApproveChangesRequest / ApproveChangesResponse: batch approval
"""

from typing import Literal

from pydantic import Field

from content_clusters.schemas.base import CamelModel

DocumentTypeLiteral = Literal["PillarPage", "Post", "Product"]


class ClusterBuildRequest(CamelModel):
    """Request schema for building a cluster from a strategy."""

    strategy_id: str = Field(..., description="SeoStrategy UUID")
    selected_posts: list[str] = Field(
        default_factory=list, description="Post ids to link into the cluster, in order"
    )
    selected_products: list[str] = Field(
        default_factory=list, description="Product ids the pillar page presents, in order"
    )
    replace_existing: bool = Field(
        False, description="Replace a pending build for this strategy"
    )
    link_products: bool = Field(
        False,
        description=(
            "Also propose a backlink to the pillar page in each selected "
            "product's long description"
        ),
    )


class ReviewItemResponse(CamelModel):
    id: str = Field(..., description="Target document id")
    type: DocumentTypeLiteral
    title: str
    original_content: str = Field(..., description="Live content when the build was made")
    proposed_content: str


class ClusterBuildResponse(CamelModel):
    build_id: str
    strategy_id: str
    pillar_page_id: str
    pillar_slug: str
    pillar_title: str
    proposed_edits: list[ReviewItemResponse] = Field(default_factory=list)
    omitted_posts: list[str] = Field(
        default_factory=list, description="Selected posts with no anchor point"
    )
    omitted_products: list[str] = Field(
        default_factory=list,
        description="Selected products with no anchor point for a backlink",
    )


class ReviewDataResponse(CamelModel):
    build_id: str | None = None
    strategy_id: str | None = None
    items: list[ReviewItemResponse] = Field(default_factory=list)


class DocumentRefSchema(CamelModel):
    id: str
    type: DocumentTypeLiteral


class ApproveChangesRequest(CamelModel):
    documents: list[DocumentRefSchema] = Field(..., min_length=1)
    build_id: str | None = Field(
        None, description="Build the documents belong to; inferred when omitted"
    )


class ApproveChangesResponse(CamelModel):
    published_count: int
    strategy_status: str | None = None
    strategy_id: str | None = None
    build_id: str | None = None
    skipped: list[DocumentRefSchema] = Field(default_factory=list)


class DiscardBuildResponse(CamelModel):
    build_id: str
    strategy_id: str
