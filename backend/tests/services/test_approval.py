"""Tests for the approval batch committer.

Tests cover:
- Full batch: pillar page created and published, posts updated, strategy
  generated, build deleted
- Approving the same documents again is a no-op
- Stale live content aborts the whole batch before any write
- Pillar slug taken since the build aborts the batch
- A failing write reports what was and was not written
- Malformed batches (empty, unknown type, several builds)
- Edits linking to the pillar page need the pillar page in the same batch
- A post shared by two builds resolves to the build holding every document
- Product backlinks are published to the long description
- Documents with nothing pending are skipped
"""

import json

import pytest

from content_clusters.core.errors import (
    ApprovalBatchError,
    PartialCommitError,
    RepositoryUnavailable,
    StaleContentConflict,
)
from content_clusters.models import DocumentType, PillarPage, PillarPageStatus, StrategyStatus
from content_clusters.repositories.content import SqlContentRepository
from content_clusters.services.approval import ApprovalService, DocumentRef
from content_clusters.services.cluster_builder import ClusterBuilder
from content_clusters.services.review import review_items_for


def _draft(title: str) -> str:
    return json.dumps(
        {
            "title": title,
            "seoDescription": f"{title} para empresas",
            "body": "<h2>Introducción</h2><p>Regalar papelería funciona.</p>",
        }
    )


class FailingPostWrites(SqlContentRepository):
    """Content repository whose post writes fail."""

    async def save_post(self, post_id: str, content: str) -> None:
        raise RepositoryUnavailable("save_post")


@pytest.fixture
def approval(content_repo, strategy_repo, build_repo) -> ApprovalService:
    return ApprovalService(content_repo, strategy_repo, build_repo)


@pytest.fixture
def build_for(text_generator, content_repo, strategy_repo, build_repo, make_strategy):
    async def _build_for(
        topic: str, post_ids: list[str], product_ids: list[str], **options
    ):
        strategy = await make_strategy(topic)
        text_generator.queue(_draft(f"{topic}: guía 2026"))
        builder = ClusterBuilder(text_generator, content_repo, strategy_repo, build_repo)
        result = await builder.build_cluster(strategy.id, post_ids, product_ids, **options)
        return strategy, result.build

    return _build_for


def _refs(build) -> list[DocumentRef]:
    return [DocumentRef(id=i.id, type=i.type) for i in review_items_for(build)]


class TestApproveChanges:
    async def test_regalos_empresariales_batch(
        self, approval, build_for, catalog, content_repo, build_repo
    ) -> None:
        post_a = catalog.posts["como-organizar-tu-semana"]
        post_b = catalog.posts["ideas-regalos-equipo"]
        kit = catalog.products["kit-regalo-corporativo"]
        strategy, build = await build_for(
            "Regalos Empresariales", [post_a.id, post_b.id], [kit.id]
        )
        items = review_items_for(build)
        build_id = build.id

        result = await approval.approve_changes(_refs(build))

        assert result.published_count == 3
        assert result.strategy_status == StrategyStatus.GENERATED.value
        assert result.strategy_id == strategy.id
        assert strategy.status == StrategyStatus.GENERATED.value

        page = await content_repo.get_pillar_page_by_slug(
            "regalos-empresariales-guia-2026"
        )
        assert page is not None
        assert page.id == items[0].id
        assert page.status == PillarPageStatus.PUBLISHED.value
        assert page.linked_product_slugs == ["kit-regalo-corporativo"]
        assert "{{PRODUCT_CARD:kit-regalo-corporativo}}" in page.body

        for item in items[1:]:
            live = await content_repo.get_by_id(DocumentType.POST, item.id)
            assert live.content == item.proposed_content

        assert await build_repo.get_by_id(build_id) is None

    async def test_repeat_approval_is_noop(
        self, approval, build_for, catalog, content_repo
    ) -> None:
        post = catalog.posts["como-organizar-tu-semana"]
        _, build = await build_for("Regalos Empresariales", [post.id], [])
        refs = _refs(build)
        await approval.approve_changes(refs)
        published = (await content_repo.get_by_id(DocumentType.POST, post.id)).content

        result = await approval.approve_changes(refs)

        assert result.published_count == 0
        assert result.skipped == refs
        live = await content_repo.get_by_id(DocumentType.POST, post.id)
        assert live.content == published

    async def test_stale_content_aborts_batch(
        self, approval, build_for, catalog, content_repo, build_repo, db_session
    ) -> None:
        post_a = catalog.posts["como-organizar-tu-semana"]
        post_b = catalog.posts["ideas-regalos-equipo"]
        original_a = post_a.content
        strategy, build = await build_for("Regalos Empresariales", [post_a.id, post_b.id], [])

        # Edited by someone else after the build
        post_b.content = "<p>Texto reescrito.</p>"
        await db_session.flush()

        with pytest.raises(StaleContentConflict) as exc_info:
            await approval.approve_changes(_refs(build))

        assert [c["id"] for c in exc_info.value.conflicts] == [post_b.id]
        live_a = await content_repo.get_by_id(DocumentType.POST, post_a.id)
        assert live_a.content == original_a
        assert await content_repo.get_pillar_page_by_slug(build.pillar_slug) is None
        assert await build_repo.get_by_id(build.id) is not None
        assert strategy.status == StrategyStatus.APPROVED.value

    async def test_pillar_slug_taken_aborts_batch(
        self, approval, build_for, catalog, db_session
    ) -> None:
        _, build = await build_for("Regalos Empresariales", [], [])
        db_session.add(
            PillarPage(
                slug=build.pillar_slug,
                title="Otra página",
                body="<p>Otra</p>",
                status=PillarPageStatus.PUBLISHED.value,
            )
        )
        await db_session.flush()

        with pytest.raises(StaleContentConflict):
            await approval.approve_changes(_refs(build))

    async def test_failed_write_reports_partial_commit(
        self, build_for, catalog, db_session, strategy_repo, build_repo
    ) -> None:
        post = catalog.posts["como-organizar-tu-semana"]
        strategy, build = await build_for("Regalos Empresariales", [post.id], [])
        approval = ApprovalService(FailingPostWrites(db_session), strategy_repo, build_repo)

        with pytest.raises(PartialCommitError) as exc_info:
            await approval.approve_changes(_refs(build))

        error = exc_info.value
        assert error.written == [
            {"id": build.pillar_page_id, "type": "PillarPage", "title": build.pillar_title}
        ]
        assert error.failed["id"] == post.id
        assert strategy.status == StrategyStatus.APPROVED.value
        assert await build_repo.get_by_id(build.id) is not None

    async def test_subset_publishes_only_selected(
        self, approval, build_for, catalog, content_repo
    ) -> None:
        post = catalog.posts["como-organizar-tu-semana"]
        original = post.content
        _, build = await build_for("Regalos Empresariales", [post.id], [])
        pillar_ref = _refs(build)[0]

        result = await approval.approve_changes([pillar_ref])

        assert result.published_count == 1
        live = await content_repo.get_by_id(DocumentType.POST, post.id)
        assert live.content == original

    async def test_unknown_documents_skipped(
        self, approval, build_for, catalog
    ) -> None:
        post = catalog.posts["como-organizar-tu-semana"]
        other = catalog.posts["ideas-regalos-equipo"]
        _, build = await build_for("Regalos Empresariales", [post.id], [])
        stray = DocumentRef(id=other.id, type="Post")

        result = await approval.approve_changes(
            [*_refs(build), stray], build_id=build.id
        )

        assert result.published_count == 2
        assert result.skipped == [stray]

    async def test_empty_batch_rejected(self, approval) -> None:
        with pytest.raises(ApprovalBatchError):
            await approval.approve_changes([])

    async def test_unknown_type_rejected(self, approval) -> None:
        with pytest.raises(ApprovalBatchError, match="Unknown document type"):
            await approval.approve_changes([DocumentRef(id="x", type="Page")])

    async def test_documents_from_two_builds_rejected(
        self, approval, build_for, catalog
    ) -> None:
        _, build_a = await build_for(
            "Regalos Empresariales", [catalog.posts["como-organizar-tu-semana"].id], []
        )
        _, build_b = await build_for(
            "Libretas Ecológicas", [catalog.posts["ideas-regalos-equipo"].id], []
        )

        with pytest.raises(ApprovalBatchError, match="single pending cluster build"):
            await approval.approve_changes([*_refs(build_a)[1:], *_refs(build_b)[1:]])

    async def test_nothing_pending(self, approval) -> None:
        result = await approval.approve_changes(
            [DocumentRef(id="00000000-0000-0000-0000-000000000000", type="Post")]
        )
        assert result.published_count == 0

    async def test_edit_linking_to_pillar_needs_pillar_in_batch(
        self, approval, build_for, catalog, content_repo, build_repo
    ) -> None:
        post = catalog.posts["ideas-regalos-equipo"]
        original = post.content
        strategy, build = await build_for("Regalos Empresariales", [post.id], [])
        post_ref = _refs(build)[1]

        with pytest.raises(ApprovalBatchError, match="approve the pillar page"):
            await approval.approve_changes([post_ref])

        live = await content_repo.get_by_id(DocumentType.POST, post.id)
        assert live.content == original
        assert await content_repo.get_pillar_page_by_slug(build.pillar_slug) is None
        assert await build_repo.get_by_id(build.id) is not None
        assert strategy.status == StrategyStatus.APPROVED.value

    async def test_shared_post_resolves_to_covering_build(
        self, approval, build_for, catalog, build_repo
    ) -> None:
        post = catalog.posts["ideas-regalos-equipo"]
        _, build_a = await build_for("Regalos Empresariales", [post.id], [])
        _, build_b = await build_for("Regalos de Navidad", [post.id], [])

        result = await approval.approve_changes(_refs(build_a))

        assert result.build_id == build_a.id
        assert result.published_count == 2
        assert await build_repo.get_by_id(build_b.id) is not None

    async def test_shared_post_alone_is_ambiguous(
        self, approval, build_for, catalog
    ) -> None:
        post = catalog.posts["ideas-regalos-equipo"]
        await build_for("Regalos Empresariales", [post.id], [])
        await build_for("Regalos de Navidad", [post.id], [])

        with pytest.raises(ApprovalBatchError, match="single pending cluster build"):
            await approval.approve_changes([DocumentRef(id=post.id, type="Post")])

    async def test_product_backlink_published(
        self, approval, build_for, catalog, content_repo
    ) -> None:
        post = catalog.posts["como-organizar-tu-semana"]
        kit = catalog.products["kit-regalo-corporativo"]
        _, build = await build_for(
            "Regalos Empresariales", [post.id], [kit.id], link_products=True
        )
        items = review_items_for(build)
        assert [i.type for i in items] == ["PillarPage", "Post", "Product"]

        result = await approval.approve_changes(_refs(build))

        assert result.published_count == 3
        live = await content_repo.get_by_id(DocumentType.PRODUCT, kit.id)
        assert live.content == items[2].proposed_content
        assert f'href="/pillar/{build.pillar_slug}"' in live.content


async def test_products_only_cluster_publishes_pillar(
    approval, build_for, catalog, content_repo, strategy_repo
) -> None:
    agenda = catalog.products["agenda-personalizada-2026"]
    kraft = catalog.products["libreta-kraft"]
    strategy, build = await build_for("Regalos Empresariales", [], [agenda.id, kraft.id])

    items = review_items_for(build)
    assert len(items) == 1
    assert items[0].type == "PillarPage"

    result = await approval.approve_changes(_refs(build))

    assert result.published_count == 1
    page = await content_repo.get_pillar_page_by_slug(build.pillar_slug)
    assert page.status == PillarPageStatus.PUBLISHED.value
    assert "agenda-personalizada-2026" in page.body
    assert "libreta-kraft" in page.body
    reloaded = await strategy_repo.get_by_id(strategy.id)
    assert reloaded.status == StrategyStatus.GENERATED.value
