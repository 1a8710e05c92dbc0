"""Tests for the clusters API endpoints.

Tests cover the full review flow:
- POST /api/v1/clusters/build -> pending build with proposed edits
- GET /api/v1/clusters/review -> pillar draft first, then edits
- POST /api/v1/clusters/approve-changes -> published, strategy generated
- Repeat approval is a no-op; review is empty afterwards
- Stale content -> 409 with conflicting documents
- DELETE /api/v1/clusters/builds/{id} discards without publishing
"""

import json

from httpx import AsyncClient
from sqlalchemy import select

from content_clusters.models import Post, StrategyStatus

PILLAR_DRAFT = json.dumps(
    {
        "title": "Regalos Empresariales: guía 2026",
        "seoDescription": "Ideas de regalos empresariales para equipos",
        "body": "<h2>Introducción</h2><p>Regalar papelería funciona.</p>",
    }
)


async def _build(client: AsyncClient, strategy_id: str, posts: list[str], products: list[str]):
    return await client.post(
        "/api/v1/clusters/build",
        json={
            "strategyId": strategy_id,
            "selectedPosts": posts,
            "selectedProducts": products,
        },
    )


class TestClusterFlow:
    async def test_build_review_approve(
        self, async_client: AsyncClient, text_generator, catalog, make_strategy, db_session
    ) -> None:
        strategy = await make_strategy("Regalos Empresariales")
        post = catalog.posts["como-organizar-tu-semana"]
        omitted = catalog.posts["novedades-temporada"]
        kit = catalog.products["kit-regalo-corporativo"]
        await db_session.commit()
        text_generator.queue(PILLAR_DRAFT)

        response = await _build(async_client, strategy.id, [post.id, omitted.id], [kit.id])

        assert response.status_code == 201
        build = response.json()
        assert build["pillarSlug"] == "regalos-empresariales-guia-2026"
        assert [e["id"] for e in build["proposedEdits"]] == [post.id]
        assert build["proposedEdits"][0]["originalContent"] == post.content
        assert build["omittedPosts"] == [omitted.id]
        assert build["omittedProducts"] == []

        response = await async_client.get(
            "/api/v1/clusters/review", params={"strategy_id": strategy.id}
        )
        assert response.status_code == 200
        review = response.json()
        assert review["buildId"] == build["buildId"]
        items = review["items"]
        assert [i["type"] for i in items] == ["PillarPage", "Post"]
        assert items[0]["originalContent"] == ""
        assert "{{PRODUCT_CARD:kit-regalo-corporativo}}" in items[0]["proposedContent"]

        documents = [{"id": i["id"], "type": i["type"]} for i in items]
        response = await async_client.post(
            "/api/v1/clusters/approve-changes", json={"documents": documents}
        )
        assert response.status_code == 200
        result = response.json()
        assert result["publishedCount"] == 2
        assert result["strategyStatus"] == StrategyStatus.GENERATED.value

        response = await async_client.post(
            "/api/v1/clusters/approve-changes", json={"documents": documents}
        )
        assert response.status_code == 200
        assert response.json()["publishedCount"] == 0

        response = await async_client.get(
            "/api/v1/clusters/review", params={"strategy_id": strategy.id}
        )
        assert response.json()["items"] == []

    async def test_build_twice_conflicts(
        self, async_client: AsyncClient, text_generator, catalog, make_strategy, db_session
    ) -> None:
        strategy = await make_strategy()
        await db_session.commit()
        text_generator.queue(PILLAR_DRAFT)

        assert (await _build(async_client, strategy.id, [], [])).status_code == 201
        response = await _build(async_client, strategy.id, [], [])

        assert response.status_code == 409
        assert response.json()["code"] == "BUILD_ALREADY_IN_PROGRESS"

    async def test_stale_content_conflict(
        self,
        async_client: AsyncClient,
        text_generator,
        catalog,
        make_strategy,
        db_session,
        async_session_factory,
    ) -> None:
        strategy = await make_strategy()
        post = catalog.posts["como-organizar-tu-semana"]
        await db_session.commit()
        text_generator.queue(PILLAR_DRAFT)
        build = (await _build(async_client, strategy.id, [post.id], [])).json()

        async with async_session_factory() as session:
            live = await session.scalar(select(Post).where(Post.id == post.id))
            live.content = "<p>Editado a mano.</p>"
            await session.commit()

        documents = [{"id": build["pillarPageId"], "type": "PillarPage"}] + [
            {"id": e["id"], "type": e["type"]} for e in build["proposedEdits"]
        ]
        response = await async_client.post(
            "/api/v1/clusters/approve-changes",
            json={"documents": documents, "buildId": build["buildId"]},
        )

        assert response.status_code == 409
        data = response.json()
        assert data["code"] == "STALE_CONTENT_CONFLICT"
        assert [c["id"] for c in data["details"]["conflicts"]] == [post.id]

    async def test_discard_build(
        self, async_client: AsyncClient, text_generator, catalog, make_strategy, db_session
    ) -> None:
        strategy = await make_strategy()
        await db_session.commit()
        text_generator.queue(PILLAR_DRAFT)
        build = (await _build(async_client, strategy.id, [], [])).json()

        response = await async_client.delete(f"/api/v1/clusters/builds/{build['buildId']}")

        assert response.status_code == 200
        assert response.json() == {"buildId": build["buildId"], "strategyId": strategy.id}
        response = await async_client.get(
            "/api/v1/clusters/review", params={"build_id": build["buildId"]}
        )
        assert response.json()["items"] == []

    async def test_review_requires_an_id(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/api/v1/clusters/review")
        assert response.status_code == 400

    async def test_unknown_document_type(self, async_client: AsyncClient) -> None:
        response = await async_client.post(
            "/api/v1/clusters/approve-changes",
            json={"documents": [{"id": "x", "type": "Page"}]},
        )
        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"
