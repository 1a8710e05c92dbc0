"""Tests for the strategies and SEO API endpoints.

Tests cover:
- POST /api/v1/strategies/generate persists proposals (camelCase JSON)
- Structured errors: validation, parse failure, text generation failure
- GET /api/v1/strategies with status filter
- POST /api/v1/strategies/{id}/approve and /reject, including 404 and 409
- GET /api/v1/strategies/{id}/suggestions
- POST /api/v1/seo/check-cannibalization and GET /api/v1/seo/health-check
"""

import json

from httpx import AsyncClient

from content_clusters.integrations.claude import TextGenerationError
from content_clusters.models import StrategyStatus

GENERATED = json.dumps(
    {
        "strategies": [
            {
                "topic": "Regalos Empresariales",
                "targetKeywords": ["regalos empresariales"],
                "suggestedTitle": "Regalos Empresariales: guía 2026",
                "rationale": "Temporada alta en diciembre",
                "relatedProducts": ["Kit Regalo Corporativo"],
                "relatedPosts": [],
                "suggestedPosts": ["Regalos para clientes"],
            }
        ]
    }
)


class TestGenerateStrategies:
    async def test_generate(
        self, async_client: AsyncClient, text_generator, catalog, db_session
    ) -> None:
        await db_session.commit()
        text_generator.queue(GENERATED)

        response = await async_client.post(
            "/api/v1/strategies/generate",
            json={"topic": "Regalos empresariales", "description": "Para empresas"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["count"] == 1
        strategy = data["strategies"][0]
        assert strategy["status"] == "proposed"
        assert strategy["suggestedTitle"] == "Regalos Empresariales: guía 2026"
        assert strategy["relatedProducts"] == [
            catalog.products["kit-regalo-corporativo"].id
        ]

    async def test_empty_topic(self, async_client: AsyncClient, text_generator) -> None:
        response = await async_client.post(
            "/api/v1/strategies/generate",
            json={"topic": " ", "description": "Para empresas"},
        )

        assert response.status_code == 422
        data = response.json()
        assert data["code"] == "VALIDATION_ERROR"
        assert "request_id" in data
        assert text_generator.calls == []

    async def test_unparseable_output(
        self, async_client: AsyncClient, text_generator
    ) -> None:
        text_generator.queue("Lo siento, no puedo ayudar con eso.")

        response = await async_client.post(
            "/api/v1/strategies/generate",
            json={"topic": "Agendas", "description": "Agendas anuales"},
        )

        assert response.status_code == 422
        data = response.json()
        assert data["code"] == "GENERATION_PARSE_ERROR"
        assert data["details"] == {"retryable": True}

    async def test_text_generation_failure(
        self, async_client: AsyncClient, text_generator
    ) -> None:
        text_generator.queue(TextGenerationError("Rate limit exceeded", status_code=429))

        response = await async_client.post(
            "/api/v1/strategies/generate",
            json={"topic": "Agendas", "description": "Agendas anuales"},
        )

        assert response.status_code == 502
        assert response.json()["code"] == "TEXT_GENERATION_FAILED"


class TestStrategyLifecycle:
    async def test_list_with_filter(
        self, async_client: AsyncClient, make_strategy, db_session
    ) -> None:
        await make_strategy("Agendas", StrategyStatus.PROPOSED)
        await make_strategy("Libretas", StrategyStatus.APPROVED)
        await db_session.commit()

        response = await async_client.get(
            "/api/v1/strategies", params={"status": "approved"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["strategies"][0]["topic"] == "Libretas"

    async def test_approve_then_reject(
        self, async_client: AsyncClient, make_strategy, db_session
    ) -> None:
        strategy = await make_strategy(status=StrategyStatus.PROPOSED)
        await db_session.commit()

        response = await async_client.post(f"/api/v1/strategies/{strategy.id}/approve")
        assert response.status_code == 200
        assert response.json()["status"] == "approved"

        response = await async_client.post(f"/api/v1/strategies/{strategy.id}/reject")
        assert response.status_code == 200
        assert response.json()["status"] == "rejected"

        response = await async_client.post(f"/api/v1/strategies/{strategy.id}/approve")
        assert response.status_code == 409
        assert response.json()["code"] == "INVALID_STRATEGY_STATE"

    async def test_unknown_strategy(self, async_client: AsyncClient) -> None:
        response = await async_client.post("/api/v1/strategies/missing/approve")

        assert response.status_code == 404
        assert response.json()["code"] == "STRATEGY_NOT_FOUND"

    async def test_suggestions(
        self, async_client: AsyncClient, make_strategy, catalog, db_session
    ) -> None:
        strategy = await make_strategy("Agenda Personalizada")
        await db_session.commit()

        response = await async_client.get(
            f"/api/v1/strategies/{strategy.id}/suggestions", params={"limit": 5}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["strategyId"] == strategy.id
        assert data["products"][0]["slug"] == "agenda-personalizada-2026"


class TestSeoEndpoints:
    async def test_check_cannibalization(
        self, async_client: AsyncClient, catalog, db_session
    ) -> None:
        await db_session.commit()

        response = await async_client.post(
            "/api/v1/seo/check-cannibalization", json={"topic": "Agendas 2026"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["hasConflict"] is True
        assert data["verified"] is True
        assert data["matches"][0]["documentType"] == "PillarPage"

    async def test_link_health(self, async_client: AsyncClient, catalog, db_session) -> None:
        await db_session.commit()

        response = await async_client.get("/api/v1/seo/health-check")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "issues": [], "checkedPages": 1}
