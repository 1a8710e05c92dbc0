"""Tests for StrategyGenerator.

Tests cover:
- Candidates are persisted as `proposed` with resolved product/post ids
- Unknown references are dropped
- Grounding context lists ranked catalog items
- Empty topic/description rejected before any generation call
- Unparseable output raises GenerationParseError and persists nothing
- Text generation failures propagate
"""

import json

import pytest

from content_clusters.core.errors import GenerationParseError, StrategyValidationError
from content_clusters.integrations.claude import TextGenerationError
from content_clusters.models import StrategyStatus
from content_clusters.services.strategy_generator import StrategyGenerator


@pytest.fixture
def generator(text_generator, content_repo, strategy_repo) -> StrategyGenerator:
    return StrategyGenerator(text_generator, content_repo, strategy_repo)


def _response(*strategies: dict) -> str:
    return json.dumps({"strategies": list(strategies)})


class TestGenerateStrategies:
    async def test_persists_proposed_strategies(
        self, generator, text_generator, catalog, strategy_repo
    ) -> None:
        kit = catalog.products["kit-regalo-corporativo"]
        post = catalog.posts["ideas-regalos-equipo"]
        text_generator.queue(
            _response(
                {
                    "topic": "Regalos Empresariales",
                    "targetKeywords": ["regalos empresariales"],
                    "suggestedTitle": "Regalos Empresariales: guía 2026",
                    "relatedProducts": [kit.id, "Libreta Kraft"],
                    "relatedPosts": [post.title],
                    "suggestedPosts": ["Regalos para clientes VIP"],
                }
            )
        )

        strategies = await generator.generate_strategies(
            "Regalos empresariales", "Regalos para equipos y clientes"
        )

        assert len(strategies) == 1
        strategy = strategies[0]
        assert strategy.status == StrategyStatus.PROPOSED.value
        assert strategy.related_products == [
            kit.id,
            catalog.products["libreta-kraft"].id,
        ]
        assert strategy.related_posts == [post.id]
        assert strategy.suggested_posts == ["Regalos para clientes VIP"]
        assert await strategy_repo.get_by_id(strategy.id) is strategy

    async def test_unknown_references_dropped(
        self, generator, text_generator, catalog
    ) -> None:
        text_generator.queue(
            _response(
                {
                    "topic": "Libretas",
                    "relatedProducts": ["Producto Inventado"],
                    "relatedPosts": ["00000000-0000-0000-0000-000000000000"],
                }
            )
        )

        strategies = await generator.generate_strategies("Libretas", "Libretas de papel")

        assert strategies[0].related_products == []
        assert strategies[0].related_posts == []
        assert strategies[0].suggested_title == "Libretas"

    async def test_grounding_context_lists_catalog(
        self, generator, text_generator, catalog
    ) -> None:
        text_generator.queue(_response())

        await generator.generate_strategies("Agendas 2026", "Planificación anual")

        prompt, grounding = text_generator.calls[0]
        assert "TOPIC: Agendas 2026" in prompt
        products_section = grounding.split("BLOG POSTS")[0]
        # Most relevant product first
        first_line = products_section.splitlines()[1]
        assert "Agenda Personalizada 2026" in first_line
        assert "EXISTING PILLAR PAGES" in grounding

    async def test_empty_result_is_valid(self, generator, text_generator, catalog) -> None:
        text_generator.queue(_response())
        assert await generator.generate_strategies("Agendas", "Agendas") == []

    @pytest.mark.parametrize(
        "topic,description,field",
        [("", "desc", "topic"), ("   ", "desc", "topic"), ("Agendas", "", "description")],
    )
    async def test_rejects_empty_inputs(
        self, generator, text_generator, topic, description, field
    ) -> None:
        with pytest.raises(StrategyValidationError) as exc_info:
            await generator.generate_strategies(topic, description)

        assert exc_info.value.field == field
        assert text_generator.calls == []

    async def test_parse_failure_persists_nothing(
        self, generator, text_generator, catalog, strategy_repo
    ) -> None:
        text_generator.queue("Claro, aquí tienes algunas ideas...")

        with pytest.raises(GenerationParseError):
            await generator.generate_strategies("Agendas", "Agendas anuales")

        assert await strategy_repo.list_all() == []

    async def test_generation_failure_propagates(
        self, generator, text_generator, catalog
    ) -> None:
        text_generator.queue(TextGenerationError("Rate limit exceeded", status_code=429))

        with pytest.raises(TextGenerationError):
            await generator.generate_strategies("Agendas", "Agendas anuales")
