"""Tests for LinkInjector.

Tests cover:
- inject_rule_based: anchor found in paragraph -> wrapped in <a>
- inject_rule_based: case-insensitive match preserves original casing
- inject_rule_based: text inside links, headings and list items is skipped
- inject_rule_based: density limit (2 links/paragraph) -> next paragraph
- append_fallback_paragraph: inserted at the end of the first section
- link_post: product anchor, then pillar title, then fallback paragraph
- link_post: no paragraph or already linked -> None
"""

import pytest

from content_clusters.services.link_injection import (
    FALLBACK_LEAD_TEXT,
    LinkInjector,
    LinkTarget,
)

SIMPLE_HTML = (
    "<h2>Agendas</h2>"
    "<p>Una agenda personalizada organiza tu semana.</p>"
    "<p>Elige papel de calidad para tu libreta kraft.</p>"
)

HTML_AT_DENSITY_LIMIT = (
    "<p>Mira <a href='/a'>esto</a> y <a href='/b'>aquello</a> con tu libreta kraft.</p>"
    "<p>Una libreta kraft dura años.</p>"
)

PILLAR = LinkTarget(anchor_text="Regalos Empresariales", url="/pillar/regalos-empresariales")


@pytest.fixture
def injector() -> LinkInjector:
    return LinkInjector()


class TestInjectRuleBased:
    def test_anchor_found_wraps_in_link(self, injector: LinkInjector) -> None:
        html, p_idx = injector.inject_rule_based(
            SIMPLE_HTML, "libreta kraft", "/productos/detail/libreta-kraft"
        )
        assert p_idx == 1
        assert '<a href="/productos/detail/libreta-kraft">libreta kraft</a>' in html
        assert "<h2>Agendas</h2>" in html

    def test_case_insensitive_preserves_casing(self, injector: LinkInjector) -> None:
        html, p_idx = injector.inject_rule_based(
            SIMPLE_HTML, "Agenda Personalizada", "/productos/detail/agenda"
        )
        assert p_idx == 0
        assert '<a href="/productos/detail/agenda">agenda personalizada</a>' in html

    def test_not_found_returns_original(self, injector: LinkInjector) -> None:
        html, p_idx = injector.inject_rule_based(SIMPLE_HTML, "bolígrafo", "/x")
        assert p_idx is None
        assert html == SIMPLE_HTML

    def test_word_boundary(self, injector: LinkInjector) -> None:
        html, p_idx = injector.inject_rule_based(
            "<p>Las agendas personalizadas.</p>", "agenda", "/x"
        )
        assert p_idx is None

    @pytest.mark.parametrize(
        "html",
        [
            "<p>Ver <a href='/y'>libreta kraft</a> hoy.</p>",
            "<h2>libreta kraft</h2>",
            "<ul><li><p>libreta kraft</p></li></ul>",
        ],
    )
    def test_forbidden_contexts_skipped(self, injector: LinkInjector, html: str) -> None:
        _, p_idx = injector.inject_rule_based(html, "libreta kraft", "/x")
        assert p_idx is None

    def test_density_limit_moves_to_next_paragraph(self, injector: LinkInjector) -> None:
        html, p_idx = injector.inject_rule_based(HTML_AT_DENSITY_LIMIT, "libreta kraft", "/k")
        assert p_idx == 1
        assert '<a href="/k">libreta kraft</a> dura' in html


class TestAppendFallbackParagraph:
    def test_inserted_before_next_section(self, injector: LinkInjector) -> None:
        html = "<p>Uno.</p><p>Dos.</p><h2>Otra sección</h2><p>Tres.</p>"

        new_html, p_idx = injector.append_fallback_paragraph(html, "Guía", "/pillar/guia")

        assert p_idx == 2
        assert new_html == (
            "<p>Uno.</p><p>Dos.</p>"
            f'<p>{FALLBACK_LEAD_TEXT}<a href="/pillar/guia">Guía</a>.</p>'
            "<h2>Otra sección</h2><p>Tres.</p>"
        )

    def test_no_paragraphs(self, injector: LinkInjector) -> None:
        assert injector.append_fallback_paragraph("<h2>Solo</h2>", "Guía", "/g") == (
            "<h2>Solo</h2>",
            None,
        )


class TestLinkPost:
    def test_product_anchor_preferred(self, injector: LinkInjector) -> None:
        insertion = injector.link_post(
            SIMPLE_HTML,
            [LinkTarget("Libreta Kraft", "/productos/detail/libreta-kraft")],
            PILLAR,
        )
        assert insertion is not None
        assert insertion.kind == "product"
        assert insertion.paragraph_index == 1

    def test_pillar_title_anchor(self, injector: LinkInjector) -> None:
        html = "<p>Nuestros regalos empresariales llegan a todo el país.</p>"
        insertion = injector.link_post(html, [LinkTarget("Bolígrafo", "/b")], PILLAR)

        assert insertion is not None
        assert insertion.kind == "pillar_title"
        assert f'<a href="{PILLAR.url}">regalos empresariales</a>' in insertion.html

    def test_fallback_paragraph(self, injector: LinkInjector) -> None:
        insertion = injector.link_post(SIMPLE_HTML, [], PILLAR)

        assert insertion is not None
        assert insertion.kind == "fallback"
        assert insertion.html.count(PILLAR.url) == 1
        # Original text is kept verbatim
        assert "<p>Una agenda personalizada organiza tu semana.</p>" in insertion.html

    def test_no_paragraph_returns_none(self, injector: LinkInjector) -> None:
        assert injector.link_post("<h2>Solo titular</h2>", [], PILLAR) is None

    def test_already_linked_returns_none(self, injector: LinkInjector) -> None:
        html = f'<p>Lee la <a href="{PILLAR.url}">guía</a>.</p>'
        assert injector.link_post(html, [], PILLAR) is None
