"""Tests for the pillar page link health checker."""

import pytest

from content_clusters.models import PillarPage, PillarPageStatus
from content_clusters.repositories.content import PillarPageRecord
from content_clusters.services.link_health import (
    LinkHealthChecker,
    referenced_product_slugs,
)


@pytest.fixture
def checker(content_repo) -> LinkHealthChecker:
    return LinkHealthChecker(content_repo)


def test_referenced_slugs_are_deduplicated() -> None:
    page = PillarPageRecord(
        id="p1",
        slug="guia",
        title="Guía",
        body="{{PRODUCT_CARD:b}} {{PRODUCT_CARD:a}} {{PRODUCT_CARD:b}}",
        linked_product_slugs=["a"],
    )
    assert referenced_product_slugs(page) == ["a", "b"]


class TestHealthCheck:
    async def test_healthy_catalog(self, checker, catalog) -> None:
        report = await checker.health_check()

        assert report.status == "healthy"
        assert report.issues == []
        assert report.checked_pages == 1

    async def test_one_issue_per_broken_reference(
        self, checker, catalog, db_session
    ) -> None:
        db_session.add_all(
            [
                PillarPage(
                    slug="libretas-ecologicas",
                    title="Libretas ecológicas",
                    body=(
                        "<p>{{PRODUCT_CARD:libreta-kraft}}</p>"
                        "<p>{{PRODUCT_CARD:libreta-descatalogada}}</p>"
                    ),
                    linked_product_slugs=["libreta-kraft", "libreta-descatalogada"],
                    status=PillarPageStatus.PUBLISHED.value,
                ),
                PillarPage(
                    slug="borrador",
                    title="Borrador",
                    body="<p>{{PRODUCT_CARD:no-existe}}</p>",
                    status=PillarPageStatus.DRAFT.value,
                ),
            ]
        )
        await db_session.flush()

        report = await checker.health_check()

        assert report.status == "warning"
        assert len(report.issues) == 1
        issue = report.issues[0]
        assert issue.pillar_slug == "libretas-ecologicas"
        assert issue.pillar_title == "Libretas ecológicas"
        assert issue.broken_product_slug == "libreta-descatalogada"
        assert report.checked_pages == 2
