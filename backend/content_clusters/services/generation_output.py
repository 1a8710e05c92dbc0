"""Parsing of free-form text-generation output into typed payloads.

Generated text is untrusted: it is validated here, at the boundary, and
turned into either a typed payload or a `ParseFailure`. Nothing downstream
inspects raw model output.
"""

import json
from dataclasses import dataclass
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from content_clusters.core.logging import get_logger

logger = get_logger(__name__)

RAW_EXCERPT_LENGTH = 200


class StrategyCandidate(BaseModel):
    """One strategy proposal as returned by the model."""

    model_config = ConfigDict(extra="ignore")

    topic: str = Field(..., min_length=1)
    target_keywords: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("targetKeywords", "target_keywords"),
    )
    suggested_title: str = Field(
        default="",
        validation_alias=AliasChoices("suggestedTitle", "suggested_title"),
    )
    rationale: str | None = None
    related_products: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices(
            "relatedProducts", "relatedProductNames", "related_products"
        ),
    )
    related_posts: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("relatedPosts", "relatedPostTitles", "related_posts"),
    )
    suggested_posts: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("suggestedPosts", "suggested_posts"),
    )


class PillarDraftPayload(BaseModel):
    """Pillar page draft as returned by the model."""

    model_config = ConfigDict(extra="ignore")

    title: str = ""
    seo_description: str = Field(
        default="",
        validation_alias=AliasChoices("seoDescription", "seo_description"),
    )
    body: str = Field(..., min_length=1)


@dataclass
class ParsedStrategies:
    candidates: list[StrategyCandidate]


@dataclass
class ParsedPillarDraft:
    draft: PillarDraftPayload


@dataclass
class ParseFailure:
    reason: str
    raw_excerpt: str


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences (```json ... ```) around a payload."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        cleaned = "\n".join(
            line for line in lines if not line.strip().startswith("```")
        ).strip()
    if cleaned.startswith("json"):
        cleaned = cleaned[4:].strip()
    return cleaned


def _load_json(text: str) -> tuple[Any, str | None]:
    try:
        return json.loads(strip_code_fences(text)), None
    except json.JSONDecodeError as e:
        return None, f"Response is not valid JSON: {e.msg}"


def parse_strategy_response(text: str) -> ParsedStrategies | ParseFailure:
    """Parse `{"strategies": [...]}` or a bare JSON array of strategies.

    An empty list is a valid result.
    """
    excerpt = text[:RAW_EXCERPT_LENGTH]
    payload, error = _load_json(text)
    if error:
        return ParseFailure(reason=error, raw_excerpt=excerpt)

    if isinstance(payload, dict):
        payload = payload.get("strategies")
    if not isinstance(payload, list):
        return ParseFailure(
            reason="Expected a JSON array of strategies or an object with a 'strategies' array",
            raw_excerpt=excerpt,
        )

    candidates: list[StrategyCandidate] = []
    for idx, item in enumerate(payload):
        try:
            candidates.append(StrategyCandidate.model_validate(item))
        except ValidationError as e:
            return ParseFailure(
                reason=f"Strategy {idx} is malformed: {e.error_count()} validation error(s)",
                raw_excerpt=excerpt,
            )
    return ParsedStrategies(candidates=candidates)


def parse_pillar_draft(text: str) -> ParsedPillarDraft | ParseFailure:
    """Parse a `{title, seoDescription, body}` pillar draft."""
    excerpt = text[:RAW_EXCERPT_LENGTH]
    payload, error = _load_json(text)
    if error:
        return ParseFailure(reason=error, raw_excerpt=excerpt)
    try:
        return ParsedPillarDraft(draft=PillarDraftPayload.model_validate(payload))
    except ValidationError as e:
        return ParseFailure(
            reason=f"Pillar draft is malformed: {e.error_count()} validation error(s)",
            raw_excerpt=excerpt,
        )
