"""LLM-based recipe extraction, used only after every deterministic tier fails."""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from whateat_recipes.app.core.vocabulary import (
    CANONICAL_CUISINES,
    CANONICAL_DIETARY_LABELS,
    CANONICAL_RECIPE_TAGS,
    normalize_cuisine,
    normalize_dietary_labels,
    normalize_recipe_tags,
)
from whateat_recipes.app.schemas.envelope import AIRecipeOutput
from whateat_recipes.app.services.llm_client import LLMProviderError, StructuredLLMClient
from whateat_recipes.app.services.url_parsing.envelope_builder import build_envelope_attempt
from whateat_recipes.app.services.url_parsing.models import AIFallbackAttempt, PartialRecipeData
from whateat_recipes.app.services.url_parsing.parsing_utils import hostname_of, html_to_text

logger = logging.getLogger(__name__)

MAX_AI_TEXT_CHARS = 20_000
SCHEMA_NAME = "recipe"

SYSTEM_PROMPT = "You extract one recipe from provided webpage content and output JSON only."

RECIPE_JSON_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "description": {"type": ["string", "null"]},
        "servings": {"type": ["integer", "null"]},
        "calories": {"type": ["integer", "null"]},
        "prep_time_minutes": {"type": ["integer", "null"]},
        "cook_time_minutes": {"type": ["integer", "null"]},
        "tags": {"type": ["array", "null"], "items": {"type": "string", "enum": list(CANONICAL_RECIPE_TAGS)}},
        "cuisine": {"type": ["string", "null"], "enum": [*CANONICAL_CUISINES, None]},
        "dietary_labels": {
            "type": ["array", "null"],
            "items": {"type": "string", "enum": list(CANONICAL_DIETARY_LABELS)},
        },
        "ingredients": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {"raw_text": {"type": "string"}},
                "required": ["raw_text"],
                "additionalProperties": False,
            },
        },
        "steps": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {"instruction": {"type": "string"}},
                "required": ["instruction"],
                "additionalProperties": False,
            },
        },
    },
    "required": [
        "title",
        "description",
        "servings",
        "calories",
        "prep_time_minutes",
        "cook_time_minutes",
        "tags",
        "cuisine",
        "dietary_labels",
        "ingredients",
        "steps",
    ],
    "additionalProperties": False,
}


def build_user_prompt(text: str, source_url: str) -> str:
    return (
        "Hard requirements:\n"
        "- Title, ingredients, and steps MUST be grounded in the page content.\n"
        "- Do NOT invent ingredients or steps that are not present.\n\n"
        "Soft requirements (may estimate if missing):\n"
        "- description, servings, calories, prep_time_minutes, cook_time_minutes, tags, cuisine, dietary_labels.\n"
        f"- tags must use this exact list: {', '.join(CANONICAL_RECIPE_TAGS)}\n"
        f"- dietary_labels must use this exact list: {', '.join(CANONICAL_DIETARY_LABELS)}\n"
        f"- cuisine must use this exact list: {', '.join(CANONICAL_CUISINES)}\n"
        "- If unknown, estimate conservatively using typical values; if truly impossible, "
        "use null (or empty arrays for tags/dietary_labels).\n\n"
        "Image is optional and should NOT be output.\n\n"
        "Normalization:\n"
        "- Times -> integer minutes\n"
        "- Calories -> per-serving integer\n"
        "- Keep ingredient/step order from the page\n"
        "- Ignore ads/nav/comments\n"
        '- If no recipe exists, return empty ingredients/steps and title "Unknown Recipe"\n\n'
        "Extract a single recipe from this webpage.\n\n"
        f"URL: {source_url}\n\n"
        f"CONTENT:\n{text}"
    )


def build_text_for_ai(html: str, text_override: Optional[str] = None) -> str:
    text = text_override if text_override is not None else html_to_text(html)
    text = (text or "").strip()
    return text[:MAX_AI_TEXT_CHARS]


def _non_negative(value: Optional[int]) -> Optional[int]:
    return value if value is not None and value >= 0 else None


def _raw_items(items, key: str):
    values = []
    for item in items or []:
        if isinstance(item, dict):
            values.append(str(item.get(key) or ""))
        elif isinstance(item, str):
            values.append(item)
    return values


def _to_partial(output: AIRecipeOutput, source_url: str) -> PartialRecipeData:
    return PartialRecipeData(
        title=output.title,
        description=output.description,
        servings=_non_negative(output.servings),
        calories=_non_negative(output.calories),
        prep_time_minutes=_non_negative(output.prep_time_minutes),
        cook_time_minutes=_non_negative(output.cook_time_minutes),
        tags=normalize_recipe_tags(output.tags),
        cuisine=normalize_cuisine(output.cuisine),
        dietary_labels=normalize_dietary_labels(output.dietary_labels),
        ingredients=[item for item in output.ingredients if item.strip()],
        steps=[item for item in output.steps if item.strip()],
        attribution=hostname_of(source_url),
    )


def parse_ai_output(payload: Dict[str, Any]) -> AIRecipeOutput:
    """Validate the model response; ingredient/step objects are flattened to text."""
    data = dict(payload)
    data["ingredients"] = _raw_items(data.get("ingredients"), "raw_text")
    data["steps"] = _raw_items(data.get("steps"), "instruction")
    data["tags"] = data.get("tags") or []
    data["dietary_labels"] = data.get("dietary_labels") or []
    return AIRecipeOutput.model_validate(data)


async def extract_recipe_via_llm(
    html: str,
    source_url: str,
    text_override: Optional[str] = None,
    llm_client: Optional[StructuredLLMClient] = None,
) -> AIFallbackAttempt:
    if llm_client is None:
        return AIFallbackAttempt(attempted=False, failed=False)

    text = build_text_for_ai(html, text_override)
    if not text:
        return AIFallbackAttempt(attempted=False, failed=False)

    try:
        payload = await llm_client.generate_structured(
            SYSTEM_PROMPT,
            build_user_prompt(text, source_url),
            SCHEMA_NAME,
            RECIPE_JSON_SCHEMA,
        )
        output = parse_ai_output(payload)
    except LLMProviderError as exc:
        logger.warning(
            "AI extraction failed for %s (model=%s): %s",
            source_url,
            getattr(llm_client, "model", None),
            exc.details(),
        )
        return AIFallbackAttempt(attempted=True, failed=True)
    except (ValidationError, ValueError, TypeError) as exc:
        logger.warning("AI extraction returned unusable output for %s: %s", source_url, exc)
        return AIFallbackAttempt(attempted=True, failed=True)
    except Exception as exc:  # noqa: BLE001
        logger.warning("AI extraction failed for %s: %s", source_url, exc)
        return AIFallbackAttempt(attempted=True, failed=True)

    logger.info(
        "AI extractor parsed recipe for %s: ingredients=%d steps=%d",
        source_url,
        len(output.ingredients),
        len(output.steps),
    )
    attempt = build_envelope_attempt(_to_partial(output, source_url), source_url)
    return AIFallbackAttempt(
        envelope=attempt.envelope,
        missing_fields=attempt.missing_fields,
        attempted=True,
        failed=attempt.envelope is None,
    )
