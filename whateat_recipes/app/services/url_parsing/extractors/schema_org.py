"""Schema.org JSON-LD recipe extraction."""

import json
import logging
import re
from typing import Any, List, Optional

from bs4 import BeautifulSoup

from whateat_recipes.app.services.url_parsing.envelope_builder import (
    build_envelope_attempt,
    build_missing_fields,
)
from whateat_recipes.app.services.url_parsing.models import (
    ExtractionAttempt,
    PartialMedia,
    PartialRecipeData,
)
from whateat_recipes.app.services.url_parsing.parsing_utils import (
    parse_calories,
    parse_duration_minutes,
    parse_servings,
    split_instructions,
    truncate,
)

logger = logging.getLogger(__name__)

IMPORTED_IMAGE_NAME = "Imported image"


def _safe_json_loads(raw: str) -> Any:
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, ValueError):
        return None


def _as_string(value) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _first_string(*values) -> Optional[str]:
    for value in values:
        text = _as_string(value)
        if text:
            return text
    return None


def _as_list(value) -> list:
    if not value:
        return []
    return value if isinstance(value, list) else [value]


def collect_jsonld_nodes(payload) -> List[dict]:
    """Flatten arrays and expand ``@graph`` containers; the container stays a candidate."""
    if isinstance(payload, list):
        nodes: List[dict] = []
        for item in payload:
            nodes.extend(collect_jsonld_nodes(item))
        return nodes
    if not isinstance(payload, dict):
        return []
    graph = payload.get("@graph")
    if graph:
        return [payload, *collect_jsonld_nodes(graph)]
    return [payload]


def is_recipe_type(value: str) -> bool:
    normalized = str(value).lower()
    return normalized == "recipe" or normalized.endswith(":recipe") or normalized.endswith("/recipe")


def extract_instructions(value) -> List[str]:
    """Flatten recipeInstructions (strings, HowToStep, HowToSection, nested lists) into steps."""
    if not value:
        return []
    if isinstance(value, str):
        return split_instructions(value)
    if isinstance(value, list):
        steps: List[str] = []
        for item in value:
            steps.extend(extract_instructions(item))
        return steps
    if isinstance(value, dict):
        if value.get("itemListElement"):
            return extract_instructions(value["itemListElement"])
        if value.get("text"):
            return split_instructions(str(value["text"]))
        if value.get("name"):
            return split_instructions(str(value["name"]))
        if value.get("steps"):
            return extract_instructions(value["steps"])
    return []


def normalize_string_list(value) -> List[str]:
    if not value:
        return []
    if isinstance(value, list):
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]
    if isinstance(value, str):
        return [item.strip() for item in re.split(r"\r?\n+", value) if item.strip()]
    return []


def collect_tag_candidates(keywords, categories) -> List[str]:
    keyword_list = normalize_string_list(keywords)
    if len(keyword_list) == 1 and "," in keyword_list[0]:
        keyword_list = [item.strip() for item in keyword_list[0].split(",")]
    tags = dict.fromkeys(item for item in keyword_list + normalize_string_list(categories) if item)
    return [truncate(tag, 50) for tag in tags]


def extract_image_url(value) -> Optional[str]:
    if not value:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        for item in value:
            if isinstance(item, str):
                return item
        for item in value:
            if isinstance(item, dict):
                return extract_image_url(item)
        return None
    if isinstance(value, dict):
        if value.get("url"):
            return str(value["url"])
        if value.get("@id"):
            return str(value["@id"])
    return None


def extract_name(value) -> Optional[str]:
    if not value:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return extract_name(value[0])
    if isinstance(value, dict) and value.get("name"):
        return str(value["name"])
    return None


def normalize_jsonld_recipe(node: dict) -> PartialRecipeData:
    nutrition = node.get("nutrition") if isinstance(node.get("nutrition"), dict) else {}
    image_url = extract_image_url(node.get("image") or node.get("thumbnailUrl"))
    author_name = extract_name(node.get("author"))
    publisher_name = extract_name(node.get("publisher"))

    return PartialRecipeData(
        title=_first_string(node.get("name"), node.get("headline")),
        description=_as_string(node.get("description")),
        servings=parse_servings(node.get("recipeYield")),
        calories=parse_calories(nutrition.get("calories")),
        prep_time_minutes=parse_duration_minutes(node.get("prepTime")),
        cook_time_minutes=parse_duration_minutes(node.get("cookTime")),
        tags=collect_tag_candidates(node.get("keywords"), node.get("recipeCategory")),
        cuisine=_first_string(node.get("recipeCuisine"), node.get("cuisine")),
        dietary_labels=[str(item) for item in _as_list(node.get("suitableForDiet"))],
        ingredients=normalize_string_list(node.get("recipeIngredient") or node.get("ingredients")),
        steps=extract_instructions(node.get("recipeInstructions")),
        media=[PartialMedia(media_type="image", url=image_url, name=IMPORTED_IMAGE_NAME)] if image_url else [],
        author_name=author_name,
        attribution=publisher_name or author_name,
    )


def _jsonld_documents(html: str, content_type: Optional[str]) -> List[Any]:
    if content_type and "json" in content_type.lower():
        parsed = _safe_json_loads(html)
        return [parsed] if parsed is not None else []

    soup = BeautifulSoup(html, "lxml")
    documents = []
    for idx, script in enumerate(soup.find_all("script", attrs={"type": re.compile(r"application/ld\+json", re.I)})):
        raw = (script.string or script.get_text() or "").replace("<!--", "").replace("-->", "").strip()
        if not raw:
            continue
        parsed = _safe_json_loads(raw)
        if parsed is None:
            logger.debug("JSON-LD block %d failed to parse (first 200 chars: %s)", idx, raw[:200])
            continue
        documents.append(parsed)
    return documents


def extract_recipe_from_schema_org(html: str, source_url: str, content_type: Optional[str] = None) -> ExtractionAttempt:
    """Extract a recipe from schema.org JSON-LD embedded in HTML (or served as JSON)."""
    recipes: List[PartialRecipeData] = []
    for document in _jsonld_documents(html, content_type):
        for node in collect_jsonld_nodes(document):
            if any(is_recipe_type(value) for value in _as_list(node.get("@type"))):
                recipes.append(normalize_jsonld_recipe(node))

    logger.info("Found %d JSON-LD recipe nodes for %s", len(recipes), source_url)
    for recipe in recipes:
        attempt = build_envelope_attempt(recipe, source_url)
        if attempt.envelope:
            return attempt

    if recipes:
        missing = build_missing_fields(recipes[0])
        return ExtractionAttempt(missing_fields=missing or None)
    return ExtractionAttempt()
