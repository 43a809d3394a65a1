import logging
from typing import List
from urllib.parse import urljoin

from pydantic import ValidationError

from whateat_recipes.app.core.vocabulary import (
    normalize_cuisine,
    normalize_dietary_labels,
    normalize_recipe_tags,
)
from whateat_recipes.app.schemas.envelope import RecipeEnvelope
from whateat_recipes.app.services.url_parsing.models import (
    ExtractionAttempt,
    PartialMedia,
    PartialRecipeData,
)
from whateat_recipes.app.services.url_parsing.parsing_utils import hostname_of, strip_bullet, truncate

logger = logging.getLogger(__name__)


def build_missing_fields(data: PartialRecipeData) -> List[str]:
    missing: List[str] = []
    if not data.title or not data.title.strip():
        missing.append("title")
    if not data.ingredients:
        missing.append("ingredients")
    if not data.steps:
        missing.append("steps")
    return missing


def _clean_items(items: List[str], limit: int) -> List[str]:
    cleaned = (truncate(strip_bullet(item), limit) for item in items if item)
    return [item for item in cleaned if item]


def sanitize_recipe_data(data: PartialRecipeData, source_url: str) -> PartialRecipeData:
    media = [
        PartialMedia(media_type=item.media_type, url=urljoin(source_url, item.url), name=item.name)
        for item in data.media
        if item.url
    ]
    return PartialRecipeData(
        title=truncate(data.title.strip(), 200) if data.title else None,
        description=truncate(data.description.strip(), 2000) if data.description else None,
        servings=data.servings,
        calories=data.calories,
        prep_time_minutes=data.prep_time_minutes,
        cook_time_minutes=data.cook_time_minutes,
        tags=[truncate(tag, 50) for tag in normalize_recipe_tags(data.tags)],
        cuisine=normalize_cuisine(data.cuisine),
        dietary_labels=[truncate(label, 50) for label in normalize_dietary_labels(data.dietary_labels)],
        ingredients=_clean_items(data.ingredients, 500),
        steps=_clean_items(data.steps, 2000),
        media=media,
        author_name=truncate(data.author_name.strip(), 200) if data.author_name else None,
        attribution=truncate(data.attribution.strip(), 500) if data.attribution else None,
    )


def build_envelope_attempt(data: PartialRecipeData, source_url: str) -> ExtractionAttempt:
    """Sanitize partial data and validate it into an envelope, or report what is missing."""
    missing_fields = build_missing_fields(data)
    if missing_fields:
        return ExtractionAttempt(missing_fields=missing_fields)

    sanitized = sanitize_recipe_data(data, source_url)
    metadata = {"attribution": sanitized.attribution or hostname_of(source_url)}
    if sanitized.author_name:
        metadata["author_name"] = sanitized.author_name

    payload = {
        "format": "whatEat-recipe",
        "version": 1,
        "recipe": {
            "id": None,
            "title": sanitized.title,
            "description": sanitized.description,
            "servings": sanitized.servings,
            "calories": sanitized.calories,
            "prep_time_minutes": sanitized.prep_time_minutes,
            "cook_time_minutes": sanitized.cook_time_minutes,
            "tags": sanitized.tags,
            "cuisine": sanitized.cuisine,
            "dietary_labels": sanitized.dietary_labels,
            "source": {"type": "url", "url": source_url},
            "ingredients": [{"raw_text": item} for item in sanitized.ingredients],
            "steps": [{"instruction": item} for item in sanitized.steps],
            "media": [
                {"media_type": item.media_type, "url": item.url, "name": item.name, "is_generated": False}
                for item in sanitized.media
            ],
            "metadata": metadata,
        },
    }

    try:
        envelope = RecipeEnvelope.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Extracted recipe from %s failed schema validation: %s", source_url, exc)
        return ExtractionAttempt(missing_fields=["ingredients", "steps"])

    return ExtractionAttempt(envelope=envelope)
