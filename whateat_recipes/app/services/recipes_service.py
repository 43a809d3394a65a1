from typing import Any, Dict, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from whateat_recipes.app.core.errors import NotFoundError
from whateat_recipes.app.db import models
from whateat_recipes.app.schemas.envelope import RecipeEnvelope


def _source_columns(envelope: RecipeEnvelope) -> Dict[str, Any]:
    source = envelope.recipe.source
    return {
        "source_type": source.type,
        "source_url": getattr(source, "url", None),
    }


def create_recipe_from_envelope(db: Session, envelope: RecipeEnvelope, user_id: Optional[str]) -> models.Recipe:
    """Persist ``envelope`` as a recipe owned by ``user_id`` (``None`` stores a global recipe)."""
    data = envelope.recipe
    metadata = dict(data.metadata)
    image_path = getattr(data.source, "image_path", None)
    if image_path:
        metadata["image_path"] = image_path

    recipe = models.Recipe(
        user_id=str(user_id) if user_id is not None else None,
        title=data.title,
        description=data.description,
        servings=data.servings,
        calories=data.calories,
        prep_time_minutes=data.prep_time_minutes,
        cook_time_minutes=data.cook_time_minutes,
        tags=list(data.tags),
        cuisine=data.cuisine,
        dietary_labels=list(data.dietary_labels),
        metadata_json=metadata,
        **_source_columns(envelope),
    )
    for position, ingredient in enumerate(data.ingredients):
        recipe.ingredients.append(models.RecipeIngredient(position=position, raw_text=ingredient.raw_text))
    for position, step in enumerate(data.steps):
        recipe.steps.append(models.RecipeStep(position=position, instruction=step.instruction))
    for position, media in enumerate(data.media):
        recipe.media.append(
            models.RecipeMedia(
                position=position,
                media_type=media.media_type,
                url=media.url,
                name=media.name,
                is_generated=media.is_generated,
            )
        )

    db.add(recipe)
    db.commit()
    db.refresh(recipe)
    return recipe


def get_recipe(db: Session, user_id: str, recipe_id: str) -> models.Recipe:
    stmt = select(models.Recipe).where(
        models.Recipe.id == recipe_id,
        or_(models.Recipe.user_id == str(user_id), models.Recipe.user_id.is_(None)),
    )
    recipe = db.scalars(stmt).first()
    if not recipe:
        raise NotFoundError("Recipe")
    return recipe


def _source_payload(recipe: models.Recipe) -> Dict[str, Any]:
    if recipe.source_type == models.SourceType.URL.value:
        return {"type": "url", "url": recipe.source_url}
    if recipe.source_type == models.SourceType.IMAGE.value:
        return {"type": "image", "image_path": (recipe.metadata_json or {}).get("image_path")}
    return {"type": recipe.source_type or models.SourceType.MANUAL.value}


def recipe_to_envelope(recipe: models.Recipe) -> RecipeEnvelope:
    metadata = dict(recipe.metadata_json or {})
    metadata.pop("image_path", None)
    return RecipeEnvelope.model_validate(
        {
            "recipe": {
                "id": recipe.id,
                "title": recipe.title,
                "description": recipe.description,
                "servings": recipe.servings,
                "calories": recipe.calories,
                "prep_time_minutes": recipe.prep_time_minutes,
                "cook_time_minutes": recipe.cook_time_minutes,
                "tags": recipe.tags or [],
                "cuisine": recipe.cuisine,
                "dietary_labels": recipe.dietary_labels or [],
                "source": _source_payload(recipe),
                "ingredients": [{"raw_text": item.raw_text} for item in recipe.ingredients],
                "steps": [{"instruction": step.instruction} for step in recipe.steps],
                "media": [
                    {
                        "media_type": media.media_type,
                        "url": media.url,
                        "name": media.name,
                        "is_generated": media.is_generated,
                    }
                    for media in recipe.media
                ],
                "metadata": metadata,
            }
        }
    )
