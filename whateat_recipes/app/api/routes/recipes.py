from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from whateat_recipes.app.api.deps import get_current_user, get_db_session
from whateat_recipes.app.schemas.auth import CurrentUser
from whateat_recipes.app.schemas.envelope import RecipeEnvelope
from whateat_recipes.app.services import recipes_service

router = APIRouter(prefix="/recipes", tags=["recipes"])


@router.post("", response_model=RecipeEnvelope, status_code=status.HTTP_201_CREATED)
def create_recipe(
    envelope: RecipeEnvelope,
    db: Session = Depends(get_db_session),
    current_user: CurrentUser = Depends(get_current_user),
):
    recipe = recipes_service.create_recipe_from_envelope(db, envelope, current_user.id)
    return recipes_service.recipe_to_envelope(recipe)


@router.get("/{recipe_id}", response_model=RecipeEnvelope)
def get_recipe(
    recipe_id: str,
    db: Session = Depends(get_db_session),
    current_user: CurrentUser = Depends(get_current_user),
):
    recipe = recipes_service.get_recipe(db, current_user.id, recipe_id)
    return recipes_service.recipe_to_envelope(recipe)
