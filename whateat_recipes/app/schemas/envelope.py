from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from whateat_recipes.app.core.vocabulary import (
    CANONICAL_CUISINES,
    CANONICAL_DIETARY_LABELS,
    CANONICAL_RECIPE_TAGS,
)

ENVELOPE_FORMAT = "whatEat-recipe"
ENVELOPE_VERSION = 1


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class UrlSource(_Frozen):
    type: Literal["url"] = "url"
    url: str = Field(..., min_length=1)


class ManualSource(_Frozen):
    type: Literal["manual"] = "manual"


class AISource(_Frozen):
    type: Literal["ai"] = "ai"


class ImageSource(_Frozen):
    type: Literal["image"] = "image"
    image_path: Optional[str] = None


RecipeSource = Annotated[
    Union[UrlSource, ManualSource, AISource, ImageSource],
    Field(discriminator="type"),
]


class EnvelopeIngredient(_Frozen):
    raw_text: str = Field(..., min_length=1, max_length=500)


class EnvelopeStep(_Frozen):
    instruction: str = Field(..., min_length=1, max_length=2000)


class EnvelopeMedia(_Frozen):
    media_type: Literal["image", "video"] = "image"
    url: str = Field(..., min_length=1)
    name: Optional[str] = None
    is_generated: bool = False


def _dedupe(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


class EnvelopeRecipe(_Frozen):
    id: Optional[str] = None
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    servings: Optional[int] = Field(None, ge=0)
    calories: Optional[int] = Field(None, ge=0)
    prep_time_minutes: Optional[int] = Field(None, ge=0)
    cook_time_minutes: Optional[int] = Field(None, ge=0)
    tags: List[str] = Field(default_factory=list)
    cuisine: Optional[str] = None
    dietary_labels: List[str] = Field(default_factory=list)
    source: RecipeSource = Field(default_factory=ManualSource)
    ingredients: List[EnvelopeIngredient] = Field(..., min_length=1)
    steps: List[EnvelopeStep] = Field(..., min_length=1)
    media: List[EnvelopeMedia] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

    @field_validator("tags")
    @classmethod
    def tags_are_canonical(cls, value: List[str]) -> List[str]:
        unknown = [tag for tag in value if tag not in CANONICAL_RECIPE_TAGS]
        if unknown:
            raise ValueError(f"unknown tags: {', '.join(unknown)}")
        return _dedupe(value)

    @field_validator("cuisine")
    @classmethod
    def cuisine_is_canonical(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in CANONICAL_CUISINES:
            raise ValueError(f"unknown cuisine: {value}")
        return value

    @field_validator("dietary_labels")
    @classmethod
    def dietary_labels_are_canonical(cls, value: List[str]) -> List[str]:
        unknown = [label for label in value if label not in CANONICAL_DIETARY_LABELS]
        if unknown:
            raise ValueError(f"unknown dietary labels: {', '.join(unknown)}")
        return _dedupe(value)


class RecipeEnvelope(_Frozen):
    format: Literal["whatEat-recipe"] = ENVELOPE_FORMAT
    version: Literal[1] = ENVELOPE_VERSION
    recipe: EnvelopeRecipe


class AIRecipeOutput(BaseModel):
    """Shape of the structured response requested from the language model."""

    model_config = ConfigDict(extra="ignore")

    title: str
    description: Optional[str] = None
    servings: Optional[int] = None
    calories: Optional[int] = None
    prep_time_minutes: Optional[int] = None
    cook_time_minutes: Optional[int] = None
    tags: List[str] = Field(default_factory=list)
    cuisine: Optional[str] = None
    dietary_labels: List[str] = Field(default_factory=list)
    ingredients: List[str] = Field(default_factory=list)
    steps: List[str] = Field(default_factory=list)
