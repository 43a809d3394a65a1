"""Pydantic models for URL recipe parsing."""

from typing import List, Optional

from pydantic import BaseModel, Field

from whateat_recipes.app.schemas.envelope import RecipeEnvelope


class PartialMedia(BaseModel):
    media_type: str = "image"
    url: Optional[str] = None
    name: Optional[str] = None


class PartialRecipeData(BaseModel):
    """Unvalidated recipe fields collected by an extraction tier."""

    title: Optional[str] = None
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
    media: List[PartialMedia] = Field(default_factory=list)
    author_name: Optional[str] = None
    attribution: Optional[str] = None


class ExtractionAttempt(BaseModel):
    """Outcome of one tier: an envelope, the fields it could not find, or neither.

    ``text`` carries page text recovered along the way for the AI tier.
    """

    envelope: Optional[RecipeEnvelope] = None
    missing_fields: Optional[List[str]] = None
    text: Optional[str] = None


class AIFallbackAttempt(ExtractionAttempt):
    attempted: bool = False
    failed: bool = False


class FetchResult(BaseModel):
    body: str
    final_url: str
    content_type: Optional[str] = None


class ImportPreviewResult(BaseModel):
    envelope: RecipeEnvelope
    extracted_from: str
    warnings: List[str] = Field(default_factory=list)
