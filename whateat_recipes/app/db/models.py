import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from whateat_recipes.app.db.base import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class SourceType(str, enum.Enum):
    MANUAL = "manual"
    URL = "url"
    IMAGE = "image"
    AI = "ai"


class ImportJobType(str, enum.Enum):
    URL = "url"
    IMAGE = "image"


class ImportJobStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Recipe(Base):
    __tablename__ = "recipes"

    id = Column(String, primary_key=True, default=_uuid)
    # NULL user_id marks a global (feed) recipe
    user_id = Column(String, nullable=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text)
    servings = Column(Integer)
    calories = Column(Integer)
    prep_time_minutes = Column(Integer)
    cook_time_minutes = Column(Integer)
    tags = Column(JSON, nullable=False, default=list)
    cuisine = Column(String)
    dietary_labels = Column(JSON, nullable=False, default=list)
    source_type = Column(String, nullable=False, default=SourceType.MANUAL.value)
    source_url = Column(String)
    metadata_json = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    ingredients = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeIngredient.position",
    )
    steps = relationship(
        "RecipeStep",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeStep.position",
    )
    media = relationship(
        "RecipeMedia",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeMedia.position",
    )


class RecipeIngredient(Base):
    __tablename__ = "recipe_ingredients"

    id = Column(String, primary_key=True, default=_uuid)
    recipe_id = Column(String, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    raw_text = Column(Text, nullable=False)

    recipe = relationship("Recipe", back_populates="ingredients")


class RecipeStep(Base):
    __tablename__ = "recipe_steps"
    __table_args__ = (UniqueConstraint("recipe_id", "position", name="uq_recipe_step_position"),)

    id = Column(String, primary_key=True, default=_uuid)
    recipe_id = Column(String, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    instruction = Column(Text, nullable=False)

    recipe = relationship("Recipe", back_populates="steps")


class RecipeMedia(Base):
    __tablename__ = "recipe_media"

    id = Column(String, primary_key=True, default=_uuid)
    recipe_id = Column(String, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    media_type = Column(String, nullable=False)
    url = Column(Text, nullable=False)
    name = Column(String)
    is_generated = Column(Boolean, nullable=False, default=False)

    recipe = relationship("Recipe", back_populates="media")


class ImportJob(Base):
    __tablename__ = "import_jobs"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, nullable=False, index=True)
    type = Column(String, nullable=False)  # "url" or "image"
    status = Column(String, nullable=False, default=ImportJobStatus.PENDING.value)
    input_url = Column(Text)
    input_image_path = Column(Text)
    result_recipe_id = Column(String, ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True)
    error_message = Column(Text)
    retries = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, server_default=func.now())
    updated_at = Column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow, server_default=func.now()
    )

    __table_args__ = (Index("ix_import_jobs_status_created", "status", "created_at"),)


class UsageCounter(Base):
    __tablename__ = "usage_counters"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_usage_counter_user_date"),)

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)
    imports_count = Column(Integer, nullable=False, default=0)
    ai_generations_count = Column(Integer, nullable=False, default=0)
