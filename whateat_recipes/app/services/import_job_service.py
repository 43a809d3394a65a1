import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from whateat_recipes.app.core.config import get_settings
from whateat_recipes.app.core.errors import BadRequestError
from whateat_recipes.app.db import models
from whateat_recipes.app.schemas.envelope import RecipeEnvelope
from whateat_recipes.app.services import url_recipe_parser
from whateat_recipes.app.services.llm_client import StructuredLLMClient
from whateat_recipes.app.services.recipes_service import create_recipe_from_envelope

logger = logging.getLogger(__name__)

JOB_LIST_LIMIT = 50


def create_job(
    db: Session,
    user_id: str,
    job_type: str = models.ImportJobType.URL.value,
    input_url: Optional[str] = None,
    input_image_path: Optional[str] = None,
) -> models.ImportJob:
    job = models.ImportJob(
        user_id=str(user_id),
        type=job_type,
        status=models.ImportJobStatus.PENDING.value,
        input_url=input_url,
        input_image_path=input_image_path,
        retries=0,
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


def get_job_for_user(db: Session, job_id: str, user_id: str) -> Optional[models.ImportJob]:
    stmt = select(models.ImportJob).where(models.ImportJob.id == job_id, models.ImportJob.user_id == str(user_id))
    return db.scalars(stmt).first()


def list_jobs_for_user(db: Session, user_id: str, limit: int = JOB_LIST_LIMIT) -> List[models.ImportJob]:
    stmt = (
        select(models.ImportJob)
        .where(models.ImportJob.user_id == str(user_id))
        .order_by(models.ImportJob.created_at.desc())
        .limit(limit)
    )
    return list(db.scalars(stmt))


def fetch_next_pending(db: Session) -> Optional[models.ImportJob]:
    stmt = (
        select(models.ImportJob)
        .where(models.ImportJob.status == models.ImportJobStatus.PENDING.value)
        .order_by(models.ImportJob.created_at.asc())
        .limit(1)
    )
    return db.scalars(stmt).first()


def mark_processing(db: Session, job: models.ImportJob) -> None:
    job.status = models.ImportJobStatus.PROCESSING.value
    job.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(job)


def mark_completed(db: Session, job: models.ImportJob, recipe_id: str) -> None:
    job.status = models.ImportJobStatus.COMPLETED.value
    job.result_recipe_id = recipe_id
    job.error_message = None
    db.commit()
    db.refresh(job)


def mark_failed_attempt(db: Session, job: models.ImportJob, error_message: str, max_retries: int) -> None:
    """Count a failed attempt; the job goes back to pending until ``max_retries`` is reached."""
    job.retries = (job.retries or 0) + 1
    job.error_message = error_message
    if job.retries < max_retries:
        job.status = models.ImportJobStatus.PENDING.value
        logger.warning("Import job %s failed (attempt %d), will retry: %s", job.id, job.retries, error_message)
    else:
        job.status = models.ImportJobStatus.FAILED.value
        logger.error("Import job %s failed permanently: %s", job.id, error_message)
    db.commit()
    db.refresh(job)


async def extract_from_image(image_path: str) -> RecipeEnvelope:
    raise BadRequestError("Image extraction is not supported yet", code="IMAGE_IMPORT_UNAVAILABLE")


async def _extract_envelope(job: models.ImportJob, llm_client: Optional[StructuredLLMClient]) -> RecipeEnvelope:
    if job.type == models.ImportJobType.URL.value and job.input_url:
        preview = await url_recipe_parser.extract_recipe_from_url(job.input_url, llm_client=llm_client)
        return preview.envelope
    if job.type == models.ImportJobType.IMAGE.value and job.input_image_path:
        return await extract_from_image(job.input_image_path)
    raise ValueError("Invalid job type or missing input")


async def process_import_job(
    db: Session,
    job: models.ImportJob,
    llm_client: Optional[StructuredLLMClient] = None,
    max_retries: Optional[int] = None,
) -> models.ImportJob:
    if max_retries is None:
        max_retries = get_settings().import_job_max_retries

    mark_processing(db, job)
    try:
        envelope = await _extract_envelope(job, llm_client)
        recipe = create_recipe_from_envelope(db, envelope, job.user_id)
    except Exception as exc:  # noqa: BLE001
        db.rollback()
        mark_failed_attempt(db, job, str(exc) or "Unknown error", max_retries)
        return job

    mark_completed(db, job, recipe.id)
    logger.info("Import job %s completed with recipe %s", job.id, recipe.id)
    return job
