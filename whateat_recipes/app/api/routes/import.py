import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from whateat_recipes.app.api.deps import get_current_user, get_db_session, get_llm_client
from whateat_recipes.app.core.errors import BadRequestError, NotFoundError, RateLimitError
from whateat_recipes.app.db.models import ImportJobType
from whateat_recipes.app.schemas.auth import CurrentUser
from whateat_recipes.app.schemas.import_job import (
    ImportJobList,
    ImportJobRead,
    ImportPreviewResponse,
    ImportUrlRequest,
)
from whateat_recipes.app.services import import_job_service, url_recipe_parser, usage_service
from whateat_recipes.app.services.llm_client import StructuredLLMClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/import", tags=["import"])


@router.post("/url", response_model=ImportPreviewResponse)
async def preview_import_from_url(
    payload: ImportUrlRequest,
    db: Session = Depends(get_db_session),
    llm_client: Optional[StructuredLLMClient] = Depends(get_llm_client),
    current_user: CurrentUser = Depends(get_current_user),
):
    if not usage_service.reserve_daily_import(db, current_user.id):
        raise RateLimitError("Daily import limit reached")

    preview = await url_recipe_parser.extract_recipe_from_url(payload.url, llm_client=llm_client)
    return ImportPreviewResponse(
        extracted_from=preview.extracted_from,
        warnings=preview.warnings,
        recipe_data=preview.envelope.recipe.model_dump(mode="json"),
        save_payload=preview.envelope.model_dump(mode="json"),
    )


@router.post("/url/async", response_model=ImportJobRead, status_code=status.HTTP_201_CREATED)
def enqueue_import_from_url(
    payload: ImportUrlRequest,
    db: Session = Depends(get_db_session),
    current_user: CurrentUser = Depends(get_current_user),
):
    job = import_job_service.create_job(
        db,
        user_id=current_user.id,
        job_type=ImportJobType.URL.value,
        input_url=payload.url,
    )
    logger.info("Queued import job %s for user %s", job.id, current_user.id)
    return job


@router.post("/image")
def import_from_image(current_user: CurrentUser = Depends(get_current_user)):
    raise BadRequestError("Image import is not available yet", code="IMAGE_IMPORT_UNAVAILABLE")


@router.get("/jobs", response_model=ImportJobList)
def list_import_jobs(
    db: Session = Depends(get_db_session),
    current_user: CurrentUser = Depends(get_current_user),
):
    jobs = import_job_service.list_jobs_for_user(db, current_user.id)
    return ImportJobList(jobs=[ImportJobRead.model_validate(job) for job in jobs])


@router.get("/jobs/{job_id}", response_model=ImportJobRead)
def get_import_job(
    job_id: str,
    db: Session = Depends(get_db_session),
    current_user: CurrentUser = Depends(get_current_user),
):
    job = import_job_service.get_job_for_user(db, job_id, current_user.id)
    if not job:
        raise NotFoundError("Import job")
    return job
