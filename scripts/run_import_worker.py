#!/usr/bin/env python
"""
Simple polling worker to process queued recipe import jobs.

Run manually:
    python scripts/run_import_worker.py
"""
import asyncio
import logging
import time
from typing import Optional

from sqlalchemy.orm import Session

from whateat_recipes.app.core.config import get_settings
from whateat_recipes.app.db.session import SessionLocal, init_db
from whateat_recipes.app.services import import_job_service
from whateat_recipes.app.services.llm_client import StructuredLLMClient, build_llm_client

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("import_worker")

POLL_INTERVAL_SECONDS = 5


def process_one(db: Session, llm_client: Optional[StructuredLLMClient]) -> bool:
    job = import_job_service.fetch_next_pending(db)
    if not job:
        return False
    logger.info("Processing import job %s (%s, attempt %s)", job.id, job.type, (job.retries or 0) + 1)
    try:
        asyncio.run(import_job_service.process_import_job(db, job, llm_client))
    except Exception:  # noqa: BLE001
        logger.exception("Import job %s crashed", job.id)
    logger.info("Import job %s is now %s", job.id, job.status)
    return True


def main():
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())
    init_db()
    llm_client = build_llm_client(settings)
    while True:
        with SessionLocal() as db:
            worked = process_one(db, llm_client)
        if not worked:
            time.sleep(POLL_INTERVAL_SECONDS)


if __name__ == "__main__":
    main()
