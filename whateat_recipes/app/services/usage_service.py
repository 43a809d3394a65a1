import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from whateat_recipes.app.core.config import get_settings
from whateat_recipes.app.db import models

logger = logging.getLogger(__name__)


def _today() -> date:
    return datetime.utcnow().date()


def _get_counter(db: Session, user_id: str, day: date) -> Optional[models.UsageCounter]:
    stmt = select(models.UsageCounter).where(
        models.UsageCounter.user_id == str(user_id),
        models.UsageCounter.date == day,
    )
    return db.scalars(stmt).first()


def _ensure_counter(db: Session, user_id: str, day: date) -> None:
    if _get_counter(db, user_id, day) is not None:
        return
    db.add(models.UsageCounter(user_id=str(user_id), date=day, imports_count=0, ai_generations_count=0))
    try:
        db.commit()
    except IntegrityError:
        # a concurrent request created today's row first
        db.rollback()


def reserve_daily_import(db: Session, user_id: str, limit: Optional[int] = None) -> bool:
    """Count one import against today's quota. False once the quota is used up.

    The check and the increment are a single conditional UPDATE, so concurrent
    requests cannot both take the last remaining import.
    """
    if limit is None:
        limit = get_settings().daily_import_limit
    today = _today()
    _ensure_counter(db, user_id, today)

    stmt = (
        update(models.UsageCounter)
        .where(
            models.UsageCounter.user_id == str(user_id),
            models.UsageCounter.date == today,
            models.UsageCounter.imports_count < limit,
        )
        .values(imports_count=models.UsageCounter.imports_count + 1)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    db.commit()

    if result.rowcount != 1:
        logger.info("User %s reached the daily import limit of %d", user_id, limit)
        return False
    logger.debug("Import reserved for user %s on %s", user_id, today)
    return True
