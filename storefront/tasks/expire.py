# storefront/tasks/expire.py
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.repos.cart_repo import CartRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def expire_carts(db: Session, now: datetime | None = None) -> int:
    """Delete anonymous carts whose expiry has passed. Carts of users are kept."""
    repo = CartRepo(db)
    now = now or datetime.now(timezone.utc)
    try:
        removed = repo.delete_expired_anonymous(now)
        repo.commit()
    except Exception:
        repo.rollback()
        logger.exception("carts.expire_failed")
        raise
    return removed


@celery_app.task(name="storefront.tasks.expire.expire_carts_task")
def expire_carts_task():
    logger.info("carts.expire_started")

    db = SessionLocal()
    try:
        removed = expire_carts(db)
    finally:
        db.close()

    logger.info("carts.expired", count=removed)
    return removed
