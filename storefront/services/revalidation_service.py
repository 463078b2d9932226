# storefront/services/revalidation_service.py
import requests
from kombu.exceptions import OperationalError

from storefront.celery_worker import celery_app
from storefront.utils import settings
from storefront.utils.logging import get_logger
from storefront.utils.retry import http_retry

logger = get_logger(__name__)


class RevalidationService:
    """
    Tells the presentation layer that a rendered page is stale.

    The call is fire-and-forget: the work happens in a Celery task so a slow
    or unreachable frontend never fails a cart or review mutation.
    """

    @staticmethod
    def revalidate_path(path: str) -> None:
        try:
            revalidate_path_task.delay(path)
        except OperationalError as e:
            # the mutation is already committed at this point
            logger.warning("revalidate.enqueue_failed", path=path, error=str(e))

    def revalidate_product(self, slug: str) -> None:
        self.revalidate_path(f"/product/{slug}")


@http_retry()
def _post_revalidate(url: str, path: str) -> int:
    resp = requests.post(
        url,
        json={"path": path, "secret": settings.REVALIDATE_SECRET},
        timeout=5,
    )
    resp.raise_for_status()
    return resp.status_code


@celery_app.task(name="storefront.services.revalidation_service.revalidate_path_task")
def revalidate_path_task(path: str):
    if not settings.REVALIDATE_URL:
        logger.info("revalidate.skipped", path=path, reason="REVALIDATE_URL not set")
        return {"path": path, "status": "skipped"}

    status_code = _post_revalidate(settings.REVALIDATE_URL, path)
    logger.info("revalidate.sent", path=path, status_code=status_code)
    return {"path": path, "status": "sent"}
