# storefront/celery_worker.py
from celery import Celery

from storefront.utils import settings

celery_app = Celery(
    "storefront",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

# tasks have to be imported explicitly so the worker registers them
celery_app.conf.imports = (
    "storefront.tasks.expire",
    "storefront.services.revalidation_service",
)

celery_app.conf.beat_schedule = {
    "expire-anonymous-carts-hourly": {
        "task": "storefront.tasks.expire.expire_carts_task",
        "schedule": 60.0 * 60,
    },
}

celery_app.conf.timezone = "UTC"
# run tasks in-process (tests, local dev without a broker)
celery_app.conf.task_always_eager = settings.CELERY_TASK_ALWAYS_EAGER
