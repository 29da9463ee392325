# checkout/celery_worker.py
from celery import Celery

from checkout.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    EXPIRED_PROMO_SWEEP_SECONDS,
)

celery_app = Celery(
    "checkout",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# import tasks explicitly so the worker registers them
celery_app.conf.imports = (
    "checkout.tasks.expire",
    "checkout.services.notification_service",
)

celery_app.conf.beat_schedule = {
    "detach-expired-promotions": {
        "task": "checkout.tasks.expire.detach_expired_promotions_task",
        "schedule": float(EXPIRED_PROMO_SWEEP_SECONDS),
    },
}

celery_app.conf.timezone = "UTC"
