from __future__ import annotations

from celery import Celery

from mentorpay.config import Settings


def make_celery(settings: Settings, *, include_tasks: bool = True) -> Celery:
    """Create a Celery app bound to the configured broker.

    The API builds one with `include_tasks=False` purely for emission; the
    worker process imports `celery_app` below.
    """

    celery = Celery(
        "mentorpay",
        broker=settings.redis_url,
        backend=settings.redis_url,
        include=["mentorpay.worker.tasks"] if include_tasks else [],
    )

    celery.conf.update(
        task_serializer="json",
        result_serializer="json",
        accept_content=["json"],
        timezone="UTC",
        enable_utc=True,
        task_ignore_result=True,
    )

    return celery


# Worker entrypoint: celery -A mentorpay.worker.celery_app worker
celery_app = make_celery(Settings())
