from __future__ import annotations

import logging
from typing import Any

from mentorpay.tasks.send_email import SEND_EMAIL_TASK
from mentorpay.worker.celery_app import celery_app


logger = logging.getLogger(__name__)


@celery_app.task(name=SEND_EMAIL_TASK)
def send_email(template: str, to: str, fields: dict[str, Any]) -> None:
    """Hand a templated message to the email collaborator.

    Rendering and delivery belong to the email service; this task only records
    the request so failed deliveries can be traced back to the triggering event.
    """

    logger.info("send_email received template=%s to=%s fields=%s", template, to, sorted(fields))
