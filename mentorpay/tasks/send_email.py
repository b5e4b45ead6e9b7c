from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger("mentorpay.tasks")

SEND_EMAIL_TASK = "mentorpay.send_email"


def emit_send_email_task(celery_app: Any, *, template: str, to: str, fields: dict[str, Any]) -> None:
    """Fire-and-forget a templated email.

    Uses `send_task` by name so the API process never imports the worker's task
    modules. Raises whatever the broker client raises; callers decide whether
    that is fatal.
    """

    celery_app.send_task(
        SEND_EMAIL_TASK,
        kwargs={"template": template, "to": to, "fields": fields},
    )
    logger.info("send_email emitted template=%s to=%s", template, to)
