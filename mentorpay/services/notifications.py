from __future__ import annotations

import logging
from typing import Any

from mentorpay.config import Settings
from mentorpay.tasks.send_email import emit_send_email_task


logger = logging.getLogger("mentorpay.notifications")


class EmailNotifier:
    """Notification boundary.

    `send` never raises: a failed emission is logged and dropped so it can
    never roll back an entitlement or ledger write.
    """

    def __init__(self, settings: Settings, *, celery_app: Any | None = None) -> None:
        self.admin_email = settings.admin_email
        self._enabled = settings.celery_enabled
        self._celery_app = celery_app
        self._settings = settings

    def _get_celery_app(self) -> Any:
        if self._celery_app is None:
            # Imported lazily so the API can start without a broker configured.
            from mentorpay.worker.celery_app import make_celery

            self._celery_app = make_celery(self._settings, include_tasks=False)
        return self._celery_app

    def send(self, template: str, to: str | None, **fields: Any) -> bool:
        if not to:
            logger.warning("send_email skipped template=%s reason=no_recipient", template)
            return False

        if not self._enabled:
            logger.info("send_email skipped template=%s to=%s reason=celery_disabled", template, to)
            return False

        try:
            emit_send_email_task(self._get_celery_app(), template=template, to=to, fields=fields)
        except Exception:
            logger.exception("Failed to emit send_email task template=%s to=%s", template, to)
            return False
        return True

    def notify_admin(self, template: str, **fields: Any) -> bool:
        return self.send(template, self.admin_email, **fields)
