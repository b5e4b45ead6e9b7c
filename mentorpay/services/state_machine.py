"""Application status state machine and the dashboard-access predicate.

`status` and `payment_status` are independent axes. Transitions here only ever
write `status`; payment webhooks only ever write `payment_status`, so the two
writers cannot lose each other's updates.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from mentorpay.config import Settings
from mentorpay.crud.application import compare_and_set_status, get_application
from mentorpay.crud.audit_log import record_audit
from mentorpay.crud.password_token import mint_password_token
from mentorpay.errors import ConcurrentUpdate, InvalidStatus, NotFound
from mentorpay.models.application import Application
from mentorpay.models.enums import ApplicantKind, ApplicationStatus, DashboardAccess
from mentorpay.services.notifications import EmailNotifier


logger = logging.getLogger("mentorpay.state_machine")

S = ApplicationStatus

TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    S.SUBMITTED: frozenset({S.PRE_APPROVED, S.APPROVED, S.REJECTED}),
    # Legacy intake wrote "pending"; it behaves exactly like "submitted".
    S.PENDING: frozenset({S.PRE_APPROVED, S.APPROVED, S.REJECTED}),
    S.PRE_APPROVED: frozenset({S.APPROVED, S.REJECTED, S.TERMINATED}),
    S.APPROVED: frozenset({S.REJECTED, S.TERMINATED}),
    # Absorbing: only a resubmission (which resets to "submitted") leaves these.
    S.REJECTED: frozenset(),
    S.TERMINATED: frozenset(),
}

INVITE_TARGETS = {S.PRE_APPROVED, S.APPROVED}


def parse_status(value: str) -> ApplicationStatus:
    try:
        return ApplicationStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in ApplicationStatus)
        raise InvalidStatus(f"Invalid status {value!r}; expected one of: {allowed}") from None


def can_transition(current: ApplicationStatus, target: ApplicationStatus) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def dashboard_access(app: Application) -> DashboardAccess:
    """What the applicant may see on their dashboard.

    Payment alone never grants access: an entrepreneur who has paid but is still
    `pre-approved` gets view-only access until an admin approves them.
    """

    if app.is_disabled:
        return DashboardAccess.NONE
    if app.status == S.APPROVED.value:
        return DashboardAccess.FULL
    if app.kind == ApplicantKind.ENTREPRENEUR.value and app.status == S.PRE_APPROVED.value:
        return DashboardAccess.VIEW_ONLY
    return DashboardAccess.NONE


class ApplicationStateMachine:
    def __init__(self, *, settings: Settings, notifier: EmailNotifier) -> None:
        self._settings = settings
        self._notifier = notifier

    async def transition(
        self,
        session: AsyncSession,
        *,
        application_id: UUID,
        new_status: str,
        request_id: str | None = None,
    ) -> tuple[Application, ApplicationStatus]:
        """Move an application to `new_status` and return (application, previous_status).

        The status write is committed before any side effect runs. Side effects
        are at-least-once: a failure is logged and the transition stands.
        """

        target = parse_status(new_status)

        app = await get_application(session, application_id=application_id)
        if app is None:
            raise NotFound("Application not found")

        previous = parse_status(app.status)
        if not can_transition(previous, target):
            raise InvalidStatus(f"Invalid status transition: {previous.value} -> {target.value}")

        swapped = await compare_and_set_status(
            session,
            application_id=app.id,
            expected=previous.value,
            new_status=target.value,
        )
        if not swapped:
            await session.rollback()
            raise ConcurrentUpdate("Application status changed concurrently; reload and retry")

        record_audit(
            session,
            entity_type="application",
            entity_id=app.id,
            action="status_change",
            old_value={"status": previous.value},
            new_value={"status": target.value},
            change_summary=f"{previous.value} -> {target.value}",
            request_id=request_id,
        )
        await session.commit()

        app = await get_application(session, application_id=app.id, refresh=True)
        logger.info(
            "status_change application_id=%s kind=%s from=%s to=%s",
            app.id,
            app.kind,
            previous.value,
            target.value,
        )

        await self._run_side_effects(session, app=app, previous=previous, target=target)
        return app, previous

    async def _run_side_effects(
        self,
        session: AsyncSession,
        *,
        app: Application,
        previous: ApplicationStatus,
        target: ApplicationStatus,
    ) -> None:
        try:
            if target in INVITE_TARGETS and previous != S.PRE_APPROVED:
                # First time through the gate: the applicant has never been
                # invited to set a password.
                token = await mint_password_token(session, app=app, ttl_hours=self._settings.password_token_ttl_hours)
                self._notifier.send(
                    "password_setup",
                    app.email,
                    full_name=app.full_name,
                    kind=app.kind,
                    status=target.value,
                    link=f"{self._settings.public_base_url}/set-password?token={token.token}",
                )
            elif target == S.APPROVED:
                self._notifier.send("application_approved", app.email, full_name=app.full_name, kind=app.kind)
            elif target == S.REJECTED:
                self._notifier.send("application_rejected", app.email, full_name=app.full_name, kind=app.kind)
        except Exception:
            await session.rollback()
            logger.exception(
                "status_change side effect failed application_id=%s to=%s; transition kept",
                app.id,
                target.value,
            )
