from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mentorpay.crud.audit_log import record_audit
from mentorpay.crud.base import BaseCRUD
from mentorpay.errors import InvalidStatus
from mentorpay.models.application import Application
from mentorpay.models.enums import ApplicantKind, ApplicationStatus, PaymentStatus


applications = BaseCRUD(Application)

# Prior statuses from which a resubmission starts a fresh review cycle.
RESTART_ON_RESUBMIT = {
    ApplicationStatus.REJECTED.value,
    ApplicationStatus.PRE_APPROVED.value,
    ApplicationStatus.TERMINATED.value,
}


async def get_application(
    session: AsyncSession,
    *,
    application_id: UUID,
    kind: ApplicantKind | None = None,
    refresh: bool = False,
) -> Application | None:
    app = await session.get(Application, application_id, populate_existing=refresh)
    if app is None or (kind is not None and app.kind != kind.value):
        return None
    return app


async def get_application_by_email(session: AsyncSession, *, kind: ApplicantKind, email: str) -> Application | None:
    stmt = select(Application).where(Application.kind == kind.value, Application.email == email.lower())
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def get_entrepreneur_by_customer(session: AsyncSession, *, customer_id: str) -> Application | None:
    stmt = select(Application).where(
        Application.kind == ApplicantKind.ENTREPRENEUR.value,
        Application.stripe_customer_id == customer_id,
    )
    res = await session.execute(stmt)
    return res.scalars().first()


async def list_applications(
    session: AsyncSession,
    *,
    kind: ApplicantKind | None = None,
    status: str | None = None,
    payment_status: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Application], int]:
    filters = {
        "kind": kind.value if kind else None,
        "status": status,
        "payment_status": payment_status,
    }
    items = await applications.get_multi(
        session,
        skip=offset,
        limit=limit,
        filters=filters,
        order_by=Application.created_at.desc(),
    )
    total = await applications.count(session, filters=filters)
    return items, total


async def _merge_resubmission(
    session: AsyncSession,
    *,
    existing: Application,
    full_name: str,
    form_data: dict[str, Any],
) -> tuple[Application, str]:
    previous_status = existing.status
    if previous_status == ApplicationStatus.APPROVED.value:
        raise InvalidStatus("Application is already approved; resubmission is not allowed")

    merged = dict(existing.form_data or {})
    merged.update(form_data)

    changes: dict[str, Any] = {"full_name": full_name, "form_data": merged}
    if previous_status in RESTART_ON_RESUBMIT:
        changes["status"] = ApplicationStatus.SUBMITTED.value

    await applications.update(session, db_obj=existing, obj_in=changes)
    record_audit(
        session,
        entity_type="application",
        entity_id=existing.id,
        action="resubmit",
        old_value={"status": previous_status},
        new_value={"status": existing.status},
        change_summary="resubmission merged into existing application",
    )
    return existing, previous_status


async def submit_application(
    session: AsyncSession,
    *,
    kind: ApplicantKind,
    email: str,
    full_name: str,
    form_data: dict[str, Any],
) -> tuple[Application, bool]:
    """Create an application, or merge a resubmission into the existing one.

    Returns (application, created).
    """

    email = email.lower()
    existing = await get_application_by_email(session, kind=kind, email=email)
    if existing is not None:
        app, _ = await _merge_resubmission(session, existing=existing, full_name=full_name, form_data=form_data)
        await session.commit()
        return app, False

    app = Application(
        kind=kind.value,
        email=email,
        full_name=full_name,
        status=ApplicationStatus.SUBMITTED.value,
        payment_status=PaymentStatus.UNPAID.value if kind == ApplicantKind.ENTREPRENEUR else None,
        form_data=dict(form_data),
    )
    session.add(app)
    try:
        await session.flush()
    except IntegrityError:
        # Lost a race with a concurrent first submission for the same email.
        await session.rollback()
        existing = await get_application_by_email(session, kind=kind, email=email)
        if existing is None:
            raise
        app, _ = await _merge_resubmission(session, existing=existing, full_name=full_name, form_data=form_data)
        await session.commit()
        return app, False

    record_audit(
        session,
        entity_type="application",
        entity_id=app.id,
        action="create",
        new_value={"kind": kind.value, "status": app.status},
        change_summary="application submitted",
    )
    await session.commit()
    return app, True


async def compare_and_set_status(
    session: AsyncSession,
    *,
    application_id: UUID,
    expected: str,
    new_status: str,
) -> bool:
    """Write `new_status` only if the row still holds `expected`. Does not commit."""

    stmt = (
        update(Application)
        .where(Application.id == application_id, Application.status == expected)
        .values(status=new_status)
        .execution_options(synchronize_session=False)
    )
    res = await session.execute(stmt)
    return res.rowcount == 1


async def set_disabled(session: AsyncSession, *, app: Application, is_disabled: bool) -> Application:
    old = app.is_disabled
    await applications.update(session, db_obj=app, obj_in={"is_disabled": is_disabled})
    record_audit(
        session,
        entity_type="application",
        entity_id=app.id,
        action="disable" if is_disabled else "enable",
        old_value={"is_disabled": old},
        new_value={"is_disabled": is_disabled},
    )
    await session.commit()
    return app


async def set_rate_sheet(session: AsyncSession, *, coach: Application, raw: str) -> Application:
    await applications.update(session, db_obj=coach, obj_in={"rate_sheet": raw})
    await session.commit()
    return coach


async def mark_membership_paid(
    session: AsyncSession,
    *,
    email: str,
    session_id: str,
    customer_id: str | None,
    subscription_id: str | None,
    paid_at: datetime,
) -> bool:
    """Flip an entrepreneur to paid for checkout `session_id`. Does not commit.

    Conditional write: the row must not already be paid, and `session_id` must
    not be the session that last granted paid. A redelivered event therefore
    stamps the payment date once, even after a later downgrade.
    """

    values: dict = {
        "payment_status": PaymentStatus.PAID.value,
        "payment_date": paid_at,
        "membership_session_id": session_id,
    }
    if customer_id:
        values["stripe_customer_id"] = customer_id
    if subscription_id:
        values["stripe_subscription_id"] = subscription_id

    stmt = (
        update(Application)
        .where(
            Application.kind == ApplicantKind.ENTREPRENEUR.value,
            Application.email == email.lower(),
            Application.payment_status != PaymentStatus.PAID.value,
            or_(Application.membership_session_id.is_(None), Application.membership_session_id != session_id),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    res = await session.execute(stmt)
    return res.rowcount == 1


async def set_payment_status_for_customer(
    session: AsyncSession,
    *,
    customer_id: str,
    subscription_id: str | None,
    payment_status: PaymentStatus,
) -> int:
    """Downgrade payment status by processor customer reference. Does not commit.

    When the event names a subscription, only a row still on that subscription
    (or with none recorded) is touched, so events for a replaced subscription
    cannot downgrade the current one.
    """

    if payment_status == PaymentStatus.PAID:
        raise ValueError("paid can only be set by a completed checkout")

    stmt = update(Application).where(
        Application.kind == ApplicantKind.ENTREPRENEUR.value,
        Application.stripe_customer_id == customer_id,
        Application.payment_status != payment_status.value,
    )
    if subscription_id:
        stmt = stmt.where(
            or_(
                Application.stripe_subscription_id.is_(None),
                Application.stripe_subscription_id == subscription_id,
            )
        )
    stmt = stmt.values(payment_status=payment_status.value).execution_options(synchronize_session=False)
    res = await session.execute(stmt)
    return int(res.rowcount or 0)


async def cache_connected_account(session: AsyncSession, *, coach_id: UUID, account_id: str) -> bool:
    """Store the account id only if the coach has none yet."""

    stmt = (
        update(Application)
        .where(
            Application.id == coach_id,
            Application.kind == ApplicantKind.COACH.value,
            Application.connected_account_id.is_(None),
        )
        .values(connected_account_id=account_id)
        .execution_options(synchronize_session=False)
    )
    res = await session.execute(stmt)
    await session.commit()
    return res.rowcount == 1


async def clear_connected_account(session: AsyncSession, *, coach: Application) -> str | None:
    previous = coach.connected_account_id
    await applications.update(session, db_obj=coach, obj_in={"connected_account_id": None})
    record_audit(
        session,
        entity_type="application",
        entity_id=coach.id,
        action="connected_account_reset",
        old_value={"connected_account_id": previous},
        new_value={"connected_account_id": None},
    )
    await session.commit()
    return previous


async def cache_stripe_customer(session: AsyncSession, *, application_id: UUID, customer_id: str) -> bool:
    """Remember the processor customer for later checkouts and the billing portal."""

    stmt = (
        update(Application)
        .where(Application.id == application_id, Application.stripe_customer_id.is_(None))
        .values(stripe_customer_id=customer_id)
        .execution_options(synchronize_session=False)
    )
    res = await session.execute(stmt)
    await session.commit()
    return res.rowcount == 1
