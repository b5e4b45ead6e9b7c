"""Stripe webhook reconciliation.

Stripe delivers events at least once, so every path here is written to be
exactly-once in effect:

- marketplace purchases are keyed by checkout session id, enforced by the
  unique constraint on `purchases.source_session_id`;
- membership payments flip `payment_status` with a conditional update that
  only matches rows not yet paid.

Each event is applied in a single commit (ledger/entitlement row plus audit
row). Notifications go out only after that commit and can never undo it. Any
exception after verification propagates, so the endpoint answers non-2xx and
Stripe retries; the guards above make the retry safe.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mentorpay.config import Settings
from mentorpay.crud.application import (
    get_application,
    get_application_by_email,
    get_entrepreneur_by_customer,
    mark_membership_paid,
    set_payment_status_for_customer,
)
from mentorpay.crud.audit_log import record_audit
from mentorpay.crud.purchase import get_purchase_by_session
from mentorpay.errors import AlreadyProcessed, MalformedEvent, NotFound
from mentorpay.models.base import utcnow
from mentorpay.models.enums import ApplicantKind, PaymentStatus, PurchaseStatus, ServiceType
from mentorpay.models.purchase import Purchase
from mentorpay.services.checkout import Split, compute_split
from mentorpay.services.notifications import EmailNotifier
from mentorpay.services.payment_gateway import verify_webhook_event


logger = logging.getLogger("mentorpay.webhooks")

COMPLETED_EVENTS = {"checkout.session.completed", "checkout.session.async_payment_succeeded"}
PAYMENT_FAILED_EVENT = "invoice.payment_failed"
SUBSCRIPTION_DELETED_EVENT = "customer.subscription.deleted"

PROCESSED = "processed"
ALREADY_PROCESSED = "already_processed"
IGNORED = "ignored"


@dataclass(frozen=True)
class WebhookResult:
    event_id: str | None
    event_type: str
    outcome: str


def _data_object(event: dict[str, Any]) -> dict[str, Any]:
    data = event.get("data")
    obj = data.get("object") if isinstance(data, dict) else None
    if not isinstance(obj, dict):
        raise MalformedEvent("Event has no data.object")
    return obj


def _subscription_ref(event_type: str, obj: dict[str, Any]) -> str | None:
    """Subscription an invoice or subscription event is about, if it names one."""

    if event_type == SUBSCRIPTION_DELETED_EVENT:
        ref = obj.get("id")
    else:
        ref = obj.get("subscription")
        if not ref:
            details = (obj.get("parent") or {}).get("subscription_details") or {}
            ref = details.get("subscription")
    return ref if isinstance(ref, str) and ref else None


def _payer_email(obj: dict[str, Any], metadata: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        if metadata.get(key):
            return str(metadata[key]).strip().lower()
    details = obj.get("customer_details") or {}
    email = details.get("email") or obj.get("customer_email")
    return str(email).strip().lower() if email else None


def _settled_split(obj: dict[str, Any], metadata: dict[str, Any], fee_percent: int) -> Split:
    """Split taken from what Stripe actually settled, not from today's rate sheet."""

    gross = obj.get("amount_total")
    if isinstance(gross, bool) or not isinstance(gross, int) or gross < 0:
        raise MalformedEvent("Checkout session has no settled amount_total")

    raw_fee = metadata.get("platform_fee_cents")
    try:
        fee = int(raw_fee) if raw_fee not in (None, "") else None
    except (TypeError, ValueError):
        fee = None

    if fee is None or not 0 <= fee <= gross:
        return compute_split(gross, fee_percent)
    return Split(gross_amount=gross, platform_fee=fee, payee_earnings=gross - fee)


class WebhookReconciler:
    def __init__(self, *, settings: Settings, notifier: EmailNotifier) -> None:
        self._settings = settings
        self._notifier = notifier

    async def handle(
        self,
        session: AsyncSession,
        *,
        payload: bytes,
        signature: str | None,
        request_id: str | None = None,
    ) -> WebhookResult:
        secret = self._settings.stripe_webhook_secret
        event = verify_webhook_event(
            payload,
            signature,
            secret=secret.get_secret_value() if secret else None,
            tolerance=self._settings.stripe_webhook_tolerance_seconds,
        )

        event_id = event.get("id")
        event_type = event["type"]

        try:
            if event_type in COMPLETED_EVENTS:
                outcome = await self._handle_checkout_completed(session, event=event, request_id=request_id)
            elif event_type == PAYMENT_FAILED_EVENT:
                outcome = await self._handle_subscription_downgrade(
                    session,
                    event=event,
                    payment_status=PaymentStatus.PAYMENT_FAILED,
                    template="membership_payment_failed",
                    request_id=request_id,
                )
            elif event_type == SUBSCRIPTION_DELETED_EVENT:
                outcome = await self._handle_subscription_downgrade(
                    session,
                    event=event,
                    payment_status=PaymentStatus.CANCELLED,
                    template="membership_cancelled",
                    request_id=request_id,
                )
            else:
                outcome = IGNORED
        except AlreadyProcessed as e:
            await session.rollback()
            await self._audit_duplicate(session, key=e.key, event_id=event_id, event_type=event_type, request_id=request_id)
            outcome = ALREADY_PROCESSED

        logger.info("webhook event_id=%s type=%s outcome=%s", event_id, event_type, outcome)
        return WebhookResult(event_id=event_id, event_type=event_type, outcome=outcome)

    async def _audit_duplicate(
        self,
        session: AsyncSession,
        *,
        key: str,
        event_id: str | None,
        event_type: str,
        request_id: str | None,
    ) -> None:
        try:
            record_audit(
                session,
                entity_type="webhook",
                entity_id=key,
                action="duplicate_delivery",
                new_value={"event_id": event_id, "event_type": event_type},
                change_summary="already processed; no mutation",
                request_id=request_id,
            )
            await session.commit()
        except Exception:
            await session.rollback()
            logger.exception("Failed to audit duplicate webhook key=%s", key)

    async def _handle_checkout_completed(
        self,
        session: AsyncSession,
        *,
        event: dict[str, Any],
        request_id: str | None,
    ) -> str:
        obj = _data_object(event)
        if obj.get("payment_status") != "paid":
            return IGNORED

        session_id = obj.get("id")
        if not isinstance(session_id, str) or not session_id:
            raise MalformedEvent("Checkout session has no id")

        metadata = obj.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise MalformedEvent("Checkout session metadata is not an object")

        if metadata.get("coach_id"):
            await self._reconcile_purchase(session, session_id=session_id, obj=obj, metadata=metadata, request_id=request_id)
        else:
            await self._reconcile_membership(session, session_id=session_id, obj=obj, metadata=metadata, request_id=request_id)
        return PROCESSED

    async def _reconcile_purchase(
        self,
        session: AsyncSession,
        *,
        session_id: str,
        obj: dict[str, Any],
        metadata: dict[str, Any],
        request_id: str | None,
    ) -> None:
        try:
            coach_id = UUID(str(metadata["coach_id"]))
            service_type = ServiceType(metadata.get("service_type"))
        except ValueError as e:
            raise MalformedEvent("Checkout metadata has an invalid coach_id or service_type") from e

        payer_email = _payer_email(obj, metadata, "payer_email")
        if not payer_email:
            raise MalformedEvent("Checkout session has no payer email")
        split = _settled_split(obj, metadata, self._settings.platform_fee_percent)

        if await get_purchase_by_session(session, source_session_id=session_id) is not None:
            raise AlreadyProcessed("Purchase already recorded", key=session_id)

        coach = await get_application(session, application_id=coach_id, kind=ApplicantKind.COACH)
        if coach is None:
            raise NotFound("Coach not found")

        purchase = Purchase(
            coach_id=coach.id,
            payer_email=payer_email,
            payer_name=metadata.get("payer_name") or None,
            service_type=service_type.value,
            gross_amount=split.gross_amount,
            platform_fee=split.platform_fee,
            payee_earnings=split.payee_earnings,
            currency=str(obj.get("currency") or self._settings.currency),
            source_session_id=session_id,
            status=PurchaseStatus.COMPLETED.value,
        )
        session.add(purchase)
        record_audit(
            session,
            entity_type="purchase",
            entity_id=session_id,
            action="create",
            new_value={
                "coach_id": str(coach.id),
                "gross_amount": split.gross_amount,
                "platform_fee": split.platform_fee,
                "payee_earnings": split.payee_earnings,
            },
            change_summary="marketplace purchase recorded",
            request_id=request_id,
        )
        try:
            await session.commit()
        except IntegrityError:
            # A concurrent delivery inserted the same session id first.
            await session.rollback()
            if await get_purchase_by_session(session, source_session_id=session_id) is not None:
                raise AlreadyProcessed("Purchase already recorded", key=session_id) from None
            raise

        fields = {
            "coach_name": coach.full_name,
            "payer_name": purchase.payer_name or "",
            "payer_email": payer_email,
            "service_type": service_type.value,
            "gross_amount": split.gross_amount,
            "platform_fee": split.platform_fee,
            "payee_earnings": split.payee_earnings,
            "currency": purchase.currency,
        }
        self._notifier.send("purchase_receipt", payer_email, **fields)
        self._notifier.send("coach_new_purchase", coach.email, **fields)
        self._notifier.notify_admin("admin_new_purchase", **fields)

    async def _reconcile_membership(
        self,
        session: AsyncSession,
        *,
        session_id: str,
        obj: dict[str, Any],
        metadata: dict[str, Any],
        request_id: str | None,
    ) -> None:
        email = _payer_email(obj, metadata, "email", "entrepreneurEmail")
        if not email:
            raise MalformedEvent("Membership checkout has no applicant email")

        app = await get_application_by_email(session, kind=ApplicantKind.ENTREPRENEUR, email=email)
        if app is None:
            raise NotFound("Entrepreneur application not found")
        if app.payment_status == PaymentStatus.PAID.value or app.membership_session_id == session_id:
            raise AlreadyProcessed("Membership already paid", key=session_id)

        customer_id = obj.get("customer") if isinstance(obj.get("customer"), str) else None
        subscription_id = obj.get("subscription") if isinstance(obj.get("subscription"), str) else None

        # Only payment_status moves here; status stays with the admin workflow.
        changed = await mark_membership_paid(
            session,
            email=email,
            session_id=session_id,
            customer_id=customer_id,
            subscription_id=subscription_id,
            paid_at=utcnow(),
        )
        if not changed:
            raise AlreadyProcessed("Membership already paid", key=session_id)

        record_audit(
            session,
            entity_type="application",
            entity_id=app.id,
            action="membership_paid",
            old_value={"payment_status": app.payment_status},
            new_value={"payment_status": PaymentStatus.PAID.value, "checkout_session_id": session_id},
            change_summary="membership payment captured",
            request_id=request_id,
        )
        await session.commit()

        self._notifier.send("membership_paid", email, full_name=app.full_name, status=app.status)
        self._notifier.notify_admin("admin_membership_paid", full_name=app.full_name, email=email, status=app.status)

    async def _handle_subscription_downgrade(
        self,
        session: AsyncSession,
        *,
        event: dict[str, Any],
        payment_status: PaymentStatus,
        template: str,
        request_id: str | None,
    ) -> str:
        obj = _data_object(event)
        event_type = event["type"]
        subscription_id = _subscription_ref(event_type, obj)
        customer_id = obj.get("customer")
        if not isinstance(customer_id, str) or not customer_id:
            return IGNORED

        app = await get_entrepreneur_by_customer(session, customer_id=customer_id)
        if app is None:
            return IGNORED
        if subscription_id and app.stripe_subscription_id and app.stripe_subscription_id != subscription_id:
            logger.info(
                "downgrade ignored application_id=%s event_subscription=%s current_subscription=%s",
                app.id,
                subscription_id,
                app.stripe_subscription_id,
            )
            return IGNORED

        changed = await set_payment_status_for_customer(
            session,
            customer_id=customer_id,
            subscription_id=subscription_id,
            payment_status=payment_status,
        )
        if not changed:
            await session.rollback()
            return ALREADY_PROCESSED

        record_audit(
            session,
            entity_type="application",
            entity_id=app.id,
            action=f"membership_{payment_status.value}",
            old_value={"payment_status": app.payment_status},
            new_value={"payment_status": payment_status.value, "subscription_id": subscription_id},
            change_summary=f"{event_type} for customer {customer_id}",
            request_id=request_id,
        )
        await session.commit()

        self._notifier.send(template, app.email, full_name=app.full_name)
        return PROCESSED
