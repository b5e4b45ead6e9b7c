"""Checkout session construction.

Two shapes: a recurring membership subscription for entrepreneurs, and a
one-time destination charge for a coach's service where the platform keeps
`platform_fee_percent` and Stripe routes the remainder to the coach's
connected account at settlement.

All money is integer cents. The fee is floor-rounded so that
`platform_fee + payee_earnings == gross_amount` always holds and any rounding
remainder goes to the coach.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from mentorpay.config import Settings
from mentorpay.crud.application import cache_stripe_customer, get_application, get_application_by_email
from mentorpay.errors import CoachNotOnboarded, InvalidServiceType, InvalidStatus, NotFound, ProcessorUnavailable
from mentorpay.models.enums import ApplicantKind, ApplicationStatus, PaymentStatus, ServiceType
from mentorpay.schemas.rate_sheet import decode_rate_sheet, price_for
from mentorpay.services.payment_gateway import PaymentGateway, SessionRef


logger = logging.getLogger("mentorpay.checkout")

SERVICE_LABELS = {
    ServiceType.INTRO: "Intro call",
    ServiceType.SESSION: "Coaching session",
    ServiceType.MONTHLY: "Monthly coaching",
}

CLOSED_STATUSES = {ApplicationStatus.REJECTED.value, ApplicationStatus.TERMINATED.value}


@dataclass(frozen=True)
class Split:
    gross_amount: int
    platform_fee: int
    payee_earnings: int


def compute_split(gross_amount: int, fee_percent: int) -> Split:
    if isinstance(gross_amount, bool) or not isinstance(gross_amount, int):
        raise TypeError("gross_amount must be an integer number of cents")
    if gross_amount < 0:
        raise ValueError("gross_amount must be >= 0")
    if not 0 <= fee_percent <= 100:
        raise ValueError("fee_percent must be between 0 and 100")

    platform_fee = gross_amount * fee_percent // 100
    return Split(gross_amount=gross_amount, platform_fee=platform_fee, payee_earnings=gross_amount - platform_fee)


class CheckoutOrchestrator:
    def __init__(self, *, settings: Settings, gateway: PaymentGateway) -> None:
        self._settings = settings
        self._gateway = gateway

    def _urls(self, success_path: str, cancel_path: str) -> dict[str, str]:
        base = self._settings.public_base_url
        return {
            "success_url": f"{base}{success_path}",
            "cancel_url": f"{base}{cancel_path}",
        }

    async def create_membership_checkout(self, session: AsyncSession, *, email: str) -> SessionRef:
        price_id = self._settings.stripe_membership_price_id
        if not price_id:
            raise ProcessorUnavailable("Membership price is not configured")

        app = await get_application_by_email(session, kind=ApplicantKind.ENTREPRENEUR, email=email)
        if app is None:
            raise NotFound("Entrepreneur application not found")
        if app.payment_status == PaymentStatus.PAID.value:
            raise InvalidStatus("Membership is already paid")
        if app.status in CLOSED_STATUSES or app.is_disabled:
            raise InvalidStatus(f"Application is {app.status}; membership checkout is not available")

        # Release the read transaction before calling out to Stripe.
        await session.commit()

        customer_id = app.stripe_customer_id
        if not customer_id:
            customer_id = await self._gateway.create_customer(
                email=app.email,
                name=app.full_name,
                metadata={"entrepreneurEmail": app.email},
            )
            await cache_stripe_customer(session, application_id=app.id, customer_id=customer_id)

        params = {
            "customer": customer_id,
            "payment_method_types": ["card"],
            "line_items": [{"price": price_id, "quantity": 1}],
            "mode": "subscription",
            "client_reference_id": str(app.id),
            "metadata": {"email": app.email},
            "subscription_data": {"metadata": {"email": app.email}},
            **self._urls("/dashboard-entrepreneur?payment=success", "/dashboard-entrepreneur?payment=cancelled"),
        }
        ref = await self._gateway.create_checkout_session(params)
        logger.info("membership_checkout created session_id=%s application_id=%s", ref.id, app.id)
        return ref

    async def create_marketplace_checkout(
        self,
        session: AsyncSession,
        *,
        coach_id: UUID,
        service_type: ServiceType,
        payer_email: str,
        payer_name: str | None = None,
    ) -> tuple[SessionRef, Split]:
        coach = await get_application(session, application_id=coach_id, kind=ApplicantKind.COACH)
        if coach is None:
            raise NotFound("Coach not found")
        if not coach.connected_account_id:
            raise CoachNotOnboarded("Coach has not set up payments yet")

        account_id = coach.connected_account_id
        sheet = decode_rate_sheet(coach.rate_sheet)
        await session.commit()

        flags = await self._gateway.retrieve_account(account_id)
        if not flags.charges_enabled:
            raise CoachNotOnboarded("Coach payment account cannot accept charges yet")

        gross = price_for(sheet, service_type)
        if gross is None:
            raise InvalidServiceType(f"Coach has no price for service type {service_type.value!r}")

        # The split is fixed here; Stripe enforces it at settlement.
        split = compute_split(gross, self._settings.platform_fee_percent)

        metadata = {
            "coach_id": str(coach.id),
            "service_type": service_type.value,
            "payer_email": payer_email,
            "payer_name": payer_name or "",
            "gross_amount_cents": str(split.gross_amount),
            "platform_fee_cents": str(split.platform_fee),
        }
        params = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "customer_email": payer_email,
            "line_items": [
                {
                    "price_data": {
                        "currency": self._settings.currency,
                        "unit_amount": split.gross_amount,
                        "product_data": {"name": f"{SERVICE_LABELS[service_type]} with {coach.full_name}"},
                    },
                    "quantity": 1,
                }
            ],
            "payment_intent_data": {
                "application_fee_amount": split.platform_fee,
                "transfer_data": {"destination": account_id},
                "metadata": metadata,
            },
            "metadata": metadata,
            **self._urls(f"/coach/{coach.id}?purchase=success", f"/coach/{coach.id}?purchase=cancelled"),
        }
        ref = await self._gateway.create_checkout_session(params)
        logger.info(
            "marketplace_checkout created session_id=%s coach_id=%s service=%s gross=%s fee=%s",
            ref.id,
            coach.id,
            service_type.value,
            split.gross_amount,
            split.platform_fee,
        )
        return ref, split

    async def create_billing_portal(self, session: AsyncSession, *, email: str) -> str:
        app = await get_application_by_email(session, kind=ApplicantKind.ENTREPRENEUR, email=email)
        if app is None:
            raise NotFound("Entrepreneur application not found")
        if not app.stripe_customer_id:
            raise NotFound("No billing account on file")

        customer_id = app.stripe_customer_id
        await session.commit()
        return await self._gateway.create_billing_portal_session(
            customer_id=customer_id,
            return_url=f"{self._settings.public_base_url}/dashboard-entrepreneur",
        )
