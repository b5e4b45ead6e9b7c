from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mentorpay.api.deps import get_checkout
from mentorpay.database import get_db
from mentorpay.schemas.payments import (
    BillingPortalRequest,
    CheckoutResponse,
    CoachServiceCheckoutRequest,
    CoachServiceCheckoutResponse,
    MembershipCheckoutRequest,
    PortalResponse,
    SplitRead,
)
from mentorpay.services.checkout import CheckoutOrchestrator


router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post("/membership", response_model=CheckoutResponse)
async def membership_checkout_endpoint(
    payload: MembershipCheckoutRequest,
    session: AsyncSession = Depends(get_db),
    checkout: CheckoutOrchestrator = Depends(get_checkout),
) -> CheckoutResponse:
    ref = await checkout.create_membership_checkout(session, email=payload.email)
    return CheckoutResponse(session_id=ref.id, url=ref.url)


@router.post("/coach-service", response_model=CoachServiceCheckoutResponse)
async def coach_service_checkout_endpoint(
    payload: CoachServiceCheckoutRequest,
    session: AsyncSession = Depends(get_db),
    checkout: CheckoutOrchestrator = Depends(get_checkout),
) -> CoachServiceCheckoutResponse:
    ref, split = await checkout.create_marketplace_checkout(
        session,
        coach_id=payload.coach_id,
        service_type=payload.service_type,
        payer_email=payload.payer_email,
        payer_name=payload.payer_name,
    )
    return CoachServiceCheckoutResponse(
        session_id=ref.id,
        url=ref.url,
        service_type=payload.service_type,
        split=SplitRead(
            gross_amount=split.gross_amount,
            platform_fee=split.platform_fee,
            payee_earnings=split.payee_earnings,
        ),
    )


@router.post("/billing-portal", response_model=PortalResponse)
async def billing_portal_endpoint(
    payload: BillingPortalRequest,
    session: AsyncSession = Depends(get_db),
    checkout: CheckoutOrchestrator = Depends(get_checkout),
) -> PortalResponse:
    url = await checkout.create_billing_portal(session, email=payload.email)
    return PortalResponse(url=url)
