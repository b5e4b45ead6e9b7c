from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from mentorpay.api.deps import get_account_manager, get_ledger, parse_uuid
from mentorpay.crud.application import get_application, set_rate_sheet
from mentorpay.database import get_db
from mentorpay.models.enums import ApplicantKind
from mentorpay.schemas.payments import (
    AccountResetRequest,
    AccountResetResponse,
    AccountStatusRead,
    LedgerSummary,
    OnboardingLinkResponse,
)
from mentorpay.schemas.rate_sheet import CoachRatesRead, RateSheetUpdate, decode_rate_sheet, encode_rate_sheet
from mentorpay.services.connected_accounts import ConnectedAccountManager
from mentorpay.services.ledger import RevenueLedger


router = APIRouter(prefix="/coaches", tags=["coaches"])


@router.get("/{coach_id}/rates", response_model=CoachRatesRead)
async def get_rates_endpoint(
    coach_id: str,
    session: AsyncSession = Depends(get_db),
) -> CoachRatesRead:
    cid = parse_uuid(coach_id, detail="Coach not found")
    coach = await get_application(session, application_id=cid, kind=ApplicantKind.COACH)
    if coach is None:
        raise HTTPException(status_code=404, detail="Coach not found")
    return CoachRatesRead(coach_id=coach.id, rates=decode_rate_sheet(coach.rate_sheet))


@router.put("/{coach_id}/rates", response_model=CoachRatesRead)
async def put_rates_endpoint(
    coach_id: str,
    payload: RateSheetUpdate,
    session: AsyncSession = Depends(get_db),
) -> CoachRatesRead:
    cid = parse_uuid(coach_id, detail="Coach not found")
    coach = await get_application(session, application_id=cid, kind=ApplicantKind.COACH)
    if coach is None:
        raise HTTPException(status_code=404, detail="Coach not found")

    raw = encode_rate_sheet(payload)
    await set_rate_sheet(session, coach=coach, raw=raw)
    return CoachRatesRead(coach_id=coach.id, rates=decode_rate_sheet(raw))


@router.post("/{coach_id}/connect/onboarding-link", response_model=OnboardingLinkResponse)
async def onboarding_link_endpoint(
    coach_id: str,
    session: AsyncSession = Depends(get_db),
    manager: ConnectedAccountManager = Depends(get_account_manager),
) -> OnboardingLinkResponse:
    cid = parse_uuid(coach_id, detail="Coach not found")
    account_id, url = await manager.onboarding_link(session, coach_id=cid)
    return OnboardingLinkResponse(account_id=account_id, url=url)


@router.get("/{coach_id}/connect/status", response_model=AccountStatusRead)
async def account_status_endpoint(
    coach_id: str,
    session: AsyncSession = Depends(get_db),
    manager: ConnectedAccountManager = Depends(get_account_manager),
) -> AccountStatusRead:
    cid = parse_uuid(coach_id, detail="Coach not found")
    return await manager.account_status(session, coach_id=cid)


@router.post("/{coach_id}/connect/reset", response_model=AccountResetResponse)
async def reset_account_endpoint(
    coach_id: str,
    payload: AccountResetRequest,
    session: AsyncSession = Depends(get_db),
    manager: ConnectedAccountManager = Depends(get_account_manager),
) -> AccountResetResponse:
    """Forget the coach's cached Stripe account so onboarding can start over.

    Requires an explicit `{"confirm": true}`.
    """

    cid = parse_uuid(coach_id, detail="Coach not found")
    if not payload.confirm:
        raise HTTPException(status_code=422, detail="Reset requires confirm=true")

    previous = await manager.reset_account(session, coach_id=cid)
    return AccountResetResponse(coach_id=cid, previous_account_id=previous)


@router.get("/{coach_id}/earnings", response_model=LedgerSummary)
async def coach_earnings_endpoint(
    coach_id: str,
    session: AsyncSession = Depends(get_db),
    ledger: RevenueLedger = Depends(get_ledger),
) -> LedgerSummary:
    cid = parse_uuid(coach_id, detail="Coach not found")
    return await ledger.coach_earnings(session, coach_id=cid)
