from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mentorpay.api.deps import get_ledger, parse_uuid
from mentorpay.database import get_db
from mentorpay.schemas.payments import LedgerSummary, PurchaseListResponse, PurchaseRead
from mentorpay.services.ledger import RevenueLedger


router = APIRouter(prefix="/ledger", tags=["ledger"])


@router.get("/summary", response_model=LedgerSummary)
async def ledger_summary_endpoint(
    coach_id: str | None = Query(None, description="Optional coach UUID"),
    session: AsyncSession = Depends(get_db),
    ledger: RevenueLedger = Depends(get_ledger),
) -> LedgerSummary:
    cid = parse_uuid(coach_id, detail="Coach not found") if coach_id is not None else None
    return await ledger.summary(session, coach_id=cid)


@router.get("/purchases", response_model=PurchaseListResponse)
async def list_purchases_endpoint(
    coach_id: str | None = Query(None, description="Optional coach UUID"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_db),
    ledger: RevenueLedger = Depends(get_ledger),
) -> PurchaseListResponse:
    cid = parse_uuid(coach_id, detail="Coach not found") if coach_id is not None else None
    items = await ledger.purchases(session, coach_id=cid, limit=limit, offset=offset)
    return PurchaseListResponse(items=[PurchaseRead.model_validate(i) for i in items], limit=limit, offset=offset)
