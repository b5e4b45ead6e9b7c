from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from mentorpay.crud.application import get_application
from mentorpay.crud.purchase import list_purchases, summarize_purchases
from mentorpay.errors import NotFound
from mentorpay.models.enums import ApplicantKind
from mentorpay.models.purchase import Purchase
from mentorpay.schemas.payments import LedgerSummary


class RevenueLedger:
    """Read-only views over recorded purchases."""

    async def summary(self, session: AsyncSession, *, coach_id: UUID | None = None) -> LedgerSummary:
        totals = await summarize_purchases(session, coach_id=coach_id)
        return LedgerSummary(coach_id=coach_id, **totals)

    async def coach_earnings(self, session: AsyncSession, *, coach_id: UUID) -> LedgerSummary:
        coach = await get_application(session, application_id=coach_id, kind=ApplicantKind.COACH)
        if coach is None:
            raise NotFound("Coach not found")
        return await self.summary(session, coach_id=coach_id)

    async def purchases(
        self,
        session: AsyncSession,
        *,
        coach_id: UUID | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Purchase]:
        return await list_purchases(session, coach_id=coach_id, limit=limit, offset=offset)
