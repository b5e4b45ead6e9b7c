from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mentorpay.crud.base import BaseCRUD
from mentorpay.models.purchase import Purchase


purchases = BaseCRUD(Purchase)


async def get_purchase_by_session(session: AsyncSession, *, source_session_id: str) -> Purchase | None:
    stmt = select(Purchase).where(Purchase.source_session_id == source_session_id)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def list_purchases(
    session: AsyncSession,
    *,
    coach_id: UUID | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Purchase]:
    return await purchases.get_multi(
        session,
        skip=offset,
        limit=limit,
        filters={"coach_id": coach_id},
        order_by=Purchase.created_at.desc(),
    )


async def summarize_purchases(session: AsyncSession, *, coach_id: UUID | None = None) -> dict[str, int]:
    stmt = select(
        func.count(Purchase.id),
        func.coalesce(func.sum(Purchase.gross_amount), 0),
        func.coalesce(func.sum(Purchase.platform_fee), 0),
        func.coalesce(func.sum(Purchase.payee_earnings), 0),
    )
    if coach_id is not None:
        stmt = stmt.where(Purchase.coach_id == coach_id)

    count, gross, fee, earnings = (await session.execute(stmt)).one()
    return {
        "purchase_count": int(count),
        "gross_total": int(gross),
        "platform_fee_total": int(fee),
        "payee_earnings_total": int(earnings),
    }
