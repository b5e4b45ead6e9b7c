from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mentorpay.models.audit_log import AuditLog


def record_audit(
    session: AsyncSession,
    *,
    entity_type: str,
    entity_id: Any,
    action: str,
    old_value: dict | None = None,
    new_value: dict | None = None,
    change_summary: str | None = None,
    request_id: str | None = None,
) -> AuditLog:
    """Stage an audit row in the caller's transaction."""

    entry = AuditLog(
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        old_value=old_value,
        new_value=new_value,
        change_summary=change_summary,
        request_id=request_id,
    )
    session.add(entry)
    return entry


async def list_audit_entries(session: AsyncSession, *, entity_id: Any, limit: int = 50) -> list[AuditLog]:
    stmt = (
        select(AuditLog)
        .where(AuditLog.entity_id == str(entity_id))
        .order_by(AuditLog.created_at.desc())
        .limit(limit)
    )
    res = await session.execute(stmt)
    return list(res.scalars().all())
