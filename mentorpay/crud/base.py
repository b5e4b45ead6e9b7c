from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession


TModel = TypeVar("TModel")


def _to_dict(obj: Any, *, exclude_unset: bool = True) -> dict[str, Any]:
    """Best-effort conversion for Pydantic models / plain dict payloads."""

    if obj is None:
        return {}
    if isinstance(obj, dict):
        return obj
    if isinstance(obj, BaseModel):
        return obj.model_dump(exclude_unset=exclude_unset)

    return dict(vars(obj))


class BaseCRUD(Generic[TModel]):
    """Generic CRUD helper for SQLAlchemy (async).

    Notes:
    - Methods intentionally do NOT commit. Callers control transaction boundaries.
    - Filters with a None value are skipped, unknown filter keys are ignored.
    """

    def __init__(self, model: type[TModel]) -> None:
        self.model = model

    def _filtered(self, stmt, filters: dict[str, Any] | None):
        for key, value in (filters or {}).items():
            if value is None or not hasattr(self.model, key):
                continue
            stmt = stmt.where(getattr(self.model, key) == value)
        return stmt

    async def get_multi(
        self,
        session: AsyncSession,
        *,
        skip: int = 0,
        limit: int = 100,
        filters: dict[str, Any] | None = None,
        order_by: Any | None = None,
    ) -> list[TModel]:
        q = self._filtered(select(self.model), filters)
        if order_by is not None:
            q = q.order_by(order_by)
        q = q.offset(max(skip, 0)).limit(max(1, limit))
        r = await session.execute(q)
        return list(r.scalars().all())

    async def count(self, session: AsyncSession, *, filters: dict[str, Any] | None = None) -> int:
        q = self._filtered(select(func.count()).select_from(self.model), filters)
        return int((await session.execute(q)).scalar_one())

    async def update(self, session: AsyncSession, *, db_obj: TModel, obj_in: Any) -> TModel:
        for field, value in _to_dict(obj_in).items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)

        session.add(db_obj)
        await session.flush()
        return db_obj
