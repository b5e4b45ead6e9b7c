from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class Purchase(Base):
    """Revenue ledger entry. Written once per checkout session, never updated."""

    __tablename__ = "purchases"
    __table_args__ = (
        CheckConstraint("platform_fee + payee_earnings = gross_amount", name="ck_purchases_split_sums"),
        CheckConstraint("platform_fee >= 0 AND payee_earnings >= 0", name="ck_purchases_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    coach_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("applications.id"), nullable=False, index=True)

    payer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    payer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    service_type: Mapped[str] = mapped_column(String(20), nullable=False)

    gross_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    platform_fee: Mapped[int] = mapped_column(Integer, nullable=False)
    payee_earnings: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default="usd")

    source_session_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, server_default="completed")

    created_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
