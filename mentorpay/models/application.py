from __future__ import annotations

import uuid

from sqlalchemy import Boolean, CheckConstraint, DateTime, Index, String, Text, UniqueConstraint, Uuid, false, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, JSONType, utcnow


class Application(Base):
    __tablename__ = "applications"
    __table_args__ = (
        UniqueConstraint("kind", "email", name="uq_applications_kind_email"),
        CheckConstraint(
            "status IN ('submitted', 'pending', 'pre-approved', 'approved', 'rejected', 'terminated')",
            name="ck_applications_status",
        ),
        Index("idx_applications_kind_status_created", "kind", "status", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    kind: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    email: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, server_default="submitted")

    # Entrepreneur only; NULL for every other kind.
    payment_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    payment_date: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)
    stripe_customer_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    stripe_subscription_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # Checkout session that last granted `paid`; a replay of it must not grant again.
    membership_session_id: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)

    # Coach only.
    connected_account_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    rate_sheet: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_disabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    form_data: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    created_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at: Mapped[object] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )
