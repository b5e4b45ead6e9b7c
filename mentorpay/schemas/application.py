from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from mentorpay.models.enums import ApplicationStatus, DashboardAccess
from mentorpay.schemas._email import Email


class ApplicationSubmit(BaseModel):
    email: Email
    full_name: str = Field(min_length=1, max_length=255)
    form_data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("full_name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("full_name must not be blank")
        return value


class StatusUpdate(BaseModel):
    # Kept as a plain string so unknown values reach the state machine and
    # come back as InvalidStatus rather than a generic validation error.
    status: str


class DisabledUpdate(BaseModel):
    is_disabled: bool


class ApplicationRead(BaseModel):
    id: UUID
    kind: str

    email: str
    full_name: str
    status: str

    payment_status: str | None = None
    payment_date: datetime | None = None
    stripe_customer_id: str | None = None
    stripe_subscription_id: str | None = None
    membership_session_id: str | None = None

    connected_account_id: str | None = None

    is_disabled: bool
    form_data: dict[str, Any] = Field(default_factory=dict)

    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ApplicationListResponse(BaseModel):
    items: list[ApplicationRead]
    total: int
    limit: int
    offset: int


class TransitionResponse(BaseModel):
    application: ApplicationRead
    previous_status: ApplicationStatus


class DashboardAccessRead(BaseModel):
    application_id: UUID
    kind: str
    status: str
    payment_status: str | None = None
    access: DashboardAccess
