from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from mentorpay.models.enums import ServiceType
from mentorpay.schemas._email import Email


class AccountStatusRead(BaseModel):
    has_account: bool
    onboarding_complete: bool = False
    charges_enabled: bool = False
    payouts_enabled: bool = False


class OnboardingLinkResponse(BaseModel):
    account_id: str
    url: str


class AccountResetRequest(BaseModel):
    confirm: bool = False


class AccountResetResponse(BaseModel):
    coach_id: UUID
    previous_account_id: str | None = None


class MembershipCheckoutRequest(BaseModel):
    email: Email


class CoachServiceCheckoutRequest(BaseModel):
    coach_id: UUID
    service_type: ServiceType
    payer_email: Email
    payer_name: str | None = Field(default=None, max_length=255)


class BillingPortalRequest(BaseModel):
    email: Email


class CheckoutResponse(BaseModel):
    session_id: str
    url: str


class SplitRead(BaseModel):
    gross_amount: int
    platform_fee: int
    payee_earnings: int


class CoachServiceCheckoutResponse(CheckoutResponse):
    service_type: ServiceType
    split: SplitRead


class PortalResponse(BaseModel):
    url: str


class PurchaseRead(BaseModel):
    id: UUID
    coach_id: UUID

    payer_email: str
    payer_name: str | None = None
    service_type: str

    gross_amount: int
    platform_fee: int
    payee_earnings: int
    currency: str

    source_session_id: str
    status: str

    created_at: datetime

    class Config:
        from_attributes = True


class PurchaseListResponse(BaseModel):
    items: list[PurchaseRead]
    limit: int
    offset: int


class LedgerSummary(BaseModel):
    coach_id: UUID | None = None
    purchase_count: int = 0
    gross_total: int = 0
    platform_fee_total: int = 0
    payee_earnings_total: int = 0


class WebhookAck(BaseModel):
    received: bool = True
    event_type: str
    outcome: str
