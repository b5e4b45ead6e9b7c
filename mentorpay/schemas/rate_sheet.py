"""Coach rate sheets.

Coaches store prices as a JSON blob of dollar strings::

    {"introCallRate": "25", "sessionRate": "150", "monthlyRate": "500", "rateDescription": "..."}

Older coach records hold a single flat hourly rate instead (``"150"`` or
``{"hourlyRate": "150"}``). Both shapes are decoded here, once, into an explicit
tagged union so the rest of the code never parses the raw column.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
import json
from typing import Annotated, Any, Literal, Union
from uuid import UUID

from pydantic import BaseModel, Field

from mentorpay.models.enums import ServiceType


TIERED_KEYS = {
    ServiceType.INTRO: "introCallRate",
    ServiceType.SESSION: "sessionRate",
    ServiceType.MONTHLY: "monthlyRate",
}


class LegacyRateSheet(BaseModel):
    kind: Literal["legacy"] = "legacy"
    flat_rate_cents: int = Field(ge=0)


class TieredRateSheet(BaseModel):
    kind: Literal["tiered"] = "tiered"
    intro_cents: int | None = Field(default=None, ge=0)
    session_cents: int | None = Field(default=None, ge=0)
    monthly_cents: int | None = Field(default=None, ge=0)
    description: str | None = None


RateSheet = Annotated[Union[LegacyRateSheet, TieredRateSheet], Field(discriminator="kind")]


class CoachRatesRead(BaseModel):
    coach_id: UUID
    rates: RateSheet | None = None


class RateSheetUpdate(BaseModel):
    """Dollar amounts as entered on the coach dashboard."""

    intro_call_rate: Decimal | None = Field(default=None, ge=0)
    session_rate: Decimal | None = Field(default=None, ge=0)
    monthly_rate: Decimal | None = Field(default=None, ge=0)
    rate_description: str | None = Field(default=None, max_length=2000)


def dollars_to_cents(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    raw = str(value).strip().replace("$", "").replace(",", "")
    if not raw:
        return None
    try:
        amount = Decimal(raw)
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount < 0:
        return None
    return int((amount * 100).to_integral_value(rounding=ROUND_HALF_UP))


def cents_to_dollars(cents: int) -> str:
    whole, rest = divmod(cents, 100)
    return str(whole) if rest == 0 else f"{whole}.{rest:02d}"


def decode_rate_sheet(raw: str | None) -> LegacyRateSheet | TieredRateSheet | None:
    if raw is None or not raw.strip():
        return None

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        parsed = raw

    if isinstance(parsed, dict):
        if any(key in parsed for key in TIERED_KEYS.values()):
            return TieredRateSheet(
                intro_cents=dollars_to_cents(parsed.get("introCallRate")),
                session_cents=dollars_to_cents(parsed.get("sessionRate")),
                monthly_cents=dollars_to_cents(parsed.get("monthlyRate")),
                description=parsed.get("rateDescription") or None,
            )
        parsed = parsed.get("hourlyRate")

    flat = dollars_to_cents(parsed)
    if flat is None:
        return None
    return LegacyRateSheet(flat_rate_cents=flat)


def encode_rate_sheet(update: RateSheetUpdate) -> str:
    def _fmt(value: Decimal | None) -> str:
        cents = dollars_to_cents(value)
        return "" if cents is None else cents_to_dollars(cents)

    return json.dumps(
        {
            "introCallRate": _fmt(update.intro_call_rate),
            "sessionRate": _fmt(update.session_rate),
            "monthlyRate": _fmt(update.monthly_rate),
            "rateDescription": update.rate_description or "",
        }
    )


def price_for(sheet: LegacyRateSheet | TieredRateSheet | None, service_type: ServiceType) -> int | None:
    """Price in cents for a service, or None when the coach has not set one."""

    if sheet is None:
        return None
    if isinstance(sheet, LegacyRateSheet):
        return sheet.flat_rate_cents or None

    price = {
        ServiceType.INTRO: sheet.intro_cents,
        ServiceType.SESSION: sheet.session_cents,
        ServiceType.MONTHLY: sheet.monthly_cents,
    }[service_type]
    # A zero tier means "not offered".
    return price or None
