import json

import pytest

from mentorpay.models.enums import ServiceType
from mentorpay.schemas.rate_sheet import (
    LegacyRateSheet,
    RateSheetUpdate,
    TieredRateSheet,
    decode_rate_sheet,
    encode_rate_sheet,
    price_for,
)
from mentorpay.services.checkout import compute_split


@pytest.mark.parametrize("gross", [0, 1, 4, 5, 99, 999, 2500, 15000, 123457])
def test_split_always_sums_to_gross_and_floors_the_fee(gross):
    split = compute_split(gross, 20)
    assert split.platform_fee + split.payee_earnings == gross
    assert split.platform_fee == gross * 20 // 100


def test_split_rounding_remainder_goes_to_the_payee():
    split = compute_split(999, 20)
    assert split.platform_fee == 199
    assert split.payee_earnings == 800


def test_split_rejects_non_integer_and_negative_amounts():
    with pytest.raises(TypeError):
        compute_split(150.0, 20)
    with pytest.raises(TypeError):
        compute_split(True, 20)
    with pytest.raises(ValueError):
        compute_split(-1, 20)
    with pytest.raises(ValueError):
        compute_split(100, 101)


def test_decode_tiered_rate_sheet():
    raw = json.dumps({"introCallRate": "25", "sessionRate": "150", "monthlyRate": "", "rateDescription": "Sales coaching"})
    sheet = decode_rate_sheet(raw)

    assert isinstance(sheet, TieredRateSheet)
    assert sheet.intro_cents == 2500
    assert sheet.session_cents == 15000
    assert sheet.monthly_cents is None
    assert sheet.description == "Sales coaching"


@pytest.mark.parametrize("raw", ["150", "$150.00", '{"hourlyRate": "150"}', "150.004"])
def test_decode_legacy_flat_rate(raw):
    sheet = decode_rate_sheet(raw)
    assert isinstance(sheet, LegacyRateSheet)
    assert sheet.flat_rate_cents == 15000


@pytest.mark.parametrize("raw", [None, "", "   ", "call me", '{"notes": "tbd"}'])
def test_decode_unusable_rate_sheet_is_none(raw):
    assert decode_rate_sheet(raw) is None


def test_price_for_legacy_sheet_applies_flat_rate_to_every_service():
    sheet = LegacyRateSheet(flat_rate_cents=9000)
    assert [price_for(sheet, t) for t in ServiceType] == [9000, 9000, 9000]


def test_price_for_tiered_sheet_treats_missing_or_zero_tiers_as_not_offered():
    sheet = TieredRateSheet(intro_cents=0, session_cents=15000, monthly_cents=None)
    assert price_for(sheet, ServiceType.SESSION) == 15000
    assert price_for(sheet, ServiceType.INTRO) is None
    assert price_for(sheet, ServiceType.MONTHLY) is None
    assert price_for(None, ServiceType.SESSION) is None


def test_encoded_rate_sheet_decodes_to_the_same_prices():
    update = RateSheetUpdate(intro_call_rate="25", session_rate="150.5", monthly_rate=None, rate_description="Weekly")
    sheet = decode_rate_sheet(encode_rate_sheet(update))

    assert isinstance(sheet, TieredRateSheet)
    assert (sheet.intro_cents, sheet.session_cents, sheet.monthly_cents) == (2500, 15050, None)
    assert sheet.description == "Weekly"
