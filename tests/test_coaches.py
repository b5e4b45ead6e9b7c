import json
import uuid

from mentorpay.crud.application import get_application
from mentorpay.models.enums import ApplicantKind, ApplicationStatus
from tests._support import create_application, run


def _coach(session_factory, **columns):
    return create_application(session_factory, kind=ApplicantKind.COACH, status=ApplicationStatus.APPROVED, **columns)


def test_put_and_get_rates(client, session_factory):
    coach = _coach(session_factory)

    r = client.put(
        f"/api/v1/coaches/{coach.id}/rates",
        json={"intro_call_rate": "25", "session_rate": "150", "rate_description": "Go-to-market coaching"},
    )
    assert r.status_code == 200, r.text
    rates = r.json()["rates"]
    assert rates["kind"] == "tiered"
    assert rates["session_cents"] == 15000
    assert rates["monthly_cents"] is None

    r = client.get(f"/api/v1/coaches/{coach.id}/rates")
    assert r.json()["rates"] == rates


def test_get_rates_decodes_legacy_flat_rate(client, session_factory):
    coach = _coach(session_factory, rate_sheet="120")

    r = client.get(f"/api/v1/coaches/{coach.id}/rates")
    assert r.json()["rates"] == {"kind": "legacy", "flat_rate_cents": 12000}


def test_rates_for_non_coach_is_404(client, session_factory):
    mentor = create_application(session_factory, kind=ApplicantKind.MENTOR)
    assert client.get(f"/api/v1/coaches/{mentor.id}/rates").status_code == 404


def test_onboarding_link_creates_account_once(client, session_factory, gateway):
    coach = _coach(session_factory)

    r1 = client.post(f"/api/v1/coaches/{coach.id}/connect/onboarding-link")
    assert r1.status_code == 200, r1.text
    r2 = client.post(f"/api/v1/coaches/{coach.id}/connect/onboarding-link")
    assert r2.status_code == 200, r2.text

    assert r1.json()["account_id"] == r2.json()["account_id"]
    assert len(gateway.accounts) == 1
    assert gateway.account_links[0]["return_url"] == "https://app.example.com/coach-dashboard?stripe_onboarding=complete"


def test_account_status_reads_flags_live(client, session_factory, gateway):
    coach = _coach(session_factory)

    r = client.get(f"/api/v1/coaches/{coach.id}/connect/status")
    assert r.json() == {
        "has_account": False,
        "onboarding_complete": False,
        "charges_enabled": False,
        "payouts_enabled": False,
    }

    account_id = client.post(f"/api/v1/coaches/{coach.id}/connect/onboarding-link").json()["account_id"]
    r = client.get(f"/api/v1/coaches/{coach.id}/connect/status")
    assert r.json()["has_account"] is True
    assert r.json()["charges_enabled"] is False

    gateway.enable_charges(account_id)
    r = client.get(f"/api/v1/coaches/{coach.id}/connect/status")
    assert r.json()["onboarding_complete"] is True
    assert r.json()["payouts_enabled"] is True


def test_reset_then_onboard_yields_a_new_account(client, session_factory, gateway):
    coach = _coach(session_factory)
    first = client.post(f"/api/v1/coaches/{coach.id}/connect/onboarding-link").json()["account_id"]

    r = client.post(f"/api/v1/coaches/{coach.id}/connect/reset", json={"confirm": True})
    assert r.status_code == 200, r.text
    assert r.json()["previous_account_id"] == first

    assert client.get(f"/api/v1/coaches/{coach.id}/connect/status").json()["has_account"] is False

    second = client.post(f"/api/v1/coaches/{coach.id}/connect/onboarding-link").json()["account_id"]
    assert second != first


def test_reset_requires_explicit_confirmation(client, session_factory):
    coach = _coach(session_factory, connected_account_id="acct_existing")

    r = client.post(f"/api/v1/coaches/{coach.id}/connect/reset", json={})
    assert r.status_code == 422

    r = client.get(f"/api/v1/applications/{coach.id}")
    assert r.json()["connected_account_id"] == "acct_existing"


def test_connect_endpoints_404_for_unknown_coach(client):
    missing = uuid.uuid4()
    assert client.post(f"/api/v1/coaches/{missing}/connect/onboarding-link").status_code == 404
    assert client.get(f"/api/v1/coaches/{missing}/connect/status").status_code == 404


def test_rates_are_stored_as_dollar_strings(client, session_factory):
    coach = _coach(session_factory)
    client.put(f"/api/v1/coaches/{coach.id}/rates", json={"monthly_rate": "500"})

    stored = run(session_factory, lambda s: get_application(s, application_id=coach.id))
    assert json.loads(stored.rate_sheet) == {
        "introCallRate": "",
        "sessionRate": "",
        "monthlyRate": "500",
        "rateDescription": "",
    }
