import uuid

from mentorpay.models.enums import ApplicantKind, ApplicationStatus
from tests._support import completed_session, create_application, event_payload, marketplace_metadata, sign


def _record_purchase(client, coach_id, *, session_id: str, gross: int):
    fee = gross * 20 // 100
    obj = completed_session(
        session_id=session_id,
        amount_total=gross,
        metadata=marketplace_metadata(coach_id, gross=gross, fee=fee),
    )
    payload = event_payload("checkout.session.completed", obj)
    r = client.post("/api/v1/webhooks/stripe", content=payload, headers={"Stripe-Signature": sign(payload)})
    assert r.status_code == 200, r.text


def _coach(session_factory):
    return create_application(session_factory, kind=ApplicantKind.COACH, status=ApplicationStatus.APPROVED)


def test_summary_totals_across_all_coaches(client, session_factory):
    a = _coach(session_factory)
    b = _coach(session_factory)
    _record_purchase(client, a.id, session_id="cs_a1", gross=15000)
    _record_purchase(client, a.id, session_id="cs_a2", gross=2500)
    _record_purchase(client, b.id, session_id="cs_b1", gross=999)

    r = client.get("/api/v1/ledger/summary")
    assert r.status_code == 200, r.text
    assert r.json() == {
        "coach_id": None,
        "purchase_count": 3,
        "gross_total": 18499,
        "platform_fee_total": 3000 + 500 + 199,
        "payee_earnings_total": 12000 + 2000 + 800,
    }


def test_coach_earnings_only_counts_that_coach(client, session_factory):
    a = _coach(session_factory)
    b = _coach(session_factory)
    _record_purchase(client, a.id, session_id="cs_a1", gross=15000)
    _record_purchase(client, b.id, session_id="cs_b1", gross=2500)

    r = client.get(f"/api/v1/coaches/{a.id}/earnings")
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["coach_id"] == str(a.id)
    assert (body["purchase_count"], body["gross_total"], body["payee_earnings_total"]) == (1, 15000, 12000)

    r = client.get("/api/v1/ledger/summary", params={"coach_id": str(b.id)})
    assert r.json()["gross_total"] == 2500


def test_coach_with_no_sales_has_zero_earnings(client, session_factory):
    coach = _coach(session_factory)

    body = client.get(f"/api/v1/coaches/{coach.id}/earnings").json()
    assert body["purchase_count"] == 0
    assert body["gross_total"] == 0


def test_earnings_for_non_coach_is_404(client, session_factory):
    mentor = create_application(session_factory, kind=ApplicantKind.MENTOR)

    assert client.get(f"/api/v1/coaches/{mentor.id}/earnings").status_code == 404
    assert client.get(f"/api/v1/coaches/{uuid.uuid4()}/earnings").status_code == 404


def test_purchase_listing_filters_and_paginates(client, session_factory):
    a = _coach(session_factory)
    b = _coach(session_factory)
    for i in range(3):
        _record_purchase(client, a.id, session_id=f"cs_a{i}", gross=1000)
    _record_purchase(client, b.id, session_id="cs_b0", gross=1000)

    r = client.get("/api/v1/ledger/purchases", params={"coach_id": str(a.id), "limit": 2})
    body = r.json()
    assert body["limit"] == 2
    assert len(body["items"]) == 2
    assert {i["coach_id"] for i in body["items"]} == {str(a.id)}

    r = client.get("/api/v1/ledger/purchases", params={"coach_id": str(a.id), "limit": 2, "offset": 2})
    assert len(r.json()["items"]) == 1
