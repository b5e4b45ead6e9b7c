import uuid

from mentorpay.models.enums import ApplicantKind, ApplicationStatus
from tests._support import create_application


def _submit(client, kind: str, email: str, full_name: str = "Jane Doe", **form_data):
    return client.post(
        f"/api/v1/applications/{kind}",
        json={"email": email, "full_name": full_name, "form_data": form_data},
    )


def test_submit_entrepreneur_creates_unpaid_application(client):
    r = _submit(client, "entrepreneur", "Jane@Example.com", idea="Marketplace for tutors")
    assert r.status_code == 201, r.text

    data = r.json()
    assert data["kind"] == "entrepreneur"
    assert data["email"] == "jane@example.com"
    assert data["status"] == "submitted"
    assert data["payment_status"] == "unpaid"
    assert data["is_disabled"] is False
    assert data["form_data"] == {"idea": "Marketplace for tutors"}


def test_submit_non_entrepreneur_has_no_payment_status(client):
    r = _submit(client, "mentor", "mentor@example.com")
    assert r.status_code == 201, r.text
    assert r.json()["payment_status"] is None


def test_submit_rejects_unknown_kind(client):
    r = _submit(client, "astronaut", "a@example.com")
    assert r.status_code == 422


def test_resubmission_merges_form_data_and_restarts_review(client, session_factory):
    app = create_application(
        session_factory,
        kind=ApplicantKind.COACH,
        email="coach@example.com",
        status=ApplicationStatus.REJECTED,
    )

    r = _submit(client, "coach", "coach@example.com", full_name="Coach Again", expertise="Sales")
    assert r.status_code == 200, r.text

    data = r.json()
    assert data["id"] == str(app.id)
    assert data["status"] == "submitted"
    assert data["full_name"] == "Coach Again"
    assert data["form_data"]["expertise"] == "Sales"


def test_resubmission_keeps_pending_review_status(client, session_factory):
    create_application(session_factory, kind=ApplicantKind.INVESTOR, email="inv@example.com", status=ApplicationStatus.PENDING)

    r = _submit(client, "investor", "inv@example.com")
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "pending"


def test_resubmission_of_approved_application_is_refused(client, session_factory):
    create_application(session_factory, kind=ApplicantKind.MENTOR, email="m@example.com", status=ApplicationStatus.APPROVED)

    r = _submit(client, "mentor", "m@example.com")
    assert r.status_code == 422
    assert "already approved" in r.json()["detail"]


def test_same_email_can_apply_under_different_kinds(client):
    assert _submit(client, "mentor", "multi@example.com").status_code == 201
    assert _submit(client, "coach", "multi@example.com").status_code == 201


def test_list_applications_filters_by_kind_and_status(client, session_factory):
    create_application(session_factory, kind=ApplicantKind.COACH, status=ApplicationStatus.APPROVED)
    create_application(session_factory, kind=ApplicantKind.COACH)
    create_application(session_factory, kind=ApplicantKind.MENTOR)

    r = client.get("/api/v1/applications", params={"kind": "coach"})
    assert r.status_code == 200, r.text
    assert r.json()["total"] == 2

    r = client.get("/api/v1/applications", params={"kind": "coach", "status": "approved"})
    body = r.json()
    assert body["total"] == 1
    assert body["items"][0]["status"] == "approved"


def test_list_applications_rejects_unknown_status_filter(client):
    r = client.get("/api/v1/applications", params={"status": "archived"})
    assert r.status_code == 422


def test_get_application_detail_and_not_found(client, session_factory):
    app = create_application(session_factory, kind=ApplicantKind.MENTOR, full_name="Mia Mentor")

    r = client.get(f"/api/v1/applications/{app.id}")
    assert r.status_code == 200
    assert r.json()["full_name"] == "Mia Mentor"

    assert client.get(f"/api/v1/applications/{uuid.uuid4()}").status_code == 404
    assert client.get("/api/v1/applications/not-a-uuid").status_code == 404


def test_disabling_an_approved_record_removes_dashboard_access(client, session_factory):
    app = create_application(session_factory, kind=ApplicantKind.COACH, status=ApplicationStatus.APPROVED)

    r = client.get(f"/api/v1/applications/{app.id}/dashboard-access")
    assert r.json()["access"] == "full"

    r = client.patch(f"/api/v1/applications/{app.id}/disabled", json={"is_disabled": True})
    assert r.status_code == 200, r.text
    assert r.json()["is_disabled"] is True

    r = client.get(f"/api/v1/applications/{app.id}/dashboard-access")
    assert r.json()["access"] == "none"
