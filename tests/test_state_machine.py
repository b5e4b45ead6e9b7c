import asyncio

import pytest

from mentorpay.crud.audit_log import list_audit_entries
from mentorpay.errors import ConcurrentUpdate
from mentorpay.models.application import Application
from mentorpay.models.enums import ApplicantKind, ApplicationStatus, DashboardAccess
from mentorpay.services import state_machine as sm
from mentorpay.services.state_machine import ApplicationStateMachine, can_transition, dashboard_access
from tests._support import create_application, run


S = ApplicationStatus


@pytest.mark.parametrize(
    "current,target",
    [
        (S.SUBMITTED, S.PRE_APPROVED),
        (S.SUBMITTED, S.APPROVED),
        (S.SUBMITTED, S.REJECTED),
        (S.PENDING, S.PRE_APPROVED),
        (S.PRE_APPROVED, S.APPROVED),
        (S.PRE_APPROVED, S.TERMINATED),
        (S.APPROVED, S.REJECTED),
        (S.APPROVED, S.TERMINATED),
    ],
)
def test_allowed_transitions(current, target):
    assert can_transition(current, target)


@pytest.mark.parametrize(
    "current,target",
    [
        (S.SUBMITTED, S.TERMINATED),
        (S.SUBMITTED, S.SUBMITTED),
        (S.APPROVED, S.PRE_APPROVED),
        (S.REJECTED, S.APPROVED),
        (S.TERMINATED, S.APPROVED),
        (S.TERMINATED, S.SUBMITTED),
    ],
)
def test_disallowed_transitions(current, target):
    assert not can_transition(current, target)


def _app(kind: ApplicantKind, status: ApplicationStatus, *, is_disabled: bool = False) -> Application:
    return Application(kind=kind.value, status=status.value, is_disabled=is_disabled, email="x@example.com", full_name="X")


def test_dashboard_access_rules():
    assert dashboard_access(_app(ApplicantKind.MENTOR, S.APPROVED)) == DashboardAccess.FULL
    assert dashboard_access(_app(ApplicantKind.ENTREPRENEUR, S.PRE_APPROVED)) == DashboardAccess.VIEW_ONLY
    assert dashboard_access(_app(ApplicantKind.COACH, S.PRE_APPROVED)) == DashboardAccess.NONE
    assert dashboard_access(_app(ApplicantKind.ENTREPRENEUR, S.SUBMITTED)) == DashboardAccess.NONE
    assert dashboard_access(_app(ApplicantKind.ENTREPRENEUR, S.APPROVED, is_disabled=True)) == DashboardAccess.NONE


def test_pre_approval_sends_password_setup_link(client, session_factory, notifier):
    app = create_application(session_factory, kind=ApplicantKind.ENTREPRENEUR, email="ent@example.com")

    r = client.patch(f"/api/v1/applications/{app.id}/status", json={"status": "pre-approved"})
    assert r.status_code == 200, r.text

    body = r.json()
    assert body["previous_status"] == "submitted"
    assert body["application"]["status"] == "pre-approved"

    template, to, fields = notifier.sent[-1]
    assert template == "password_setup"
    assert to == "ent@example.com"
    assert fields["link"].startswith("https://app.example.com/set-password?token=")


def test_approval_after_pre_approval_sends_approved_email_only(client, session_factory, notifier):
    app = create_application(session_factory, kind=ApplicantKind.ENTREPRENEUR, status=S.PRE_APPROVED)

    r = client.patch(f"/api/v1/applications/{app.id}/status", json={"status": "approved"})
    assert r.status_code == 200, r.text
    assert notifier.templates() == ["application_approved"]


def test_rejection_sends_rejection_email(client, session_factory, notifier):
    app = create_application(session_factory, kind=ApplicantKind.MENTOR)

    r = client.patch(f"/api/v1/applications/{app.id}/status", json={"status": "rejected"})
    assert r.status_code == 200, r.text
    assert notifier.templates() == ["application_rejected"]


def test_no_shortcut_out_of_terminal_states(client, session_factory, notifier):
    app = create_application(session_factory, kind=ApplicantKind.COACH, status=S.TERMINATED)

    r = client.patch(f"/api/v1/applications/{app.id}/status", json={"status": "approved"})
    assert r.status_code == 422
    assert "terminated -> approved" in r.json()["detail"]
    assert notifier.sent == []


def test_unknown_status_value_is_rejected(client, session_factory):
    app = create_application(session_factory, kind=ApplicantKind.COACH)

    r = client.patch(f"/api/v1/applications/{app.id}/status", json={"status": "archived"})
    assert r.status_code == 422
    assert "Invalid status" in r.json()["detail"]


def test_transition_on_missing_application_is_404(client):
    r = client.patch("/api/v1/applications/00000000-0000-0000-0000-000000000000/status", json={"status": "approved"})
    assert r.status_code == 404


def test_lost_compare_and_set_raises_concurrent_update(monkeypatch, settings, session_factory, notifier):
    app = create_application(session_factory, kind=ApplicantKind.MENTOR)

    async def _lost_race(session, **kwargs):
        return False

    monkeypatch.setattr(sm, "compare_and_set_status", _lost_race)
    machine = ApplicationStateMachine(settings=settings, notifier=notifier)

    async def _run():
        async with session_factory() as session:
            await machine.transition(session, application_id=app.id, new_status="approved")

    with pytest.raises(ConcurrentUpdate):
        asyncio.run(_run())
    assert notifier.sent == []


def test_failed_side_effect_keeps_the_transition(client, session_factory):
    class _ExplodingNotifier:
        admin_email = "admin@example.com"

        def send(self, *args, **kwargs):
            raise RuntimeError("smtp down")

        def notify_admin(self, *args, **kwargs):
            raise RuntimeError("smtp down")

    client.app.state.notifier = _ExplodingNotifier()
    app = create_application(session_factory, kind=ApplicantKind.MENTOR)

    r = client.patch(f"/api/v1/applications/{app.id}/status", json={"status": "rejected"})
    assert r.status_code == 200, r.text

    r = client.get(f"/api/v1/applications/{app.id}")
    assert r.json()["status"] == "rejected"


def test_transitions_are_audited(client, session_factory):
    app = create_application(session_factory, kind=ApplicantKind.MENTOR)
    client.patch(
        f"/api/v1/applications/{app.id}/status",
        json={"status": "approved"},
        headers={"X-Request-ID": "audit-req"},
    )

    entries = run(session_factory, lambda s: list_audit_entries(s, entity_id=app.id))
    change = next(e for e in entries if e.action == "status_change")
    assert change.old_value == {"status": "submitted"}
    assert change.new_value == {"status": "approved"}
    assert change.request_id == "audit-req"
