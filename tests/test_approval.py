import pytest
from jinja2 import TemplateError
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from dinedesk_admin import approval
from dinedesk_auth.states import Decision
from dinedesk_ext import email as email_ext
from dinedesk_ext.db import db
from dinedesk_ext.errors import AlreadyProcessedError, NotFoundError, UpstreamError, ValidationError
from dinedesk_models.audit import AuditLog
from dinedesk_models.signup_request import SignupRequest
from dinedesk_models.user import User
from tests.conftest import create_pending_signup, create_super_admin, create_user, login


def test_approve_marks_account_and_notifies(app, outbox):
    user, signup_request = create_pending_signup()
    user_id, request_id = user.id, signup_request.id

    outcome = approval.decide(request_id, "approved")

    assert outcome.success and outcome.status == "approved"
    assert outcome.user_deleted is False
    assert outcome.email_sent is True
    assert outcome.message == "Request approved successfully"
    assert db.session.get(User, user_id).status == "approved"
    assert db.session.get(SignupRequest, request_id).status == "approved"
    assert [mail["html_template"] for mail in outbox] == ["emails/approval.html"]


def test_reject_deletes_account_and_frees_email(app, outbox):
    user, signup_request = create_pending_signup()
    user_id, request_id = user.id, signup_request.id

    outcome = approval.decide(request_id, Decision.REJECTED, reason="License unreadable")

    assert outcome.user_deleted is True
    assert db.session.get(User, user_id) is None
    record = db.session.get(SignupRequest, request_id)
    assert record.status == "rejected"
    assert record.user_id is None
    assert record.rejection_reason == "License unreadable"
    assert outbox[0]["context"]["reason"] == "License unreadable"

    again = create_user(email="new@example.com", phone="5551234")
    assert again.id is not None


def test_second_decision_is_refused_without_second_email(app, outbox):
    _, signup_request = create_pending_signup()
    request_id = signup_request.id
    approval.decide(request_id, "approved")

    with pytest.raises(AlreadyProcessedError):
        approval.decide(request_id, "rejected")
    assert len(outbox) == 1


def test_unknown_request_is_not_found(app):
    with pytest.raises(NotFoundError):
        approval.decide(9999, "approved")


def test_invalid_decision_is_rejected(app):
    _, signup_request = create_pending_signup()
    with pytest.raises(ValidationError):
        approval.decide(signup_request.id, "maybe")


def test_email_failure_does_not_undo_decision(app, monkeypatch):
    def _fail(**kwargs):
        raise UpstreamError(user_msg="Failed to send email.", detail="smtp down")

    monkeypatch.setattr(email_ext, "send_email", _fail)
    user, signup_request = create_pending_signup()
    user_id = user.id

    outcome = approval.decide(signup_request.id, "approved")

    assert outcome.success is True
    assert outcome.email_sent is False
    assert db.session.get(User, user_id).status == "approved"


def test_decision_is_audited(app, outbox):
    _, signup_request = create_pending_signup()
    approval.decide(signup_request.id, "rejected")
    entry = AuditLog.query.filter_by(action="signup_rejected").one()
    assert entry.entity_id == str(signup_request.id)


def test_pending_requests_lists_only_pending(app, outbox):
    _, first = create_pending_signup()
    _, second = create_pending_signup(email="two@example.com", phone="5552222", business_name="Second")
    approval.decide(first.id, "approved")
    assert [item.id for item in approval.pending_requests()] == [second.id]


def test_review_endpoint_round_trip(client, outbox):
    create_super_admin()
    _, signup_request = create_pending_signup()
    request_id = signup_request.id
    login(client, "admin@example.com")

    listing = client.get("/api/admin/signup-requests").get_json()
    assert [item["id"] for item in listing["data"]] == [request_id]

    resp = client.post(
        "/api/admin/signup-requests",
        json={"requestId": request_id, "status": "rejected", "reason": "Duplicate"},
    )
    body = resp.get_json()
    assert resp.status_code == 200
    assert body == {
        "success": True,
        "message": "Request rejected successfully",
        "userDeleted": True,
        "emailSent": True,
    }

    repeat = client.post("/api/admin/signup-requests", json={"requestId": request_id, "status": "approved"})
    assert repeat.status_code == 400
    assert repeat.get_json()["code"] == "ALREADY_PROCESSED"


def test_review_endpoint_validates_payload(client):
    create_super_admin()
    login(client, "admin@example.com")
    resp = client.post("/api/admin/signup-requests", json={"requestId": "abc", "status": "approved"})
    assert resp.status_code == 400
    resp = client.post("/api/admin/signup-requests", json={"requestId": 1, "status": "maybe"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Invalid status. Must be 'approved' or 'rejected'."


def test_failed_account_delete_leaves_request_pending(app, outbox, monkeypatch):
    user, signup_request = create_pending_signup()
    user_id, request_id = user.id, signup_request.id

    def _fail_commit():
        raise SQLAlchemyError("delete failed")

    monkeypatch.setattr(db.session(), "commit", _fail_commit)
    with pytest.raises(UpstreamError) as excinfo:
        approval.decide(request_id, "rejected")
    monkeypatch.undo()

    assert excinfo.value.user_msg == "Failed to delete user account"
    assert db.session.get(SignupRequest, request_id).status == "pending"
    assert db.session.get(User, user_id) is not None
    assert outbox == []


def test_decision_loses_to_one_committed_after_load(app, outbox):
    user, signup_request = create_pending_signup()
    user_id, request_id = user.id, signup_request.id
    loaded = db.session.get(SignupRequest, request_id)
    assert loaded.status == "pending"

    db.session.execute(
        update(SignupRequest)
        .where(SignupRequest.id == request_id)
        .values(status="approved")
        .execution_options(synchronize_session=False)
    )

    with pytest.raises(AlreadyProcessedError):
        approval.decide(request_id, "rejected")
    assert db.session.get(User, user_id) is not None
    assert outbox == []


def test_unrenderable_notification_keeps_approval(app, monkeypatch):
    def _broken(**kwargs):
        raise TemplateError("approval.html is broken")

    monkeypatch.setattr(email_ext, "send_email", _broken)
    user, signup_request = create_pending_signup()
    user_id = user.id

    outcome = approval.decide(signup_request.id, "approved")

    assert outcome.email_sent is False
    assert db.session.get(User, user_id).status == "approved"
