"""Signup review: approve or reject a pending request exactly once."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from dinedesk_auth import notifications
from dinedesk_auth.states import Decision, review_transition
from dinedesk_ext.db import db
from dinedesk_ext.errors import AlreadyProcessedError, NotFoundError, UpstreamError
from dinedesk_ext.logging import log_info, log_warn
from dinedesk_models.audit import AuditLog
from dinedesk_models.signup_request import SignupRequest
from dinedesk_models.user import User


@dataclass(frozen=True)
class ApprovalOutcome:
    success: bool
    status: str
    user_deleted: bool
    email_sent: bool

    @property
    def message(self) -> str:
        return f"Request {self.status} successfully"


def _now() -> datetime:
    return datetime.utcnow()


def decide(
    request_id: int,
    decision: Decision | str,
    reason: str | None = None,
    reviewer: User | None = None,
) -> ApprovalOutcome:
    """Move a pending signup request to approved or rejected.

    The status change and its effect on the account commit together, guarded
    so that only one of two concurrent calls can succeed. Approval marks the
    account approved. Rejection deletes the account so its email and phone
    can sign up again; if the delete fails nothing is committed. The
    notification email is sent afterwards and its failure only shows up as
    ``email_sent=False``.
    """
    if not isinstance(decision, Decision):
        decision = Decision.parse(decision)
    reason = (reason or "").strip() or None

    signup_request = db.session.get(SignupRequest, request_id)
    if signup_request is None:
        raise NotFoundError(user_msg="Signup request not found")

    outcome = review_transition(signup_request.status, decision)
    email = signup_request.email
    business_name = signup_request.business_name
    user_id = signup_request.user_id

    claimed = db.session.execute(
        update(SignupRequest)
        .where(SignupRequest.id == request_id, SignupRequest.status == "pending")
        .values(
            status=outcome.request_status.value,
            reviewed_by=reviewer.id if reviewer is not None else None,
            reviewed_at=_now(),
            rejection_reason=reason if outcome.deletes_account else None,
            updated_at=_now(),
        )
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount != 1:
        db.session.rollback()
        raise AlreadyProcessedError(user_msg="This signup request has already been processed")

    user = db.session.get(User, user_id) if user_id is not None else None
    user_deleted = False
    try:
        if outcome.deletes_account:
            if user is not None:
                db.session.execute(
                    update(SignupRequest)
                    .where(SignupRequest.user_id == user.id)
                    .values(user_id=None)
                    .execution_options(synchronize_session=False)
                )
                db.session.delete(user)
                user_deleted = True
        else:
            if user is None:
                db.session.rollback()
                raise NotFoundError(user_msg="The account for this signup request no longer exists")
            user.status = outcome.account_status.value
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        failure = "Failed to delete user account" if outcome.deletes_account else "Failed to update account status"
        raise UpstreamError(user_msg=failure, detail=str(exc)) from exc

    AuditLog.log(
        action=f"signup_{outcome.request_status.value}",
        entity="signup_request",
        entity_id=request_id,
        data={"user_id": user_id, "user_deleted": user_deleted, "reason": reason},
    )

    if outcome.deletes_account:
        email_sent = notifications.send_rejection_email(email, business_name, reason)
    else:
        email_sent = notifications.send_approval_email(email, business_name)
    if not email_sent:
        log_warn(
            "signup decision committed without notification",
            component="approval",
            request_ref=request_id,
        )

    log_info(
        "signup request processed",
        component="approval",
        request_ref=request_id,
        context={"status": outcome.request_status.value, "user_deleted": user_deleted},
    )
    return ApprovalOutcome(
        success=True,
        status=outcome.request_status.value,
        user_deleted=user_deleted,
        email_sent=email_sent,
    )


def pending_requests() -> list[SignupRequest]:
    return (
        SignupRequest.query.filter_by(status="pending")
        .order_by(SignupRequest.created_at.desc(), SignupRequest.id.desc())
        .all()
    )
