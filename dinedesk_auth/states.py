"""Account states and the signup review transition.

An account is always in exactly one of four states. Code that branches on
access rights works with these values instead of comparing the raw role,
status and first-login columns.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from dinedesk_ext.errors import AlreadyProcessedError, ValidationError
from dinedesk_models.user import AccountStatus, Role

__all__ = [
    "AccountState",
    "AccountStatus",
    "Active",
    "Anonymous",
    "Decision",
    "Onboarding",
    "Role",
    "SignupStatus",
    "Unapproved",
    "account_state_for",
    "in_first_login",
    "review_transition",
]


class SignupStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Decision(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"

    @classmethod
    def parse(cls, value: object) -> "Decision":
        try:
            return cls(value)
        except ValueError as exc:
            raise ValidationError(
                user_msg="Invalid status. Must be 'approved' or 'rejected'.",
                errors={"status": ["Must be 'approved' or 'rejected'."]},
            ) from exc


@dataclass(frozen=True)
class Anonymous:
    """No session."""


@dataclass(frozen=True)
class Unapproved:
    """Signed in, but the account is pending or rejected."""

    role: Optional[Role]
    status: str
    first_login: bool


@dataclass(frozen=True)
class Onboarding:
    """Approved, business setup not yet completed."""

    role: Optional[Role]


@dataclass(frozen=True)
class Active:
    role: Optional[Role]


AccountState = Union[Anonymous, Unapproved, Onboarding, Active]


def account_state_for(user) -> AccountState:
    """Classify a Flask-Login user (or ``None``) into an account state."""
    if user is None or not getattr(user, "is_authenticated", False):
        return Anonymous()
    role = Role.parse(user.role)
    if user.status != AccountStatus.APPROVED.value:
        return Unapproved(role=role, status=user.status, first_login=bool(user.first_login))
    if user.first_login:
        return Onboarding(role=role)
    return Active(role=role)


def in_first_login(state: AccountState) -> bool:
    if isinstance(state, Unapproved):
        return state.first_login
    return isinstance(state, Onboarding)


@dataclass(frozen=True)
class ReviewOutcome:
    """Effect of a review decision on the request and its account."""

    request_status: SignupStatus
    account_status: Optional[AccountStatus]

    @property
    def deletes_account(self) -> bool:
        return self.account_status is None


def review_transition(current: str, decision: Decision) -> ReviewOutcome:
    """Pending requests move to a terminal status; anything else is refused.

    Approval carries the account to approved. Rejection removes the account,
    signalled by an ``account_status`` of ``None``.
    """
    if current != SignupStatus.PENDING.value:
        raise AlreadyProcessedError(
            user_msg="This signup request has already been processed",
            extra={"status": current},
        )
    if decision is Decision.APPROVED:
        return ReviewOutcome(request_status=SignupStatus.APPROVED, account_status=AccountStatus.APPROVED)
    if decision is Decision.REJECTED:
        return ReviewOutcome(request_status=SignupStatus.REJECTED, account_status=None)
    raise ValueError(f"Unhandled decision: {decision!r}")
