"""Password reset challenges: OTP issuance, verification and token redemption."""
from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import and_, or_, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from dinedesk_auth.states import AccountStatus
from dinedesk_ext.db import db
from dinedesk_ext.errors import AppError, UpstreamError
from dinedesk_ext.logging import log_info, log_warn
from dinedesk_models.audit import AuditLog
from dinedesk_models.password_reset import PasswordResetChallenge
from dinedesk_models.user import User


@dataclass(eq=False)
class ResetNotAvailableError(AppError):
    """No approved account matches the email. Never shown to the requester."""

    code: str = "RESET_UNAVAILABLE"
    http_status: int = 404


@dataclass(eq=False)
class OtpExpiredError(AppError):
    code: str = "OTP_EXPIRED"
    http_status: int = 400


@dataclass(eq=False)
class OtpAttemptsExhaustedError(AppError):
    code: str = "OTP_ATTEMPTS_EXHAUSTED"
    http_status: int = 400


@dataclass(eq=False)
class OtpInvalidCodeError(AppError):
    code: str = "OTP_INVALID"
    http_status: int = 400


@dataclass(eq=False)
class InvalidResetTokenError(AppError):
    code: str = "INVALID_OR_EXPIRED_TOKEN"
    http_status: int = 400


@dataclass(frozen=True)
class IssuedChallenge:
    challenge_id: int
    user_id: int
    email: str
    otp_code: str
    expires_at: datetime
    expiry_minutes: int


_HASH_PREFIX = "pbkdf2_sha256"


def _iterations() -> int:
    return max(int(current_app.config.get("OTP_HASH_ITERATIONS", 200_000)), 1)


def _hash_code(code: str) -> str:
    """Hash an OTP value using PBKDF2-HMAC-SHA256."""
    iterations = _iterations()
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", code.encode("utf-8"), salt, iterations)
    return f"{_HASH_PREFIX}${iterations}${salt.hex()}${digest.hex()}"


def _verify_code(code: str, stored: str) -> bool:
    """Compare an OTP against its stored hash in constant time."""
    try:
        prefix, iter_str, salt_hex, digest_hex = stored.split("$")
        if prefix != _HASH_PREFIX:
            return False
        iterations = int(iter_str)
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(digest_hex)
    except (ValueError, TypeError):
        return False
    computed = hashlib.pbkdf2_hmac("sha256", code.encode("utf-8"), salt, iterations)
    return hmac.compare_digest(expected, computed)


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _now() -> datetime:
    return datetime.utcnow()


def otp_length() -> int:
    return max(int(current_app.config.get("OTP_LENGTH", 6)), 4)


def otp_expiry_minutes() -> int:
    return max(int(current_app.config.get("OTP_EXPIRY_MINUTES", 5)), 1)


def _issue_code() -> str:
    length = otp_length()
    return f"{secrets.randbelow(10 ** length):0{length}d}"


def _max_attempts() -> int:
    return max(int(current_app.config.get("OTP_MAX_ATTEMPTS", 3)), 1)


def _token_expiry() -> timedelta:
    minutes = int(current_app.config.get("RESET_TOKEN_EXPIRY_MINUTES", 15))
    return timedelta(minutes=max(minutes, otp_expiry_minutes()))


def _normalise(email: str) -> str:
    return (email or "").strip().lower()


def create_challenge(email: str) -> IssuedChallenge:
    """Issue a fresh OTP for an approved account, superseding any earlier one.

    Raises :class:`ResetNotAvailableError` when no approved account uses the
    email; callers answer the requester the same way in both cases.
    """
    address = _normalise(email)
    cleanup_expired()

    user = User.query.filter_by(email=address).first()
    if user is None:
        raise ResetNotAvailableError(user_msg="No account found with this email address")
    if user.status != AccountStatus.APPROVED.value:
        raise ResetNotAvailableError(user_msg="Account not approved for password reset")

    code = _issue_code()
    minutes = otp_expiry_minutes()
    expires_at = _now() + timedelta(minutes=minutes)

    for attempt in range(2):
        PasswordResetChallenge.query.filter_by(user_id=user.id).delete(synchronize_session=False)
        challenge = PasswordResetChallenge(
            user_id=user.id,
            email=address,
            otp_hash=_hash_code(code),
            otp_expires_at=expires_at,
            attempts_remaining=_max_attempts(),
        )
        db.session.add(challenge)
        try:
            db.session.commit()
            break
        except IntegrityError as exc:
            # A concurrent request inserted its own challenge first.
            db.session.rollback()
            if attempt:
                raise UpstreamError(user_msg="Failed to create reset token", detail=str(exc)) from exc
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise UpstreamError(user_msg="Failed to create reset token", detail=str(exc)) from exc

    AuditLog.log(
        action="password_reset_requested",
        entity="password_reset",
        entity_id=challenge.id,
        data={"user_id": user.id},
    )
    log_info("password reset challenge issued", component="password_reset", account_id=user.id)
    return IssuedChallenge(
        challenge_id=challenge.id,
        user_id=user.id,
        email=address,
        otp_code=code,
        expires_at=expires_at,
        expiry_minutes=minutes,
    )


def validate(email: str, code: str) -> str:
    """Check an OTP and exchange it for a single-use reset token.

    Checks run in order: a live challenge must exist, it must not be
    expired, attempts must remain, and the code must match. A wrong code
    costs one attempt. On success the OTP is cleared so it cannot be
    replayed, and the raw reset token is returned; only its hash is stored.
    """
    address = _normalise(email)
    now = _now()
    record = (
        PasswordResetChallenge.query.filter_by(email=address)
        .filter(PasswordResetChallenge.otp_verified_at.is_(None))
        .filter(PasswordResetChallenge.otp_hash.isnot(None))
        .order_by(PasswordResetChallenge.created_at.desc())
        .first()
    )
    if record is None:
        raise InvalidResetTokenError(
            user_msg="Invalid or expired reset request. Please request a new password reset."
        )

    if record.otp_expires_at < now:
        db.session.delete(record)
        db.session.commit()
        raise OtpExpiredError(user_msg="This code has expired. Please request a new password reset.")

    if record.attempts_remaining <= 0:
        raise OtpAttemptsExhaustedError(
            user_msg="Maximum attempts exceeded. Please request a new password reset.",
            extra={"attemptsRemaining": 0},
        )

    record_id = record.id
    user_id = record.user_id

    if not _verify_code(code, record.otp_hash or ""):
        result = db.session.execute(
            update(PasswordResetChallenge)
            .where(
                PasswordResetChallenge.id == record_id,
                PasswordResetChallenge.attempts_remaining > 0,
            )
            .values(attempts_remaining=PasswordResetChallenge.attempts_remaining - 1)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        if result.rowcount != 1:
            raise OtpAttemptsExhaustedError(
                user_msg="Maximum attempts exceeded. Please request a new password reset.",
                extra={"attemptsRemaining": 0},
            )
        remaining = max(record.attempts_remaining, 0)
        log_warn(
            "password reset code mismatch",
            component="password_reset",
            account_id=user_id,
            context={"attempts_remaining": remaining},
        )
        raise OtpInvalidCodeError(
            user_msg=f"Invalid OTP code. {remaining} attempts remaining.",
            extra={"attemptsRemaining": remaining},
        )

    token = secrets.token_hex(32)
    result = db.session.execute(
        update(PasswordResetChallenge)
        .where(
            PasswordResetChallenge.id == record_id,
            PasswordResetChallenge.otp_verified_at.is_(None),
        )
        .values(
            otp_verified_at=now,
            otp_hash=None,
            token_hash=_hash_token(token),
            token_expires_at=now + _token_expiry(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.session.rollback()
        raise InvalidResetTokenError(
            user_msg="Invalid or expired reset request. Please request a new password reset."
        )
    db.session.commit()

    AuditLog.log(
        action="password_reset_otp_verified",
        entity="password_reset",
        entity_id=record_id,
        data={"user_id": user_id},
    )
    return token


def reset_password(token: str, new_password: str) -> User:
    """Redeem a reset token and store the new password.

    Marking the token consumed, changing the password and removing the
    account's challenges happen in one transaction. Only one redemption of a
    token can succeed.
    """
    now = _now()
    invalid = InvalidResetTokenError(
        user_msg="Invalid or expired reset token. Please start the password reset process again."
    )
    record = PasswordResetChallenge.query.filter_by(token_hash=_hash_token(token or "")).first()
    if (
        record is None
        or record.token_consumed_at is not None
        or record.token_expires_at is None
        or record.token_expires_at < now
    ):
        raise invalid

    record_id = record.id
    user_id = record.user_id
    claimed = db.session.execute(
        update(PasswordResetChallenge)
        .where(
            PasswordResetChallenge.id == record_id,
            PasswordResetChallenge.token_consumed_at.is_(None),
            PasswordResetChallenge.token_expires_at >= now,
        )
        .values(token_consumed_at=now)
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount != 1:
        db.session.rollback()
        raise invalid

    user = db.session.get(User, user_id)
    if user is None:
        db.session.rollback()
        raise invalid

    try:
        user.set_password(new_password)
        PasswordResetChallenge.query.filter_by(user_id=user_id).delete(synchronize_session=False)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise UpstreamError(
            user_msg="Failed to update password. Please try again.",
            detail=str(exc),
        ) from exc

    AuditLog.log(
        action="password_reset_completed",
        entity="user",
        entity_id=user_id,
        data={"challenge_id": record_id},
    )
    log_info("password reset completed", component="password_reset", account_id=user_id)
    return user


def cleanup_expired() -> int:
    """Delete challenges that can no longer be used and return how many went."""
    now = _now()
    stale = or_(
        and_(
            PasswordResetChallenge.otp_verified_at.is_(None),
            PasswordResetChallenge.otp_expires_at < now,
        ),
        PasswordResetChallenge.token_expires_at < now,
        PasswordResetChallenge.token_consumed_at.isnot(None),
    )
    try:
        removed = PasswordResetChallenge.query.filter(stale).delete(synchronize_session=False)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise UpstreamError(user_msg="Failed to clean up reset tokens", detail=str(exc)) from exc
    if removed:
        log_info("expired reset challenges removed", component="password_reset", context={"removed": removed})
    return removed
