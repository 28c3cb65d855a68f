"""JSON endpoints for signup, sessions and password reset."""
from __future__ import annotations

from datetime import datetime, timezone

from flask import jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from dinedesk_auth import auth_bp, notifications, password_reset
from dinedesk_auth.forms import (
    ForgotPasswordForm,
    LoginForm,
    ResetPasswordForm,
    SignupForm,
    VerifyOtpForm,
    ensure_valid,
)
from dinedesk_auth.password_reset import (
    InvalidResetTokenError,
    OtpAttemptsExhaustedError,
    OtpExpiredError,
    OtpInvalidCodeError,
    ResetNotAvailableError,
)
from dinedesk_auth.services import UserService
from dinedesk_auth.states import Role
from dinedesk_ext.auth import roles_required
from dinedesk_ext.errors import RateLimitError, ValidationError
from dinedesk_ext.logging import log_info
from dinedesk_ext.ratelimit import OTP_VERIFY, PASSWORD_RESET, client_ip, get_limiter
from dinedesk_ext.security import limiter, rate
from dinedesk_models.audit import AuditLog

GENERIC_RESET_MESSAGE = "If an account with this email exists, you will receive a password reset code shortly."

_CHALLENGE_ERRORS = (
    OtpExpiredError,
    OtpAttemptsExhaustedError,
    OtpInvalidCodeError,
    InvalidResetTokenError,
)


def _payload() -> dict:
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def _throttle(name: str, key: str, message: str):
    throttle = get_limiter(name)
    decision = throttle.check(key)
    if not decision.allowed:
        now = throttle.clock()
        raise RateLimitError(
            user_msg=message.format(minutes=decision.wait_minutes(now)),
            retry_after=decision.retry_after(now),
        )
    return decision


@auth_bp.post("/signup")
@limiter.limit(rate("SIGNUP", "5 per minute"))
def signup():
    form = ensure_valid(SignupForm())
    upload = form.licenseFile.data
    signup_request = UserService.register_owner(
        business_name=form.businessName.data,
        email=form.email.data,
        phone_number=form.phoneNumber.data,
        password=form.password.data,
        license_content=upload.read(),
        license_filename=upload.filename,
    )
    return jsonify(
        success=True,
        message="Registration successful! Your request is pending admin approval.",
        requestId=signup_request.id,
    )


@auth_bp.post("/login")
@limiter.limit(rate("LOGIN", "10 per minute"))
def login():
    form = ensure_valid(LoginForm())
    user = UserService.authenticate(form.emailOrPhone.data, form.password.data)
    remember = bool(_payload().get("remember"))
    login_user(user, remember=remember)
    AuditLog.log(action="login", entity="user", entity_id=user.id, data={"remember": remember})
    return jsonify(success=True, user=user.to_summary())


@auth_bp.post("/logout")
def logout():
    if current_user.is_authenticated:
        log_info("logout", component="auth", account_id=current_user.id)
    logout_user()
    return jsonify(success=True, message="Logged out successfully")


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(success=True, user=current_user.to_summary())


@auth_bp.post("/complete-first-login")
@login_required
def complete_first_login():
    UserService.complete_first_login(current_user)
    return jsonify(success=True, message="First login completed successfully")


@auth_bp.post("/forgot-password")
def forgot_password():
    decision = _throttle(
        PASSWORD_RESET,
        client_ip(),
        "Too many password reset requests. Please try again in {minutes} minutes.",
    )
    form = ensure_valid(ForgotPasswordForm())

    try:
        issued = password_reset.create_challenge(form.email.data)
    except ResetNotAvailableError as exc:
        log_info("password reset not issued", component="password_reset", context={"reason": exc.user_msg})
        return jsonify(
            success=True,
            message=GENERIC_RESET_MESSAGE,
            attemptsLeft=decision.attempts_left,
            expiresInMinutes=password_reset.otp_expiry_minutes(),
        )

    notifications.send_password_reset_otp_email(issued.email, issued.otp_code, issued.expiry_minutes)
    return jsonify(
        success=True,
        message=GENERIC_RESET_MESSAGE,
        attemptsLeft=decision.attempts_left,
        expiresInMinutes=issued.expiry_minutes,
    )


@auth_bp.post("/verify-reset-otp")
def verify_reset_otp():
    data = _payload()
    email = str(data.get("email") or "").strip()
    otp = str(data.get("otp") or "").strip()
    if not email or not otp:
        raise ValidationError(user_msg="Email and OTP code are required.")

    decision = _throttle(
        OTP_VERIFY,
        email.lower(),
        "Too many verification attempts. Please try again in {minutes} minutes.",
    )
    form = ensure_valid(VerifyOtpForm())

    try:
        token = password_reset.validate(form.email.data, form.otp.data.strip())
    except _CHALLENGE_ERRORS as exc:
        exc.extra = {**(exc.extra or {}), "rateLimitAttemptsLeft": decision.attempts_left}
        raise
    log_info("password reset code verified", component="password_reset")
    return jsonify(success=True, message="OTP verified successfully.", resetToken=token)


@auth_bp.post("/reset-password")
def reset_password():
    data = _payload()
    if not data.get("resetToken") or not data.get("newPassword") or not data.get("confirmPassword"):
        raise ValidationError(user_msg="Reset token and passwords are required.")
    form = ensure_valid(ResetPasswordForm())

    user = password_reset.reset_password(form.resetToken.data, form.newPassword.data)
    notifications.send_password_changed_email(user.email, user.business_name)
    return jsonify(
        success=True,
        message="Password reset successfully. You can now log in with your new password.",
    )


@auth_bp.post("/cleanup-expired-tokens")
@roles_required(Role.SUPER_ADMIN.value)
def cleanup_expired_tokens():
    removed = password_reset.cleanup_expired()
    return jsonify(success=True, removed=removed, message="Expired tokens cleaned up successfully")


@auth_bp.get("/cleanup-expired-tokens")
def cleanup_health():
    return jsonify(
        status="OK",
        message="Password reset service is running",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
