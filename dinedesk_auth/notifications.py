"""Transactional emails for signup review and password reset.

Every helper is best-effort: delivery problems are logged and reported
through the return value, never raised, so callers can finish the state
change they have already committed.
"""
from __future__ import annotations

from datetime import datetime

from flask import current_app
from jinja2 import TemplateError

from dinedesk_ext import email as email_ext
from dinedesk_ext.errors import UpstreamError
from dinedesk_ext.logging import log_error


def _base_context() -> dict[str, object]:
    base_url = current_app.config.get("APP_BASE_URL", "")
    return {
        "app_name": current_app.config.get("APP_NAME", "DineDesk"),
        "support_email": current_app.config.get("SUPPORT_EMAIL") or current_app.config.get("EMAIL_FROM"),
        "login_url": f"{base_url}/login",
        "signup_url": f"{base_url}/signup",
        "year": datetime.utcnow().year,
    }


def _deliver(kind: str, *, to: str, subject: str, template: str, context: dict[str, object]) -> bool:
    payload = _base_context()
    payload.update(context)
    try:
        email_ext.send_email(
            subject=subject,
            recipients=[to],
            html_template=f"emails/{template}.html",
            text_template=f"emails/{template}.txt",
            context=payload,
        )
    except UpstreamError as exc:
        log_error(
            "notification delivery failed",
            component="notifications",
            context={"kind": kind, "to": to, "detail": exc.detail},
        )
        return False
    except TemplateError as exc:
        log_error(
            "notification rendering failed",
            component="notifications",
            exc_info=True,
            context={"kind": kind, "to": to, "detail": str(exc)},
        )
        return False
    return True


def send_approval_email(email: str, business_name: str) -> bool:
    app_name = current_app.config.get("APP_NAME", "DineDesk")
    return _deliver(
        "approval",
        to=email,
        subject=f"Registration Approved - Welcome to {app_name}!",
        template="approval",
        context={"business_name": business_name},
    )


def send_rejection_email(email: str, business_name: str, reason: str | None = None) -> bool:
    app_name = current_app.config.get("APP_NAME", "DineDesk")
    return _deliver(
        "rejection",
        to=email,
        subject=f"Registration Status Update - {app_name}",
        template="rejection",
        context={"business_name": business_name, "reason": (reason or "").strip() or None},
    )


def send_password_reset_otp_email(email: str, code: str, expiry_minutes: int) -> bool:
    app_name = current_app.config.get("APP_NAME", "DineDesk")
    return _deliver(
        "password_reset_otp",
        to=email,
        subject=f"Your {app_name} password reset code",
        template="password_reset_otp",
        context={"otp": code, "expiry_minutes": expiry_minutes},
    )


def send_password_changed_email(email: str, business_name: str) -> bool:
    app_name = current_app.config.get("APP_NAME", "DineDesk")
    return _deliver(
        "password_changed",
        to=email,
        subject=f"{app_name} password updated",
        template="password_changed",
        context={"business_name": business_name},
    )
