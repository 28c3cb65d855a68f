"""CSRF protection, per-route request limits and security headers."""
from __future__ import annotations

from flask import Flask, current_app
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_talisman import Talisman
from flask_wtf import CSRFProtect

csrf = CSRFProtect()
limiter = Limiter(key_func=get_remote_address)
talisman = Talisman()


def init_app(app: Flask) -> None:
    """Register CSRF, Flask-Limiter and, when enabled, Talisman."""
    csrf.init_app(app)

    limiter.init_app(app)
    limiter.default_limits = [app.config.get("RATELIMIT_DEFAULT", "100 per minute")]
    if app.config.get("GLOBAL_RATE_LIMIT"):
        limiter.application_limits = [app.config["GLOBAL_RATE_LIMIT"]]

    if app.config.get("SECURITY_HEADERS", True):
        secure = bool(app.config.get("SESSION_COOKIE_SECURE", False))
        talisman.init_app(
            app,
            content_security_policy=app.config.get("CONTENT_SECURITY_POLICY"),
            force_https=secure,
            session_cookie_secure=secure,
            referrer_policy="strict-origin-when-cross-origin",
        )


def rate(name: str, default: str = "10 per minute"):
    """Limit string for ``@limiter.limit`` looked up in ``RATES`` per request.

    Login and signup read their limits this way so deployments can tune them
    through ``RATE_LIMIT_LOGIN`` and ``RATE_LIMIT_SIGNUP``.
    """

    def _limit() -> str:
        return current_app.config.get("RATES", {}).get(name, default)

    return _limit
