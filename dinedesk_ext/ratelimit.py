"""Fixed-window throttles for the password reset flow.

Flask-Limiter covers the coarse per-route limits through decorators. The
password reset flow reports the remaining attempt count in its responses and
keys one of its windows by email rather than by address, so it drives the
``limits`` package underneath Flask-Limiter directly. Each limiter is built
once per application in :func:`init_app` over one shared ``limits`` storage
and looked up through :func:`get_limiter`.
"""
from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

from flask import Flask, current_app, request
from limits import RateLimitItemPerSecond
from limits.storage import Storage, storage_from_string
from limits.strategies import FixedWindowRateLimiter as FixedWindowStrategy

PASSWORD_RESET = "password_reset"
OTP_VERIFY = "otp_verify"

_EXTENSION_KEY = "dinedesk_ratelimit"


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    attempts_left: int
    reset_at: Optional[float] = None

    def retry_after(self, now: float) -> int:
        """Seconds until the window reopens, at least one."""
        if self.reset_at is None:
            return 0
        return max(1, int(math.ceil(self.reset_at - now)))

    def wait_minutes(self, now: float) -> int:
        return max(1, int(math.ceil(self.retry_after(now) / 60.0)))


class FixedWindowRateLimiter:
    """Allow ``limit`` calls per key in each ``window_seconds`` window.

    The first call opens the window. Every call increments the stored count
    atomically, and calls past the limit are refused until the window closes.
    Refusals never move the window.
    """

    def __init__(
        self,
        storage: Storage,
        *,
        limit: int,
        window_seconds: int,
        namespace: str = "",
        clock: Callable[[], float] = time.time,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be at least 1")
        self.storage = storage
        self.limit = limit
        self.window_seconds = window_seconds
        self.namespace = namespace or "dinedesk"
        self.clock = clock
        self._item = RateLimitItemPerSecond(limit, window_seconds, namespace=self.namespace)
        self._strategy = FixedWindowStrategy(storage)

    def check(self, key: str) -> RateLimitDecision:
        allowed = self._strategy.hit(self._item, key)
        stats = self._strategy.get_window_stats(self._item, key)
        return RateLimitDecision(
            allowed=allowed,
            attempts_left=0 if not allowed else max(stats.remaining, 0),
            reset_at=stats.reset_time,
        )


def _build_storage(app: Flask) -> Storage:
    return storage_from_string(app.config.get("RATELIMIT_STORAGE_URI") or "memory://")


def init_app(app: Flask) -> None:
    """Build the password reset and OTP verification limiters for the app."""
    storage = _build_storage(app)
    app.extensions[_EXTENSION_KEY] = {
        PASSWORD_RESET: FixedWindowRateLimiter(
            storage,
            limit=int(app.config.get("PASSWORD_RESET_RATE_LIMIT", 3)),
            window_seconds=int(app.config.get("PASSWORD_RESET_RATE_WINDOW_SECS", 15 * 60)),
            namespace=PASSWORD_RESET,
        ),
        OTP_VERIFY: FixedWindowRateLimiter(
            storage,
            limit=int(app.config.get("OTP_VERIFY_RATE_LIMIT", 3)),
            window_seconds=int(app.config.get("OTP_VERIFY_RATE_WINDOW_SECS", 5 * 60)),
            namespace=OTP_VERIFY,
        ),
    }


def get_limiter(name: str) -> FixedWindowRateLimiter:
    return current_app.extensions[_EXTENSION_KEY][name]


def client_ip() -> str:
    """Best-effort client address, honouring proxy headers first."""
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("X-Real-IP", "").strip()
    if real_ip:
        return real_ip
    return request.remote_addr or "unknown"
