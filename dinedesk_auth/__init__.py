"""Authentication blueprint registration."""
from __future__ import annotations

from flask import Blueprint

auth_bp = Blueprint("dinedesk_auth", __name__)

from dinedesk_auth import routes  # noqa: E402,F401
