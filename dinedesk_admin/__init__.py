"""Super-admin blueprint registration."""
from __future__ import annotations

from flask import Blueprint

admin_bp = Blueprint("dinedesk_admin", __name__)

from dinedesk_admin import routes  # noqa: E402,F401
