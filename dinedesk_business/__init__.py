"""Business onboarding blueprint registration."""
from __future__ import annotations

from flask import Blueprint

business_bp = Blueprint("dinedesk_business", __name__)

from dinedesk_business import routes  # noqa: E402,F401
