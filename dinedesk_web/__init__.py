"""Page blueprint plus the templates shared by pages and emails."""
from __future__ import annotations

from flask import Blueprint

web_bp = Blueprint("dinedesk_web", __name__, template_folder="templates")

from dinedesk_web import routes  # noqa: E402,F401
