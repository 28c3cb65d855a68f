"""Menu, table and public menu blueprint registration."""
from __future__ import annotations

from flask import Blueprint

menu_bp = Blueprint("dinedesk_menu", __name__)

from dinedesk_menu import routes  # noqa: E402,F401
