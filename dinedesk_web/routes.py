"""Placeholder pages behind the access gate."""
from __future__ import annotations

from flask import abort, redirect, render_template, send_from_directory

from dinedesk_ext.storage import LocalFileHost, get_file_host
from dinedesk_web import web_bp
from dinedesk_web.gate import OWNER_HOME, SUPER_ADMIN_HOME

OWNER_SECTIONS = {
    "menu-setup": "Menu setup",
    "tables": "Tables",
    "order": "Orders",
    "employee": "Employees",
    "profile": "Profile",
}
SUPER_ADMIN_SECTIONS = {
    "dashboard": "Dashboard",
    "pending-registrations": "Pending registrations",
    "restaurants": "Restaurants",
}


def _page(page: str, title: str):
    return render_template("pages/page.html", page=page, title=title)


@web_bp.get("/")
def index():
    return _page("home", "Welcome")


@web_bp.get("/login")
def login_page():
    return _page("login", "Sign in")


@web_bp.get("/signup")
def signup_page():
    return _page("signup", "Register your restaurant")


@web_bp.get("/forgot-password")
def forgot_password_page():
    return _page("forgot-password", "Forgot password")


@web_bp.get("/verify-otp")
def verify_otp_page():
    return _page("verify-otp", "Enter verification code")


@web_bp.get("/reset-password")
def reset_password_page():
    return _page("reset-password", "Choose a new password")


@web_bp.get("/information-setup")
def information_setup_page():
    return _page("information-setup", "Set up your business")


@web_bp.get("/owner-dashboard")
def owner_dashboard_home():
    return redirect(OWNER_HOME)


@web_bp.get("/super-admin-dashboard")
def super_admin_dashboard_home():
    return redirect(SUPER_ADMIN_HOME)


@web_bp.get("/owner-dashboard/<section>")
def owner_dashboard(section: str):
    title = OWNER_SECTIONS.get(section)
    if title is None:
        abort(404)
    return _page(f"owner-dashboard/{section}", title)


@web_bp.get("/super-admin-dashboard/<section>")
def super_admin_dashboard(section: str):
    title = SUPER_ADMIN_SECTIONS.get(section)
    if title is None:
        abort(404)
    return _page(f"super-admin-dashboard/{section}", title)


@web_bp.get("/uploads/<path:filename>")
def uploaded_file(filename: str):
    """Serve files written by the local file host."""
    host = get_file_host()
    if not isinstance(host, LocalFileHost):
        abort(404)
    return send_from_directory(host.root, filename)


@web_bp.get("/menu/<int:business_id>/<int:table_id>")
def customer_menu(business_id: int, table_id: int):
    return _page("menu", "Menu")
