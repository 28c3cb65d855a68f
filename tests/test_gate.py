import pytest

from dinedesk_auth.states import Active, Anonymous, Onboarding, Role, Unapproved
from dinedesk_web import gate
from dinedesk_web.gate import Allow, Redirect

OWNER = Active(role=Role.OWNER)
ADMIN = Active(role=Role.SUPER_ADMIN)


@pytest.mark.parametrize("path", ["/", "/login", "/signup", "/verify-otp", "/static/app.css", "/favicon.ico"])
def test_public_paths_are_open_to_everyone(path):
    assert gate.decide(path, Anonymous()) == Allow()
    assert gate.decide(path, Onboarding(role=Role.OWNER)) == Allow()


def test_anonymous_page_request_goes_to_login():
    assert gate.decide("/owner-dashboard/menu-setup", Anonymous()) == Redirect("/login")


def test_anonymous_api_request_passes_through():
    assert gate.decide("/api/admin/restaurants", Anonymous()) == Allow()


def test_first_login_owner_is_sent_to_information_setup():
    state = Onboarding(role=Role.OWNER)
    assert gate.decide("/owner-dashboard/menu-setup", state) == Redirect("/information-setup")
    assert gate.decide("/information-setup", state) == Allow()


def test_first_login_does_not_trap_api_calls():
    assert gate.decide("/api/info-setup", Onboarding(role=Role.OWNER)) == Allow()


def test_unapproved_account_is_sent_to_login():
    state = Unapproved(role=Role.OWNER, status="pending", first_login=False)
    assert gate.decide("/owner-dashboard/menu-setup", state) == Redirect("/login")


def test_owner_cannot_open_super_admin_pages():
    assert gate.decide("/super-admin-dashboard/dashboard", OWNER) == Redirect("/owner-dashboard/menu-setup")


def test_super_admin_cannot_open_owner_pages():
    assert gate.decide("/owner-dashboard/tables", ADMIN) == Redirect("/super-admin-dashboard/dashboard")


def test_roles_reach_their_own_areas():
    assert gate.decide("/owner-dashboard/tables", OWNER) == Allow()
    assert gate.decide("/super-admin-dashboard/restaurants", ADMIN) == Allow()


def test_api_role_checks_are_left_to_endpoints():
    assert gate.decide("/api/admin/restaurants", OWNER) == Allow()


def test_prefix_match_requires_a_path_boundary():
    assert not gate.is_public("/signup-extra")
    assert gate.is_public("/signup/step-2")
    assert not gate.is_owner_route("/owner-dashboardx")


def test_middleware_redirects_anonymous_page_requests(client):
    resp = client.get("/owner-dashboard/menu-setup")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/login")


def test_public_page_renders(client):
    resp = client.get("/login")
    assert resp.status_code == 200
    assert "X-Request-ID" in resp.headers


def test_unapproved_account_api_calls_pass_through():
    state = Unapproved(role=Role.OWNER, status="pending", first_login=False)
    assert gate.decide("/api/auth/me", state) == Allow()


def test_unapproved_first_login_account_can_open_information_setup():
    state = Unapproved(role=Role.OWNER, status="pending", first_login=True)
    assert gate.decide("/information-setup", state) == Allow()
    assert gate.decide("/owner-dashboard/tables", state) == Redirect("/login")


def test_customer_menu_pages_are_public():
    assert gate.decide("/menu/1/2", Anonymous()) == Allow()
