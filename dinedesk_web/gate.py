"""Route guard deciding whether a request proceeds or is redirected.

:func:`decide` is a pure function of the request path and the caller's
account state. Checks run in a fixed order and the first one that applies
wins:

1. public pages and static assets
2. anonymous callers
3. the information-setup page during first login
4. accounts that are not approved
5. the first-login trap
6. super-admin areas
7. owner areas
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from dinedesk_auth.states import (
    AccountState,
    Active,
    Anonymous,
    Onboarding,
    Role,
    Unapproved,
    in_first_login,
)

LOGIN_PATH = "/login"
INFO_SETUP_PATH = "/information-setup"
OWNER_HOME = "/owner-dashboard/menu-setup"
SUPER_ADMIN_HOME = "/super-admin-dashboard/dashboard"

PUBLIC_ROUTES = (
    "/",
    "/login",
    "/signup",
    "/forgot-password",
    "/verify-otp",
    "/reset-password",
    "/menu",
)
STATIC_PREFIXES = ("/static/", "/uploads/", "/favicon.ico", "/robots.txt")
API_PREFIX = "/api/"

SUPER_ADMIN_ROUTES = ("/super-admin-dashboard", "/api/admin")
OWNER_ROUTES = ("/owner-dashboard", "/restaurant-dashboard", "/api/restaurant")

HOME_BY_ROLE = {
    Role.OWNER: OWNER_HOME,
    Role.SUPER_ADMIN: SUPER_ADMIN_HOME,
}


@dataclass(frozen=True)
class Allow:
    pass


@dataclass(frozen=True)
class Redirect:
    target: str


GateDecision = Union[Allow, Redirect]


def _matches(path: str, route: str) -> bool:
    if route == "/":
        return path == "/"
    return path == route or path.startswith(route + "/")


def is_public(path: str) -> bool:
    if any(path == prefix or path.startswith(prefix) for prefix in STATIC_PREFIXES):
        return True
    return any(_matches(path, route) for route in PUBLIC_ROUTES)


def is_api(path: str) -> bool:
    return path.startswith(API_PREFIX)


def is_super_admin_route(path: str) -> bool:
    return any(_matches(path, route) for route in SUPER_ADMIN_ROUTES)


def is_owner_route(path: str) -> bool:
    return any(_matches(path, route) for route in OWNER_ROUTES)


def _role_of(state: AccountState) -> Role | None:
    if isinstance(state, (Unapproved, Onboarding, Active)):
        return state.role
    return None


def decide(path: str, state: AccountState) -> GateDecision:
    path = path or "/"
    api = is_api(path)

    if is_public(path):
        return Allow()

    if isinstance(state, Anonymous):
        return Allow() if api else Redirect(LOGIN_PATH)

    first_login = in_first_login(state)
    if _matches(path, INFO_SETUP_PATH) and first_login:
        return Allow()

    if isinstance(state, Unapproved) and not api:
        return Redirect(LOGIN_PATH)

    if first_login and not api:
        return Redirect(INFO_SETUP_PATH)

    role = _role_of(state)
    if is_super_admin_route(path) and role is not Role.SUPER_ADMIN and not api:
        return Redirect(OWNER_HOME if role is Role.OWNER else LOGIN_PATH)

    if is_owner_route(path) and role is not Role.OWNER and not api:
        return Redirect(SUPER_ADMIN_HOME if role is Role.SUPER_ADMIN else LOGIN_PATH)

    return Allow()
