"""SQLAlchemy models exposed as a cohesive package."""
from __future__ import annotations

from dinedesk_models.audit import AuditLog
from dinedesk_models.business import BusinessHours, BusinessInformation
from dinedesk_models.menu import MenuCategory, MenuItem, MenuItemSize, MenuSetupStatus
from dinedesk_models.password_reset import PasswordResetChallenge
from dinedesk_models.signup_request import SignupRequest
from dinedesk_models.table import RestaurantTable
from dinedesk_models.user import User

__all__ = [
    "AuditLog",
    "BusinessHours",
    "BusinessInformation",
    "MenuCategory",
    "MenuItem",
    "MenuItemSize",
    "MenuSetupStatus",
    "PasswordResetChallenge",
    "RestaurantTable",
    "SignupRequest",
    "User",
]
