"""Authentication helpers and Flask-Login integration."""
from __future__ import annotations

from functools import wraps
from typing import Callable

from flask import Flask
from flask_login import LoginManager, current_user

from dinedesk_ext.errors import AuthError, ForbiddenError

login_manager = LoginManager()
login_manager.session_protection = "strong"


def init_app(app: Flask) -> None:
    """Configure Flask-Login for the application."""
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id: str):  # type: ignore[override]
        from dinedesk_ext.db import db
        from dinedesk_models.user import User

        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    @login_manager.unauthorized_handler
    def _unauthorized():
        raise AuthError(user_msg="Authentication required.")


def roles_required(*roles: str) -> Callable:
    """Decorator enforcing an approved account holding one of ``roles``."""

    def decorator(view: Callable) -> Callable:
        @wraps(view)
        def wrapped(*args, **kwargs):
            if not current_user.is_authenticated:
                return login_manager.unauthorized()
            if not current_user.is_approved or not current_user.has_any_role(roles):
                raise ForbiddenError(user_msg="You do not have access to this resource.")
            return view(*args, **kwargs)

        return wrapped

    return decorator
