"""Domain services that encapsulate account persistence logic."""
from __future__ import annotations

from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from dinedesk_auth.states import AccountStatus, Role
from dinedesk_ext.db import db
from dinedesk_ext.errors import AuthError, ForbiddenError, UpstreamError, ValidationError
from dinedesk_ext.storage import LICENSE_FOLDER, generate_file_name, get_file_host
from dinedesk_models.audit import AuditLog
from dinedesk_models.signup_request import SignupRequest
from dinedesk_models.user import User

_DENIED_MESSAGES = {
    AccountStatus.PENDING.value: "Your account is pending approval. Please wait for admin approval.",
}


class UserService:
    """Lookup and lifecycle helpers for accounts."""

    @staticmethod
    def get_by_email(email: str) -> Optional[User]:
        return User.query.filter_by(email=(email or "").lower().strip()).first()

    @staticmethod
    def get_by_phone(phone_number: str) -> Optional[User]:
        return User.query.filter_by(phone_number=(phone_number or "").strip()).first()

    @staticmethod
    def ensure_available(email: str, phone_number: str) -> None:
        errors: dict[str, list[str]] = {}
        if UserService.get_by_email(email):
            errors["email"] = ["An account with this email already exists"]
        if UserService.get_by_phone(phone_number):
            errors["phoneNumber"] = ["An account with this phone number already exists"]
        if errors:
            first = next(iter(errors.values()))[0]
            raise ValidationError(user_msg=first, errors=errors)

    @staticmethod
    def create_user(
        *,
        business_name: str,
        email: str,
        phone_number: str,
        password: str,
        role: Role = Role.OWNER,
        status: AccountStatus = AccountStatus.PENDING,
        first_login: bool = True,
        business_license_url: str | None = None,
    ) -> User:
        """Add an account to the session without committing."""
        UserService.ensure_available(email, phone_number)
        user = User(
            business_name=business_name.strip(),
            email=email.lower().strip(),
            phone_number=phone_number.strip(),
            role=role.value,
            status=status.value,
            first_login=first_login,
            business_license_url=business_license_url,
        )
        user.set_password(password)
        db.session.add(user)
        return user

    @staticmethod
    def register_owner(
        *,
        business_name: str,
        email: str,
        phone_number: str,
        password: str,
        license_content: bytes,
        license_filename: str,
    ) -> SignupRequest:
        """Create a pending owner account and the signup request reviewers act on."""
        UserService.ensure_available(email, phone_number)

        file_name = generate_file_name(license_filename, business_name)
        try:
            license_url = get_file_host().upload(license_content, file_name, LICENSE_FOLDER)
        except UpstreamError as exc:
            raise UpstreamError(user_msg="Failed to upload license file", detail=exc.detail) from exc

        user = UserService.create_user(
            business_name=business_name,
            email=email,
            phone_number=phone_number,
            password=password,
            business_license_url=license_url,
        )
        db.session.flush()
        signup_request = SignupRequest(
            user_id=user.id,
            business_name=user.business_name,
            email=user.email,
            phone_number=user.phone_number,
            business_license_url=license_url,
            status=AccountStatus.PENDING.value,
        )
        db.session.add(signup_request)
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise ValidationError(
                user_msg="An account with this email or phone number already exists",
                detail=str(exc),
            ) from exc

        AuditLog.log(
            action="signup_submitted",
            entity="signup_request",
            entity_id=signup_request.id,
            data={"user_id": user.id, "business_name": user.business_name},
        )
        current_app.logger.info(
            "New signup request", extra={"component": "auth", "account_id": user.id}
        )
        return signup_request

    @staticmethod
    def authenticate(identifier: str, password: str) -> User:
        """Resolve an email or phone number plus password to an approved account."""
        value = (identifier or "").strip()
        user = UserService.get_by_email(value) if "@" in value else UserService.get_by_phone(value)
        if user is None or not user.verify_password(password or ""):
            raise AuthError(user_msg="Invalid credentials")

        if user.status != AccountStatus.APPROVED.value:
            AuditLog.log(
                action="login_denied",
                entity="user",
                entity_id=user.id,
                data={"status": user.status},
            )
            raise ForbiddenError(user_msg=_denied_message(user), extra={"status": user.status})
        return user

    @staticmethod
    def complete_first_login(user: User) -> User:
        if user.first_login:
            user.first_login = False
            db.session.add(user)
            db.session.commit()
        return user


def _denied_message(user: User) -> str:
    if user.status in _DENIED_MESSAGES:
        return _DENIED_MESSAGES[user.status]
    if user.status == AccountStatus.REJECTED.value:
        if user.role == Role.OWNER.value:
            return "Your restaurant account has been suspended. Please contact support for assistance."
        return "Your account application has been rejected. Please contact support for more information."
    return "Your account status is invalid. Please contact support."
