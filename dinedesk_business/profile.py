"""Owner profile edits and password changes for signed-in accounts."""
from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.datastructures import FileStorage

from dinedesk_auth import notifications
from dinedesk_auth.services import UserService
from dinedesk_business.services import store_image
from dinedesk_ext.db import db
from dinedesk_ext.errors import AuthError, NotFoundError, UpstreamError, ValidationError
from dinedesk_ext.logging import log_info
from dinedesk_models.audit import AuditLog
from dinedesk_models.business import BusinessHours, BusinessInformation
from dinedesk_models.user import User


def _business(user: User) -> BusinessInformation:
    if user.business is None:
        raise NotFoundError(user_msg="Business not found")
    return user.business


def get_profile(user: User) -> Dict[str, Any]:
    info = _business(user)
    profile = info.to_dict()
    profile.update(
        {
            "email": user.email,
            "phone_number": user.phone_number,
            "business_name": user.business_name,
        }
    )
    return profile


def _ensure_contact_available(user: User, email: Optional[str], phone_number: Optional[str]) -> None:
    errors: dict[str, list[str]] = {}
    if email:
        owner = UserService.get_by_email(email)
        if owner is not None and owner.id != user.id:
            errors["email"] = ["Email is already in use by another account"]
    if phone_number:
        owner = UserService.get_by_phone(phone_number)
        if owner is not None and owner.id != user.id:
            errors["phoneNumber"] = ["Phone number is already in use by another account"]
    if errors:
        first = next(iter(errors.values()))[0]
        raise ValidationError(user_msg=first, errors=errors)


def update_profile(
    user: User,
    *,
    email: Optional[str] = None,
    phone_number: Optional[str] = None,
    business_type: Optional[str] = None,
    location: Optional[str] = None,
    description: Optional[str] = None,
    opening_days: Optional[list[str]] = None,
    opening_time: Optional[str] = None,
    closing_time: Optional[str] = None,
    logo: FileStorage | None = None,
    cover_photo: FileStorage | None = None,
) -> Dict[str, Any]:
    """Apply the supplied profile fields.

    Opening hours are replaced as a whole, and only when days and both times
    arrive together. Account and business changes commit together.
    """
    info = _business(user)
    email = (email or "").strip().lower() or None
    phone_number = (phone_number or "").strip() or None
    _ensure_contact_available(user, email, phone_number)

    logo_url = store_image(logo, user, "logos", "logo")
    cover_url = store_image(cover_photo, user, "covers", "cover photo")

    changed: list[str] = []
    if email and email != user.email:
        user.email = email
        changed.append("email")
    if phone_number and phone_number != user.phone_number:
        user.phone_number = phone_number
        changed.append("phone_number")
    if business_type:
        info.business_type = business_type
        changed.append("business_type")
    if location:
        info.location = location.strip()
        changed.append("location")
    if description is not None:
        info.description = description.strip() or None
        changed.append("description")
    if logo_url:
        info.logo_url = logo_url
        changed.append("logo_url")
    if cover_url:
        info.cover_photo_url = cover_url
        changed.append("cover_photo_url")
    if opening_days and opening_time and closing_time:
        info.hours.clear()
        # Old rows must be gone before new ones reuse their (business, day) keys.
        db.session.flush()
        info.hours.extend(
            BusinessHours(day_of_week=day, opening_time=opening_time, closing_time=closing_time, is_closed=False)
            for day in opening_days
        )
        changed.append("hours")

    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ValidationError(
            user_msg="Email or phone number is already in use by another account",
            detail=str(exc),
        ) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise UpstreamError(user_msg="Failed to update profile", detail=str(exc)) from exc

    if changed:
        AuditLog.log(
            action="profile_updated",
            entity="business_information",
            entity_id=info.id,
            data={"user_id": user.id, "fields": changed},
        )
    log_info("profile updated", component="business", account_id=user.id, changed=changed)
    return get_profile(user)


def change_password(user: User, current_password: str, new_password: str) -> bool:
    """Swap the password after checking the current one.

    Returns whether the confirmation email went out; the change stands
    either way.
    """
    if not user.verify_password(current_password):
        raise AuthError(user_msg="Current password is incorrect")
    if current_password == new_password:
        message = "New password must be different from current password"
        raise ValidationError(user_msg=message, errors={"newPassword": [message]})

    user.set_password(new_password)
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise UpstreamError(user_msg="Failed to change password", detail=str(exc)) from exc

    AuditLog.log(action="password_changed", entity="user", entity_id=user.id, data={"source": "profile"})
    log_info("password changed", component="business", account_id=user.id)
    return notifications.send_password_changed_email(user.email, user.business_name)
