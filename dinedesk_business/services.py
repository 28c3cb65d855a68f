"""Business information setup and owner image uploads."""
from __future__ import annotations

import time

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.datastructures import FileStorage

from dinedesk_ext.db import db
from dinedesk_ext.errors import AlreadyProcessedError, UpstreamError, ValidationError
from dinedesk_ext.logging import log_info
from dinedesk_ext.storage import IMAGE_FOLDER, file_extension, get_file_host
from dinedesk_models.audit import AuditLog
from dinedesk_models.business import BusinessHours, BusinessInformation
from dinedesk_models.user import User


def store_image(upload: FileStorage | None, user: User, folder: str, label: str) -> str | None:
    if upload is None or not upload.filename:
        return None
    content = upload.read()
    if not content:
        return None
    extension = file_extension(upload.filename) or "jpg"
    file_name = f"{user.id}-{int(time.time() * 1000)}.{extension}"
    try:
        return get_file_host().upload(content, file_name, f"{IMAGE_FOLDER}/{folder}")
    except UpstreamError as exc:
        raise UpstreamError(user_msg=f"Failed to upload {label}", detail=exc.detail) from exc


def complete_setup(
    user: User,
    *,
    business_type: str,
    location: str,
    opening_days: list[str],
    opening_time: str,
    closing_time: str,
    description: str | None = None,
    logo: FileStorage | None = None,
    cover_photo: FileStorage | None = None,
) -> BusinessInformation:
    """Store the business profile and hours and clear ``first_login``.

    The profile, the hours and the flag change commit together. An account
    can run this only once.
    """
    if not user.first_login or user.business is not None:
        raise AlreadyProcessedError(user_msg="Business information has already been set up")

    logo_url = store_image(logo, user, "logos", "logo")
    cover_url = store_image(cover_photo, user, "covers", "cover photo")

    info = BusinessInformation(
        user_id=user.id,
        business_type=business_type.strip(),
        location=location.strip(),
        description=(description or "").strip() or None,
        logo_url=logo_url,
        cover_photo_url=cover_url,
    )
    info.hours = [
        BusinessHours(
            day_of_week=day,
            opening_time=opening_time,
            closing_time=closing_time,
            is_closed=False,
        )
        for day in opening_days
    ]
    db.session.add(info)
    user.first_login = False
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise AlreadyProcessedError(
            user_msg="Business information has already been set up", detail=str(exc)
        ) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise UpstreamError(user_msg="Failed to save business information", detail=str(exc)) from exc

    AuditLog.log(
        action="business_setup_completed",
        entity="business_information",
        entity_id=info.id,
        data={"user_id": user.id, "days": opening_days},
    )
    log_info("business setup completed", component="business", account_id=user.id)
    return info


def upload_image(user: User, upload: FileStorage, folder: str) -> str:
    """Store a standalone image, such as a menu item photo, and return its URL."""
    url = store_image(upload, user, folder, "image")
    if url is None:
        raise ValidationError(user_msg="No file uploaded", errors={"image": ["No file uploaded"]})
    log_info("image uploaded", component="business", account_id=user.id, folder=folder)
    return url
