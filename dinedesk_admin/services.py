"""Restaurant administration and dashboard figures for super-admins."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from dinedesk_auth.states import AccountStatus, Role
from dinedesk_ext.db import db
from dinedesk_ext.errors import NotFoundError, UpstreamError, ValidationError
from dinedesk_models.audit import AuditLog
from dinedesk_models.business import BusinessInformation
from dinedesk_models.signup_request import SignupRequest
from dinedesk_models.user import User

RESTAURANT_STATUS_BY_ACCOUNT = {
    AccountStatus.APPROVED.value: "active",
    AccountStatus.PENDING.value: "inactive",
    AccountStatus.REJECTED.value: "suspended",
}
ACCOUNT_STATUS_BY_RESTAURANT = {value: key for key, value in RESTAURANT_STATUS_BY_ACCOUNT.items()}


def _now() -> datetime:
    return datetime.utcnow()


def _restaurant_row(user: User, info: BusinessInformation | None) -> Dict[str, Any]:
    return {
        "id": user.id,
        "businessName": user.business_name,
        "ownerName": user.business_name,
        "email": user.email,
        "phone": user.phone_number,
        "businessType": info.business_type if info else "Unknown",
        "location": info.location if info else "Unknown",
        "registeredDate": user.created_at.date().isoformat() if user.created_at else None,
        "status": RESTAURANT_STATUS_BY_ACCOUNT.get(user.status, "inactive"),
        "logo": info.logo_url if info else None,
        "coverPhoto": info.cover_photo_url if info else None,
        "description": info.description if info else None,
    }


def list_restaurants() -> Dict[str, Any]:
    rows = (
        db.session.query(User, BusinessInformation)
        .outerjoin(BusinessInformation, BusinessInformation.user_id == User.id)
        .filter(User.role == Role.OWNER.value)
        .order_by(User.created_at.desc(), User.id.desc())
        .all()
    )
    restaurants: List[Dict[str, Any]] = [_restaurant_row(user, info) for user, info in rows]
    stats = {"total": len(restaurants), "active": 0, "inactive": 0, "suspended": 0}
    for restaurant in restaurants:
        stats[restaurant["status"]] += 1
    return {"restaurants": restaurants, "stats": stats}


def set_restaurant_status(restaurant_id: int, new_status: str) -> User:
    """Suspend, deactivate or reactivate an owner account."""
    account_status = ACCOUNT_STATUS_BY_RESTAURANT.get((new_status or "").strip().lower())
    if account_status is None:
        raise ValidationError(
            user_msg="Invalid status. Must be 'active', 'inactive' or 'suspended'.",
            errors={"newStatus": ["Must be 'active', 'inactive' or 'suspended'."]},
        )
    user = db.session.get(User, restaurant_id)
    if user is None or user.role != Role.OWNER.value:
        raise NotFoundError(user_msg="Restaurant not found")

    previous = user.status
    user.status = account_status
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise UpstreamError(user_msg="Failed to update restaurant status", detail=str(exc)) from exc

    AuditLog.log(
        action="restaurant_status_changed",
        entity="user",
        entity_id=user.id,
        data={"from": previous, "to": account_status},
    )
    return user


def dashboard_stats(now: datetime | None = None) -> Dict[str, int]:
    now = now or _now()
    onboarded = (
        db.session.query(func.count(User.id))
        .filter(User.role == Role.OWNER.value)
        .filter(User.status == AccountStatus.APPROVED.value)
        .filter(User.first_login.is_(False))
    )
    total = onboarded.scalar() or 0
    new_this_week = onboarded.filter(User.created_at >= now - timedelta(days=7)).scalar() or 0
    pending = (
        db.session.query(func.count(SignupRequest.id))
        .filter(SignupRequest.status == "pending")
        .scalar()
        or 0
    )
    return {
        "totalRestaurants": int(total),
        "pendingRegistrations": int(pending),
        "newRegistrationsThisWeek": int(new_this_week),
    }
