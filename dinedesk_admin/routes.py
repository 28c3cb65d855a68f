"""Super-admin JSON endpoints for signup review and restaurant oversight."""
from __future__ import annotations

from flask import jsonify, request
from flask_login import current_user

from dinedesk_admin import admin_bp, approval, services
from dinedesk_auth.states import Role
from dinedesk_ext.auth import roles_required
from dinedesk_ext.errors import ValidationError

super_admin_required = roles_required(Role.SUPER_ADMIN.value)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError(user_msg="Invalid request data")
    return data


def _int_field(data: dict, name: str, message: str) -> int:
    value = data.get(name)
    if isinstance(value, bool):
        raise ValidationError(user_msg=message, errors={name: [message]})
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(user_msg=message, errors={name: [message]}) from exc


@admin_bp.get("/signup-requests")
@super_admin_required
def list_signup_requests():
    return jsonify(success=True, data=[item.to_dict() for item in approval.pending_requests()])


@admin_bp.post("/signup-requests")
@super_admin_required
def review_signup_request():
    data = _json_body()
    request_id = _int_field(data, "requestId", "A valid requestId is required")
    outcome = approval.decide(
        request_id,
        data.get("status"),
        reason=data.get("reason"),
        reviewer=current_user._get_current_object(),
    )
    return jsonify(
        success=outcome.success,
        message=outcome.message,
        userDeleted=outcome.user_deleted,
        emailSent=outcome.email_sent,
    )


@admin_bp.get("/restaurants")
@super_admin_required
def list_restaurants():
    return jsonify(success=True, data=services.list_restaurants())


@admin_bp.patch("/restaurants")
@super_admin_required
def update_restaurant_status():
    data = _json_body()
    if not data.get("restaurantId") or not data.get("newStatus"):
        raise ValidationError(user_msg="Missing required fields")
    restaurant_id = _int_field(data, "restaurantId", "A valid restaurantId is required")
    user = services.set_restaurant_status(restaurant_id, str(data.get("newStatus")))
    return jsonify(
        success=True,
        message="Restaurant status updated successfully",
        restaurant={"id": user.id, "status": services.RESTAURANT_STATUS_BY_ACCOUNT.get(user.status)},
    )


@admin_bp.get("/dashboard-stats")
@super_admin_required
def dashboard_stats():
    return jsonify(success=True, data=services.dashboard_stats())
