from datetime import datetime, timedelta

import pytest

from dinedesk_admin import services
from dinedesk_auth.states import AccountStatus, Role
from dinedesk_ext.db import db
from dinedesk_ext.errors import NotFoundError, ValidationError
from dinedesk_models.business import BusinessInformation
from dinedesk_models.user import User
from tests.conftest import create_pending_signup, create_super_admin, create_user, login


@pytest.fixture
def admin_client(client):
    create_super_admin()
    login(client, "admin@example.com")
    return client


def _with_business(user, business_type="Cafe", location="Main Street"):
    db.session.add(BusinessInformation(user_id=user.id, business_type=business_type, location=location))
    db.session.commit()


def test_admin_endpoints_require_session(client):
    assert client.get("/api/admin/restaurants").status_code == 401


def test_admin_endpoints_refuse_owners(client):
    create_user()
    login(client, "owner@example.com")
    resp = client.get("/api/admin/dashboard-stats")
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "You do not have access to this resource."


def test_restaurants_listing_and_stats(admin_client):
    active = create_user()
    _with_business(active)
    create_user(email="quiet@example.com", phone="5550004", status=AccountStatus.PENDING)
    create_user(email="banned@example.com", phone="5550005", status=AccountStatus.REJECTED)

    data = admin_client.get("/api/admin/restaurants").get_json()["data"]

    assert data["stats"] == {"total": 3, "active": 1, "inactive": 1, "suspended": 1}
    by_email = {row["email"]: row for row in data["restaurants"]}
    assert by_email["owner@example.com"]["businessType"] == "Cafe"
    assert by_email["quiet@example.com"]["location"] == "Unknown"
    assert "admin@example.com" not in by_email


def test_patch_restaurant_status(admin_client):
    owner = create_user()
    owner_id = owner.id
    resp = admin_client.patch(
        "/api/admin/restaurants",
        json={"restaurantId": owner_id, "newStatus": "suspended"},
    )
    assert resp.status_code == 200
    assert resp.get_json()["restaurant"] == {"id": owner_id, "status": "suspended"}
    assert db.session.get(User, owner_id).status == "rejected"


def test_patch_restaurant_requires_fields(admin_client):
    resp = admin_client.patch("/api/admin/restaurants", json={"restaurantId": 1})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Missing required fields"


def test_status_change_validates_target(app):
    owner = create_user()
    with pytest.raises(ValidationError):
        services.set_restaurant_status(owner.id, "archived")


def test_status_change_ignores_super_admins(app):
    admin = create_super_admin()
    with pytest.raises(NotFoundError):
        services.set_restaurant_status(admin.id, "suspended")


def test_dashboard_stats(admin_client):
    create_user()
    stale = create_user(email="old@example.com", phone="5550006")
    stale.created_at = datetime.utcnow() - timedelta(days=30)
    create_user(email="setup@example.com", phone="5550007", first_login=True)
    create_pending_signup()
    db.session.commit()

    data = admin_client.get("/api/admin/dashboard-stats").get_json()["data"]

    assert data == {
        "totalRestaurants": 2,
        "pendingRegistrations": 1,
        "newRegistrationsThisWeek": 1,
    }


def test_super_admin_role_is_stored(app):
    admin = create_super_admin()
    assert admin.role == Role.SUPER_ADMIN.value
    assert admin.is_approved
