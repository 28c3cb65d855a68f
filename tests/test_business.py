import io

from dinedesk_auth.states import Role
from dinedesk_business.forms import normalise_days
from dinedesk_ext.db import db
from dinedesk_models.business import BusinessInformation
from dinedesk_models.user import User
from tests.conftest import create_user, login


def _setup_form(**overrides):
    data = {
        "businessType": "Restaurant",
        "location": "12 Harbour Road",
        "openingDays": ["Mon", "Tue", "monday"],
        "openingTime": "09:00",
        "closingTime": "22:30",
        "description": "Seafood by the water",
        "logo": (io.BytesIO(b"\x89PNG logo"), "logo.png"),
    }
    data.update(overrides)
    return data


def _post(client, data):
    return client.post("/api/info-setup", data=data, content_type="multipart/form-data")


def test_normalise_days_maps_and_deduplicates():
    assert normalise_days(["Mon", "monday", "Sun", "Tue"]) == ["monday", "sunday", "tuesday"]


def test_setup_completes_onboarding(client):
    owner = create_user(first_login=True)
    owner_id = owner.id
    login(client, "owner@example.com")

    resp = _post(client, _setup_form())
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["message"] == "Business information saved successfully"

    info = db.session.get(BusinessInformation, body["businessId"])
    assert info.user_id == owner_id
    assert [hour.day_of_week for hour in info.hours] == ["monday", "tuesday"]
    assert all(hour.opening_time == "09:00" for hour in info.hours)
    assert info.logo_url.startswith("/uploads/business-images/logos/")
    assert info.cover_photo_url is None
    assert db.session.get(User, owner_id).first_login is False


def test_setup_runs_only_once(client):
    create_user(first_login=True)
    login(client, "owner@example.com")
    assert _post(client, _setup_form()).status_code == 200

    resp = _post(client, _setup_form(logo=(io.BytesIO(b"\x89PNG"), "logo.png")))
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "ALREADY_PROCESSED"


def test_setup_validates_fields(client):
    create_user(first_login=True)
    login(client, "owner@example.com")
    resp = _post(
        client,
        _setup_form(openingDays=[], location="ab", openingTime="9am", logo=(io.BytesIO(b"x"), "logo.gif")),
    )
    errors = resp.get_json()["errors"]
    assert resp.status_code == 400
    assert set(errors) >= {"openingDays", "location", "openingTime", "logo"}


def test_setup_is_owner_only(client):
    create_user(role=Role.SUPER_ADMIN, first_login=True)
    login(client, "owner@example.com")
    assert _post(client, _setup_form()).status_code == 403


def test_onboarding_owner_pages_redirect_until_setup(client):
    create_user(first_login=True)
    login(client, "owner@example.com")
    resp = client.get("/owner-dashboard/menu-setup")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/information-setup")

    assert _post(client, _setup_form()).status_code == 200
    assert client.get("/owner-dashboard/menu-setup").status_code == 200
