import base64

import pytest

from dinedesk_ext.db import db
from dinedesk_menu.tables import qr_svg_data_url
from dinedesk_models.business import BusinessInformation
from dinedesk_models.table import RestaurantTable
from tests.conftest import create_user, login


@pytest.fixture
def business_id(app):
    owner = create_user()
    info = BusinessInformation(
        user_id=owner.id,
        business_type="cafe",
        location="Market Square",
        description="Coffee and cake",
    )
    db.session.add(info)
    db.session.commit()
    return info.id


@pytest.fixture
def owner_client(client, business_id):
    login(client, "owner@example.com")
    return client


def _table(client, number="T1", **overrides):
    body = {"table_number": number}
    body.update(overrides)
    return client.post("/api/tables", json=body)


def test_tables_are_created_and_listed(owner_client):
    assert _table(owner_client, "2").status_code == 201
    assert _table(owner_client, "1", is_active=False).status_code == 201

    rows = owner_client.get("/api/tables").get_json()["data"]
    assert [(row["table_number"], row["is_active"]) for row in rows] == [("1", False), ("2", True)]


def test_duplicate_table_number_is_rejected(owner_client):
    _table(owner_client, "T1")
    resp = _table(owner_client, "T1")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Table number already exists"

    other = _table(owner_client, "T2").get_json()["data"]
    resp = owner_client.put(f"/api/tables/{other['id']}", json={"table_number": "T1"})
    assert resp.status_code == 400
    assert db.session.get(RestaurantTable, other["id"]).table_number == "T2"


def test_table_update_and_delete(owner_client):
    table = _table(owner_client).get_json()["data"]
    resp = owner_client.put(f"/api/tables/{table['id']}", json={"table_number": "Patio 1", "is_active": "false"})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["table_number"] == "Patio 1"
    assert resp.get_json()["data"]["is_active"] is False

    assert owner_client.delete(f"/api/tables/{table['id']}").status_code == 200
    assert owner_client.delete(f"/api/tables/{table['id']}").status_code == 404


def test_table_number_is_required(owner_client):
    resp = owner_client.post("/api/tables", json={"table_number": ""})
    assert resp.status_code == 400
    assert resp.get_json()["errors"] == {"table_number": ["Table number is required"]}


def test_qr_code_points_at_public_menu(owner_client, app, business_id):
    table = _table(owner_client).get_json()["data"]
    resp = owner_client.post(f"/api/tables/{table['id']}/qr-code")
    data = resp.get_json()["data"]

    expected_url = f"{app.config['APP_BASE_URL']}/menu/{business_id}/{table['id']}"
    assert resp.status_code == 200
    assert data["menuUrl"] == expected_url
    assert data["tableNumber"] == "T1"
    assert data["restaurantName"] == "Test Bistro"
    assert data["qrCodeDataUrl"].startswith("data:image/svg+xml;base64,")
    assert db.session.get(RestaurantTable, table["id"]).qr_code_url == expected_url


def test_qr_svg_is_a_document():
    svg = base64.b64decode(qr_svg_data_url("http://localhost/menu/1/1").split(",", 1)[1])
    assert b"<svg" in svg


def test_public_menu_shows_active_content(owner_client, business_id):
    table = _table(owner_client).get_json()["data"]
    mains = owner_client.post("/api/menu/categories", json={"name": "Mains"}).get_json()["data"]
    owner_client.post("/api/menu/categories", json={"name": "Off season", "is_active": False})
    owner_client.post(
        "/api/menu/items",
        json={"category_id": mains["id"], "name": "Stew", "sizes": [{"size_name": "Bowl", "price": 9}]},
    )
    owner_client.post(
        "/api/menu/items",
        json={
            "category_id": mains["id"],
            "name": "Sold out pie",
            "is_available": False,
            "sizes": [{"size_name": "Slice", "price": 4}],
        },
    )
    owner_client.post("/api/auth/logout")

    resp = owner_client.get(f"/api/public/menu/{business_id}/{table['id']}")
    data = resp.get_json()["data"]
    assert resp.status_code == 200
    assert data["restaurant"]["business_name"] == "Test Bistro"
    assert data["restaurant"]["description"] == "Coffee and cake"
    assert data["table"] == {"id": table["id"], "table_number": "T1"}
    assert [c["name"] for c in data["categories"]] == ["Mains"]
    assert [i["name"] for i in data["categories"][0]["items"]] == ["Stew"]


def test_public_menu_refreshes_after_menu_changes(owner_client, business_id):
    table = _table(owner_client).get_json()["data"]
    url = f"/api/public/menu/{business_id}/{table['id']}"
    assert owner_client.get(url).get_json()["data"]["categories"] == []

    owner_client.post("/api/menu/categories", json={"name": "Breakfast"})
    assert [c["name"] for c in owner_client.get(url).get_json()["data"]["categories"]] == ["Breakfast"]


def test_public_menu_hides_inactive_tables(owner_client, business_id):
    table = _table(owner_client, is_active=False).get_json()["data"]
    resp = owner_client.get(f"/api/public/menu/{business_id}/{table['id']}")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Table not found or inactive"


def test_public_menu_for_unknown_restaurant(client):
    resp = client.get("/api/public/menu/999/1")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Restaurant not found"


def test_customer_menu_page_needs_no_login(client):
    assert client.get("/menu/1/2").status_code == 200
