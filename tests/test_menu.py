from decimal import Decimal

import pytest

from dinedesk_ext.db import db
from dinedesk_menu import services
from dinedesk_menu.payloads import parse_price
from dinedesk_models.business import BusinessInformation
from dinedesk_models.menu import MenuCategory, MenuItem, MenuItemSize, MenuSetupStatus
from tests.conftest import create_user, login


def _with_business(user, business_type="restaurant", location="12 Harbour Road"):
    info = BusinessInformation(user_id=user.id, business_type=business_type, location=location)
    db.session.add(info)
    db.session.commit()
    return info


@pytest.fixture
def owner_client(client):
    owner = create_user()
    _with_business(owner)
    login(client, "owner@example.com")
    return client


def _category(client, **overrides):
    body = {"name": "Starters", "description": "Small plates"}
    body.update(overrides)
    resp = client.post("/api/menu/categories", json=body)
    assert resp.status_code == 201
    return resp.get_json()["data"]


def _item(client, category_id, **overrides):
    body = {
        "category_id": category_id,
        "name": "Soup",
        "sizes": [{"size_name": "Bowl", "price": "6.50"}],
    }
    body.update(overrides)
    return client.post("/api/menu/items", json=body)


def _setup_payload():
    return {
        "categories": [
            {
                "name": "Mains",
                "template_id": "mains",
                "items": [
                    {"name": "Burger", "price": "11.00", "template_item_id": "burger"},
                    {"name": "Salad", "price": "8", "is_vegetarian": True, "is_custom": True},
                ],
            },
            {"name": "Drinks", "items": [{"name": "Lemonade", "price": "3.25"}]},
        ]
    }


@pytest.mark.parametrize(
    "raw, expected",
    [("12.5", Decimal("12.50")), (7, Decimal("7.00")), (" 0.999 ", Decimal("1.00"))],
)
def test_parse_price_accepts_numbers_and_strings(raw, expected):
    assert parse_price(raw) == expected


@pytest.mark.parametrize("raw", ["-1", "abc", None, True, "NaN"])
def test_parse_price_rejects_bad_values(raw):
    with pytest.raises(ValueError):
        parse_price(raw)


def test_menu_endpoints_require_owner_session(client):
    assert client.get("/api/menu/categories").status_code == 401


def test_owner_without_business_is_told_so(client):
    create_user(first_login=False)
    login(client, "owner@example.com")
    resp = client.get("/api/menu/categories")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Business not found"


def test_category_crud(owner_client):
    second = _category(owner_client, name="Desserts", display_order=2)
    first = _category(owner_client, name="Starters", display_order=1)

    listed = owner_client.get("/api/menu/categories").get_json()["data"]
    assert [row["name"] for row in listed] == ["Starters", "Desserts"]
    assert listed[0]["is_active"] is True

    resp = owner_client.put(f"/api/menu/categories/{first['id']}", json={"name": "Small plates", "is_active": False})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["name"] == "Small plates"
    assert db.session.get(MenuCategory, first["id"]).is_active is False

    assert owner_client.delete(f"/api/menu/categories/{second['id']}").status_code == 200
    assert db.session.get(MenuCategory, second["id"]) is None


def test_category_requires_name(owner_client):
    resp = owner_client.post("/api/menu/categories", json={"name": "  ", "display_order": "first"})
    errors = resp.get_json()["errors"]
    assert resp.status_code == 400
    assert set(errors) == {"name", "display_order"}


def test_item_create_update_and_delete(owner_client):
    category = _category(owner_client)
    resp = _item(
        owner_client,
        category["id"],
        sizes=[{"size_name": "Cup", "price": 4}, {"size_name": "Bowl", "price": "6.50"}],
    )
    assert resp.status_code == 201
    item = resp.get_json()["data"]
    assert item["image_url"] == "/default-food-img.jpg"
    assert item["has_multiple_sizes"] is True
    assert [(s["size_name"], s["price"]) for s in item["sizes"]] == [("Cup", 4.0), ("Bowl", 6.5)]

    resp = owner_client.put(
        f"/api/menu/items/{item['id']}",
        json={"is_available": False, "sizes": [{"size_name": "Regular", "price": "5"}]},
    )
    updated = resp.get_json()["data"]
    assert resp.status_code == 200
    assert updated["is_available"] is False
    assert updated["has_multiple_sizes"] is False
    assert [s["size_name"] for s in updated["sizes"]] == ["Regular"]
    assert MenuItemSize.query.count() == 1

    assert owner_client.delete(f"/api/menu/items/{item['id']}").status_code == 200
    assert MenuItem.query.count() == 0
    assert MenuItemSize.query.count() == 0


def test_item_validation_reports_nested_fields(owner_client):
    category = _category(owner_client)
    resp = _item(owner_client, category["id"], name="", sizes=[{"size_name": "Cup", "price": "-2"}])
    errors = resp.get_json()["errors"]
    assert resp.status_code == 400
    assert set(errors) == {"name", "sizes[0].price"}
    assert errors["sizes[0].price"] == ["Price cannot be negative"]


def test_item_needs_at_least_one_size(owner_client):
    category = _category(owner_client)
    resp = _item(owner_client, category["id"], sizes=[])
    assert resp.status_code == 400
    assert "sizes" in resp.get_json()["errors"]


def test_deleting_category_removes_its_items(owner_client):
    category = _category(owner_client)
    _item(owner_client, category["id"])
    owner_client.delete(f"/api/menu/categories/{category['id']}")
    assert MenuItem.query.count() == 0


def test_other_business_records_are_not_found(client):
    other = create_user(email="other@example.com", phone="5550003")
    other_business = _with_business(other)
    foreign = MenuCategory(business_id=other_business.id, name="Secret menu")
    db.session.add(foreign)
    db.session.commit()
    foreign_id = foreign.id

    owner = create_user()
    _with_business(owner)
    login(client, "owner@example.com")

    assert client.put(f"/api/menu/categories/{foreign_id}", json={"name": "Mine"}).status_code == 404
    assert client.delete(f"/api/menu/categories/{foreign_id}").status_code == 404
    resp = _item(client, foreign_id)
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Category not found"
    assert db.session.get(MenuCategory, foreign_id).name == "Secret menu"


def test_menu_setup_creates_everything_at_once(owner_client):
    status = owner_client.get("/api/menu/setup").get_json()["data"]
    assert status["is_setup_complete"] is False

    resp = owner_client.post("/api/menu/setup", json=_setup_payload())
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["message"] == "Menu setup completed successfully with 2 categories and 3 items!"
    assert body["data"]["is_setup_complete"] is True

    categories = owner_client.get("/api/menu/complete").get_json()["data"]
    assert [c["name"] for c in categories] == ["Mains", "Drinks"]
    burger, salad = categories[0]["items"]
    assert burger["template_item_id"] == "burger"
    assert burger["is_custom"] is False
    assert salad["is_vegetarian"] is True
    assert burger["sizes"] == [{"id": burger["sizes"][0]["id"], "size_name": "Regular", "price": 11.0, "display_order": 0}]


def test_menu_setup_is_all_or_nothing(owner_client):
    payload = _setup_payload()
    payload["categories"][1]["items"][0]["price"] = "free"
    resp = owner_client.post("/api/menu/setup", json=payload)
    assert resp.status_code == 400
    assert "categories[1].items[0].price" in resp.get_json()["errors"]
    assert MenuCategory.query.count() == 0
    assert MenuSetupStatus.query.count() == 0


def test_menu_setup_runs_once(owner_client):
    assert owner_client.post("/api/menu/setup", json=_setup_payload()).status_code == 200
    resp = owner_client.post("/api/menu/setup", json=_setup_payload())
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "ALREADY_PROCESSED"
    assert MenuCategory.query.count() == 2


def test_complete_menu_skips_inactive_categories(owner_client):
    hidden = _category(owner_client, name="Hidden", is_active=False)
    shown = _category(owner_client, name="Shown")
    _item(owner_client, shown["id"], is_available=False)

    categories = owner_client.get("/api/menu/complete").get_json()["data"]
    assert [c["id"] for c in categories] == [shown["id"]]
    assert hidden["id"] not in [c["id"] for c in categories]
    assert len(categories[0]["items"]) == 1


def test_service_scopes_to_callers_business(app):
    owner = create_user()
    business = _with_business(owner)
    category = services.create_category(owner, {"name": "Breakfast"})
    assert category.business_id == business.id
    assert [c.name for c in services.list_categories(owner)] == ["Breakfast"]
