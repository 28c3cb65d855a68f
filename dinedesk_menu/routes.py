"""Owner menu and table endpoints plus the public menu read by diners."""
from __future__ import annotations

from flask import jsonify
from flask_login import current_user

from dinedesk_auth.states import Role
from dinedesk_ext.auth import roles_required
from dinedesk_menu import menu_bp, services, tables
from dinedesk_menu.payloads import json_body

owner_required = roles_required(Role.OWNER.value)


def _owner():
    return current_user._get_current_object()


@menu_bp.get("/menu/categories")
@owner_required
def list_categories():
    categories = services.list_categories(_owner())
    return jsonify(success=True, data=[category.to_dict() for category in categories])


@menu_bp.post("/menu/categories")
@owner_required
def create_category():
    category = services.create_category(_owner(), json_body())
    return jsonify(success=True, data=category.to_dict()), 201


@menu_bp.put("/menu/categories/<int:category_id>")
@owner_required
def update_category(category_id: int):
    category = services.update_category(_owner(), category_id, json_body())
    return jsonify(success=True, data=category.to_dict())


@menu_bp.delete("/menu/categories/<int:category_id>")
@owner_required
def delete_category(category_id: int):
    services.delete_category(_owner(), category_id)
    return jsonify(success=True, message="Category deleted successfully")


@menu_bp.post("/menu/items")
@owner_required
def create_item():
    item = services.create_item(_owner(), json_body())
    return jsonify(success=True, data=item.to_dict()), 201


@menu_bp.put("/menu/items/<int:item_id>")
@owner_required
def update_item(item_id: int):
    item = services.update_item(_owner(), item_id, json_body())
    return jsonify(success=True, data=item.to_dict())


@menu_bp.delete("/menu/items/<int:item_id>")
@owner_required
def delete_item(item_id: int):
    services.delete_item(_owner(), item_id)
    return jsonify(success=True, message="Menu item deleted successfully")


@menu_bp.get("/menu/setup")
@owner_required
def menu_setup_status():
    return jsonify(success=True, data=services.setup_status(_owner()))


@menu_bp.post("/menu/setup")
@owner_required
def complete_menu_setup():
    status = services.complete_setup(_owner(), json_body())
    return jsonify(
        success=True,
        data=status.to_dict(),
        message=(
            f"Menu setup completed successfully with {status.total_categories} "
            f"categories and {status.total_items} items!"
        ),
    )


@menu_bp.get("/menu/complete")
@owner_required
def complete_menu():
    return jsonify(success=True, data=services.complete_menu(_owner()))


@menu_bp.get("/tables")
@owner_required
def list_tables():
    return jsonify(success=True, data=[table.to_dict() for table in tables.list_tables(_owner())])


@menu_bp.post("/tables")
@owner_required
def create_table():
    table = tables.create_table(_owner(), json_body())
    return jsonify(success=True, data=table.to_dict()), 201


@menu_bp.put("/tables/<int:table_id>")
@owner_required
def update_table(table_id: int):
    table = tables.update_table(_owner(), table_id, json_body())
    return jsonify(success=True, data=table.to_dict())


@menu_bp.delete("/tables/<int:table_id>")
@owner_required
def delete_table(table_id: int):
    tables.delete_table(_owner(), table_id)
    return jsonify(success=True, message="Table deleted successfully")


@menu_bp.post("/tables/<int:table_id>/qr-code")
@owner_required
def generate_qr_code(table_id: int):
    return jsonify(success=True, data=tables.generate_qr_code(_owner(), table_id))


@menu_bp.get("/public/menu/<int:business_id>/<int:table_id>")
def public_menu(business_id: int, table_id: int):
    return jsonify(success=True, data=services.public_menu(business_id, table_id))
