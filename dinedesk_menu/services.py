"""Menu management for restaurant owners and the public menu read model.

Every owner operation is scoped to the caller's own business. Ids that
belong to another business are reported as not found.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy.exc import SQLAlchemyError

from dinedesk_ext import cache
from dinedesk_ext.db import db
from dinedesk_ext.errors import AlreadyProcessedError, NotFoundError, UpstreamError, ValidationError
from dinedesk_ext.logging import log_info
from dinedesk_menu.payloads import PayloadReader
from dinedesk_models.audit import AuditLog
from dinedesk_models.business import BusinessInformation
from dinedesk_models.menu import DEFAULT_ITEM_IMAGE, MenuCategory, MenuItem, MenuItemSize, MenuSetupStatus
from dinedesk_models.table import RestaurantTable
from dinedesk_models.user import User

PUBLIC_MENU_CACHE_PREFIX = "public-menu"
PUBLIC_MENU_CACHE_TTL = 300
SETUP_SIZE_NAME = "Regular"


def owned_business(user: User) -> BusinessInformation:
    if user.business is None:
        raise NotFoundError(user_msg="Business not found")
    return user.business


def commit_or_raise(failure_message: str) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise UpstreamError(user_msg=failure_message, detail=str(exc)) from exc


def _public_menu_key(business_id: int) -> str:
    return f"{PUBLIC_MENU_CACHE_PREFIX}:{business_id}"


def invalidate_public_menu(business_id: int) -> None:
    cache.delete(_public_menu_key(business_id))


def _owned_category(business: BusinessInformation, category_id: int) -> MenuCategory:
    category = MenuCategory.query.filter_by(id=category_id, business_id=business.id).one_or_none()
    if category is None:
        raise NotFoundError(user_msg="Category not found")
    return category


def _owned_item(business: BusinessInformation, item_id: int) -> MenuItem:
    item = (
        MenuItem.query.join(MenuCategory, MenuItem.category_id == MenuCategory.id)
        .filter(MenuItem.id == item_id, MenuCategory.business_id == business.id)
        .one_or_none()
    )
    if item is None:
        raise NotFoundError(user_msg="Menu item not found")
    return item


# Categories ---------------------------------------------------------------


def list_categories(user: User) -> List[MenuCategory]:
    business = owned_business(user)
    return (
        MenuCategory.query.filter_by(business_id=business.id)
        .order_by(MenuCategory.display_order, MenuCategory.id)
        .all()
    )


def create_category(user: User, data: Dict[str, Any]) -> MenuCategory:
    business = owned_business(user)
    reader = PayloadReader(data)
    name = reader.text("name", required=True, label="Category name")
    description = reader.text("description", max_length=2000)
    display_order = reader.integer("display_order")
    is_active = reader.boolean("is_active")
    template_id = reader.text("template_id", max_length=64)
    reader.raise_if_invalid()

    category = MenuCategory(
        business_id=business.id,
        name=name,
        description=description or None,
        display_order=display_order or 0,
        is_active=True if is_active is None else is_active,
        template_id=template_id or None,
    )
    db.session.add(category)
    commit_or_raise("Failed to create category")
    invalidate_public_menu(business.id)
    log_info("menu category created", component="menu", business_id=business.id, category_id=category.id)
    return category


def update_category(user: User, category_id: int, data: Dict[str, Any]) -> MenuCategory:
    business = owned_business(user)
    category = _owned_category(business, category_id)
    reader = PayloadReader(data)
    name = reader.text("name", required=True, label="Category name") if reader.has("name") else None
    description = reader.text("description", max_length=2000)
    display_order = reader.integer("display_order")
    is_active = reader.boolean("is_active")
    reader.raise_if_invalid()

    if name:
        category.name = name
    if reader.has("description"):
        category.description = description or None
    if display_order is not None:
        category.display_order = display_order
    if is_active is not None:
        category.is_active = is_active
    commit_or_raise("Failed to update category")
    invalidate_public_menu(business.id)
    return category


def delete_category(user: User, category_id: int) -> None:
    """Remove a category together with its items and their sizes."""
    business = owned_business(user)
    category = _owned_category(business, category_id)
    item_count = len(category.items)
    db.session.delete(category)
    commit_or_raise("Failed to delete category")
    invalidate_public_menu(business.id)
    log_info(
        "menu category deleted",
        component="menu",
        business_id=business.id,
        category_id=category_id,
        items=item_count,
    )


# Items --------------------------------------------------------------------


def _read_sizes(reader: PayloadReader) -> List[MenuItemSize]:
    sizes: List[MenuItemSize] = []
    for index, entry in enumerate(reader.items("sizes", required=True, label="Sizes")):
        size_reader = reader.nested("sizes", index, entry)
        size_name = size_reader.text("size_name", required=True, max_length=64, label="Size name")
        price = size_reader.price("price")
        display_order = size_reader.integer("display_order")
        if size_name and price is not None:
            sizes.append(
                MenuItemSize(
                    size_name=size_name,
                    price=price,
                    display_order=index if display_order is None else display_order,
                )
            )
    return sizes


def create_item(user: User, data: Dict[str, Any]) -> MenuItem:
    business = owned_business(user)
    reader = PayloadReader(data)
    category_id = reader.integer("category_id", minimum=1, label="Category")
    if category_id is None and "category_id" not in reader.errors:
        reader.fail("category_id", "Category is required")
    name = reader.text("name", required=True, label="Item name")
    description = reader.text("description", max_length=2000)
    image_url = reader.text("image_url", max_length=512, label="Image URL")
    is_available = reader.boolean("is_available")
    is_vegetarian = reader.boolean("is_vegetarian")
    is_custom = reader.boolean("is_custom")
    display_order = reader.integer("display_order")
    template_item_id = reader.text("template_item_id", max_length=64)
    sizes = _read_sizes(reader)
    reader.raise_if_invalid()

    category = _owned_category(business, category_id)
    item = MenuItem(
        category_id=category.id,
        name=name,
        description=description or None,
        image_url=image_url or DEFAULT_ITEM_IMAGE,
        is_available=True if is_available is None else is_available,
        is_vegetarian=is_vegetarian,
        is_custom=True if is_custom is None else is_custom,
        display_order=display_order or 0,
        template_item_id=template_item_id or None,
        has_multiple_sizes=len(sizes) > 1,
    )
    item.sizes = sizes
    db.session.add(item)
    commit_or_raise("Failed to create menu item")
    invalidate_public_menu(business.id)
    log_info("menu item created", component="menu", business_id=business.id, item_id=item.id)
    return item


def update_item(user: User, item_id: int, data: Dict[str, Any]) -> MenuItem:
    """Apply the supplied fields. A ``sizes`` list replaces every size."""
    business = owned_business(user)
    item = _owned_item(business, item_id)
    reader = PayloadReader(data)

    target_category: MenuCategory | None = None
    if reader.has("category_id"):
        category_id = reader.integer("category_id", minimum=1, label="Category")
        if category_id is not None:
            target_category = _owned_category(business, category_id)
    name = reader.text("name", required=True, label="Item name") if reader.has("name") else None
    description = reader.text("description", max_length=2000)
    image_url = reader.text("image_url", max_length=512, label="Image URL")
    is_available = reader.boolean("is_available")
    is_vegetarian = reader.boolean("is_vegetarian")
    display_order = reader.integer("display_order")
    sizes = _read_sizes(reader) if reader.has("sizes") else None
    reader.raise_if_invalid()

    if target_category is not None:
        item.category_id = target_category.id
    if name:
        item.name = name
    if reader.has("description"):
        item.description = description or None
    if reader.has("image_url"):
        item.image_url = image_url or DEFAULT_ITEM_IMAGE
    if is_available is not None:
        item.is_available = is_available
    if reader.has("is_vegetarian"):
        item.is_vegetarian = is_vegetarian
    if display_order is not None:
        item.display_order = display_order
    if sizes is not None:
        item.sizes = sizes
        item.has_multiple_sizes = len(sizes) > 1

    commit_or_raise("Failed to update menu item")
    invalidate_public_menu(business.id)
    return item


def delete_item(user: User, item_id: int) -> None:
    business = owned_business(user)
    item = _owned_item(business, item_id)
    db.session.delete(item)
    commit_or_raise("Failed to delete menu item")
    invalidate_public_menu(business.id)
    log_info("menu item deleted", component="menu", business_id=business.id, item_id=item_id)


# Guided setup -------------------------------------------------------------


def setup_status(user: User) -> Dict[str, Any]:
    business = owned_business(user)
    status = MenuSetupStatus.query.filter_by(business_id=business.id).one_or_none()
    if status is None:
        return MenuSetupStatus(is_setup_complete=False, total_categories=0, total_items=0).to_dict()
    return status.to_dict()


def complete_setup(user: User, data: Dict[str, Any]) -> MenuSetupStatus:
    """Create the chosen categories and items and mark the setup complete.

    Items arrive with a single price and get one ``Regular`` size. Either
    everything is stored or nothing is.
    """
    business = owned_business(user)
    status = MenuSetupStatus.query.filter_by(business_id=business.id).one_or_none()
    if status is not None and status.is_setup_complete:
        raise AlreadyProcessedError(user_msg="Menu setup has already been completed")

    reader = PayloadReader(data)
    categories: List[MenuCategory] = []
    item_count = 0
    for index, entry in enumerate(reader.items("categories", required=True, label="Categories")):
        category_reader = reader.nested("categories", index, entry)
        name = category_reader.text("name", required=True, label="Category name")
        category = MenuCategory(
            business_id=business.id,
            name=name or "",
            description=category_reader.text("description", max_length=2000) or None,
            template_id=category_reader.text("template_id", max_length=64) or None,
            display_order=index,
            is_active=True,
        )
        for item_index, item_entry in enumerate(category_reader.items("items", label="Items")):
            item_reader = category_reader.nested("items", item_index, item_entry)
            item_name = item_reader.text("name", required=True, label="Item name")
            price = item_reader.price("price")
            is_custom = item_reader.boolean("is_custom")
            item = MenuItem(
                name=item_name or "",
                description=item_reader.text("description", max_length=2000) or None,
                image_url=item_reader.text("image_url", max_length=512, label="Image URL") or DEFAULT_ITEM_IMAGE,
                is_vegetarian=item_reader.boolean("is_vegetarian"),
                template_item_id=item_reader.text("template_item_id", max_length=64) or None,
                is_custom=bool(is_custom),
                is_available=True,
                display_order=item_index,
                has_multiple_sizes=False,
            )
            if price is not None:
                item.sizes = [MenuItemSize(size_name=SETUP_SIZE_NAME, price=price, display_order=0)]
            category.items.append(item)
            item_count += 1
        categories.append(category)
    if reader.errors:
        # Nothing has been added to the session yet.
        raise ValidationError(user_msg="Validation failed", errors=reader.errors)

    if status is None:
        status = MenuSetupStatus(business_id=business.id)
        db.session.add(status)
    status.is_setup_complete = True
    status.setup_completed_at = datetime.utcnow()
    status.total_categories = len(categories)
    status.total_items = item_count
    db.session.add_all(categories)
    commit_or_raise("Failed to complete menu setup")
    invalidate_public_menu(business.id)

    AuditLog.log(
        action="menu_setup_completed",
        entity="business_information",
        entity_id=business.id,
        data={"categories": len(categories), "items": item_count},
    )
    log_info(
        "menu setup completed",
        component="menu",
        business_id=business.id,
        categories=len(categories),
        items=item_count,
    )
    return status


def complete_menu(user: User) -> List[Dict[str, Any]]:
    """Active categories with every item, for the owner's menu editor."""
    business = owned_business(user)
    categories = (
        MenuCategory.query.filter_by(business_id=business.id, is_active=True)
        .order_by(MenuCategory.display_order, MenuCategory.id)
        .all()
    )
    return [category.to_dict(items=category.items) for category in categories]


# Public menu --------------------------------------------------------------


def _public_categories(business_id: int) -> List[Dict[str, Any]]:
    key = _public_menu_key(business_id)
    cached = cache.get(key)
    if cached is not None:
        return cached
    categories = (
        MenuCategory.query.filter_by(business_id=business_id, is_active=True)
        .order_by(MenuCategory.display_order, MenuCategory.id)
        .all()
    )
    payload = [
        category.to_dict(items=[item for item in category.items if item.is_available])
        for category in categories
    ]
    cache.set(key, payload, timeout=PUBLIC_MENU_CACHE_TTL)
    return payload


def public_menu(business_id: int, table_id: int) -> Dict[str, Any]:
    """What a diner sees after scanning the QR code on a table."""
    business = db.session.get(BusinessInformation, business_id)
    if business is None:
        raise NotFoundError(user_msg="Restaurant not found")
    table = RestaurantTable.query.filter_by(id=table_id, business_id=business_id, is_active=True).one_or_none()
    if table is None:
        raise NotFoundError(user_msg="Table not found or inactive")
    return {
        "restaurant": {
            "id": business.id,
            "business_name": business.user.business_name,
            "business_type": business.business_type,
            "location": business.location,
            "description": business.description,
            "logo_url": business.logo_url,
            "cover_photo_url": business.cover_photo_url,
        },
        "table": {"id": table.id, "table_number": table.table_number},
        "categories": _public_categories(business_id),
    }
