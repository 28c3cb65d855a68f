"""Dining tables and the QR codes that open a table's public menu."""
from __future__ import annotations

import base64
import io
from typing import Any, Dict, List

import qrcode
from flask import current_app
from qrcode.constants import ERROR_CORRECT_M
from qrcode.image.svg import SvgPathImage
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from dinedesk_ext.db import db
from dinedesk_ext.errors import NotFoundError, UpstreamError, ValidationError
from dinedesk_ext.logging import log_info
from dinedesk_menu.payloads import PayloadReader
from dinedesk_menu.services import commit_or_raise, owned_business
from dinedesk_models.business import BusinessInformation
from dinedesk_models.table import RestaurantTable
from dinedesk_models.user import User

DUPLICATE_TABLE_MESSAGE = "Table number already exists"


def _owned_table(business: BusinessInformation, table_id: int) -> RestaurantTable:
    table = RestaurantTable.query.filter_by(id=table_id, business_id=business.id).one_or_none()
    if table is None:
        raise NotFoundError(user_msg="Table not found")
    return table


def _number_taken(business_id: int, table_number: str, exclude_id: int | None = None) -> bool:
    query = RestaurantTable.query.filter_by(business_id=business_id, table_number=table_number)
    if exclude_id is not None:
        query = query.filter(RestaurantTable.id != exclude_id)
    return db.session.query(query.exists()).scalar()


def _duplicate() -> ValidationError:
    return ValidationError(
        user_msg=DUPLICATE_TABLE_MESSAGE,
        errors={"table_number": [DUPLICATE_TABLE_MESSAGE]},
    )


def _commit_table(failure_message: str) -> None:
    """Commit, reporting a lost race on the table number as a duplicate."""
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise _duplicate() from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise UpstreamError(user_msg=failure_message, detail=str(exc)) from exc


def list_tables(user: User) -> List[RestaurantTable]:
    business = owned_business(user)
    return (
        RestaurantTable.query.filter_by(business_id=business.id)
        .order_by(RestaurantTable.table_number, RestaurantTable.id)
        .all()
    )


def create_table(user: User, data: Dict[str, Any]) -> RestaurantTable:
    business = owned_business(user)
    reader = PayloadReader(data)
    table_number = reader.text("table_number", required=True, max_length=32, label="Table number")
    is_active = reader.boolean("is_active")
    reader.raise_if_invalid()

    if _number_taken(business.id, table_number):
        raise _duplicate()
    table = RestaurantTable(
        business_id=business.id,
        table_number=table_number,
        is_active=True if is_active is None else is_active,
    )
    db.session.add(table)
    _commit_table("Failed to create table")
    log_info("table created", component="tables", business_id=business.id, table_id=table.id)
    return table


def update_table(user: User, table_id: int, data: Dict[str, Any]) -> RestaurantTable:
    business = owned_business(user)
    table = _owned_table(business, table_id)
    reader = PayloadReader(data)
    table_number = (
        reader.text("table_number", required=True, max_length=32, label="Table number")
        if reader.has("table_number")
        else None
    )
    is_active = reader.boolean("is_active")
    reader.raise_if_invalid()

    if table_number and table_number != table.table_number:
        if _number_taken(business.id, table_number, exclude_id=table.id):
            raise _duplicate()
        table.table_number = table_number
    if is_active is not None:
        table.is_active = is_active
    _commit_table("Failed to update table")
    return table


def delete_table(user: User, table_id: int) -> None:
    business = owned_business(user)
    table = _owned_table(business, table_id)
    db.session.delete(table)
    commit_or_raise("Failed to delete table")
    log_info("table deleted", component="tables", business_id=business.id, table_id=table_id)


def menu_url(business_id: int, table_id: int) -> str:
    base_url = str(current_app.config.get("APP_BASE_URL", "")).rstrip("/")
    return f"{base_url}/menu/{business_id}/{table_id}"


def qr_svg_data_url(content: str) -> str:
    """Encode ``content`` as a QR code and return it as an SVG data URL."""
    code = qrcode.QRCode(
        error_correction=ERROR_CORRECT_M,
        box_size=10,
        border=2,
        image_factory=SvgPathImage,
    )
    code.add_data(content)
    code.make(fit=True)
    buffer = io.BytesIO()
    code.make_image().save(buffer)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/svg+xml;base64,{encoded}"


def generate_qr_code(user: User, table_id: int) -> Dict[str, Any]:
    """Point the table at its public menu and return a printable QR code."""
    business = owned_business(user)
    table = _owned_table(business, table_id)
    url = menu_url(business.id, table.id)
    image = qr_svg_data_url(url)
    table.qr_code_url = url
    commit_or_raise("Failed to generate QR code")
    log_info("table qr code generated", component="tables", business_id=business.id, table_id=table.id)
    return {
        "qrCodeDataUrl": image,
        "menuUrl": url,
        "restaurantName": user.business_name,
        "tableNumber": table.table_number,
    }
