"""Menu categories, items and per-size prices for a business."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dinedesk_ext.db import db

DEFAULT_ITEM_IMAGE = "/default-food-img.jpg"


class MenuCategory(db.Model):
    __tablename__ = "menu_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    business_id: Mapped[int] = mapped_column(
        db.ForeignKey("business_information.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    template_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    items: Mapped[list["MenuItem"]] = relationship(
        "MenuItem",
        back_populates="category",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: [MenuItem.display_order, MenuItem.id],
    )

    def to_dict(self, *, items: list["MenuItem"] | None = None) -> dict[str, object]:
        data: dict[str, object] = {
            "id": self.id,
            "business_id": self.business_id,
            "name": self.name,
            "description": self.description,
            "display_order": self.display_order,
            "is_active": self.is_active,
            "template_id": self.template_id,
        }
        if items is not None:
            data["items"] = [item.to_dict() for item in items]
        return data


class MenuItem(db.Model):
    __tablename__ = "menu_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    category_id: Mapped[int] = mapped_column(
        db.ForeignKey("menu_categories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(512), nullable=True, default=DEFAULT_ITEM_IMAGE)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_vegetarian: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    template_item_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_custom: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_multiple_sizes: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    category = relationship("MenuCategory", back_populates="items")
    sizes: Mapped[list["MenuItemSize"]] = relationship(
        "MenuItemSize",
        back_populates="item",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: [MenuItemSize.display_order, MenuItemSize.id],
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "category_id": self.category_id,
            "name": self.name,
            "description": self.description,
            "image_url": self.image_url,
            "is_available": self.is_available,
            "is_vegetarian": self.is_vegetarian,
            "display_order": self.display_order,
            "template_item_id": self.template_item_id,
            "is_custom": self.is_custom,
            "has_multiple_sizes": self.has_multiple_sizes,
            "sizes": [size.to_dict() for size in self.sizes],
        }


class MenuItemSize(db.Model):
    __tablename__ = "menu_item_sizes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    item_id: Mapped[int] = mapped_column(
        db.ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    size_name: Mapped[str] = mapped_column(String(64), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    item = relationship("MenuItem", back_populates="sizes")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "size_name": self.size_name,
            "price": float(self.price),
            "display_order": self.display_order,
        }


class MenuSetupStatus(db.Model):
    """Whether the owner has finished the guided menu setup."""

    __tablename__ = "menu_setup_status"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    business_id: Mapped[int] = mapped_column(
        db.ForeignKey("business_information.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    is_setup_complete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    setup_completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    total_categories: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_items: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def to_dict(self) -> dict[str, object]:
        return {
            "is_setup_complete": self.is_setup_complete,
            "setup_completed_at": self.setup_completed_at.isoformat() if self.setup_completed_at else None,
            "total_categories": self.total_categories,
            "total_items": self.total_items,
        }
