"""Dining tables that carry a QR code pointing at the public menu."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from dinedesk_ext.db import db


class RestaurantTable(db.Model):
    __tablename__ = "restaurant_tables"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    business_id: Mapped[int] = mapped_column(
        db.ForeignKey("business_information.id", ondelete="CASCADE"), nullable=False, index=True
    )
    table_number: Mapped[str] = mapped_column(String(32), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    qr_code_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("business_id", "table_number", name="uq_restaurant_tables_number"),
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "table_number": self.table_number,
            "is_active": self.is_active,
            "qr_code_url": self.qr_code_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
