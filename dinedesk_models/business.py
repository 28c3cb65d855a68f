"""Business profile and opening hours captured during onboarding."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dinedesk_ext.db import db


class BusinessInformation(db.Model):
    __tablename__ = "business_information"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    business_type: Mapped[str] = mapped_column(String(64), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    logo_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    cover_photo_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="business")
    hours: Mapped[list["BusinessHours"]] = relationship(
        "BusinessHours",
        back_populates="business",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="BusinessHours.id",
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "business_type": self.business_type,
            "location": self.location,
            "description": self.description,
            "logo_url": self.logo_url,
            "cover_photo_url": self.cover_photo_url,
            "hours": [hour.to_dict() for hour in self.hours],
        }


class BusinessHours(db.Model):
    __tablename__ = "business_hours"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    business_id: Mapped[int] = mapped_column(
        db.ForeignKey("business_information.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_of_week: Mapped[str] = mapped_column(String(16), nullable=False)
    opening_time: Mapped[str] = mapped_column(String(8), nullable=False)
    closing_time: Mapped[str] = mapped_column(String(8), nullable=False)
    is_closed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    business = relationship("BusinessInformation", back_populates="hours")

    __table_args__ = (
        UniqueConstraint("business_id", "day_of_week", name="uq_business_hours_day"),
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "day_of_week": self.day_of_week,
            "opening_time": self.opening_time,
            "closing_time": self.closing_time,
            "is_closed": self.is_closed,
        }
