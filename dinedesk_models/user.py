"""Account model and password helpers."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from flask_login import UserMixin
from passlib.context import CryptContext
from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dinedesk_ext.db import db

_password_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    default="pbkdf2_sha256",
    deprecated="auto",
)


class Role(str, Enum):
    OWNER = "restaurant-owner"
    SUPER_ADMIN = "super-admin"

    @classmethod
    def parse(cls, value: object) -> Optional["Role"]:
        try:
            return cls(value)
        except ValueError:
            return None


class AccountStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


if TYPE_CHECKING:  # pragma: no cover - used for type hints only
    from dinedesk_models.business import BusinessInformation
    from dinedesk_models.password_reset import PasswordResetChallenge


class User(UserMixin, db.Model):
    """A restaurant owner or platform administrator."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    phone_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    business_name: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(32), nullable=False, default=Role.OWNER.value)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=AccountStatus.PENDING.value, index=True)
    first_login: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    business_license_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    business: Mapped["BusinessInformation | None"] = relationship(
        "BusinessInformation",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    reset_challenges: Mapped[list["PasswordResetChallenge"]] = relationship(
        "PasswordResetChallenge",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def set_password(self, password: str) -> None:
        self.password_hash = _password_context.hash(password)

    def verify_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return _password_context.verify(password, self.password_hash)

    @property
    def is_approved(self) -> bool:
        return self.status == AccountStatus.APPROVED.value

    def has_any_role(self, roles: list[str] | tuple[str, ...] | set[str]) -> bool:
        return self.role in {str(role) for role in roles}

    def to_summary(self) -> dict[str, object]:
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "status": self.status,
            "first_login": self.first_login,
            "business_name": self.business_name,
        }

    def get_id(self) -> str:  # type: ignore[override]
        return str(self.id)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<User {self.email}>"
