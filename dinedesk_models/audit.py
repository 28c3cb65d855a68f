"""Audit trail for account lifecycle and credential events."""
from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional

from flask import g, has_request_context, request
from flask_login import current_user
from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from dinedesk_ext.db import db


def _plain(value: Any) -> Any:
    """Reduce ``value`` to something the JSON column can store."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(key): _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_plain(item) for item in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def _request_metadata() -> Dict[str, Any]:
    if not has_request_context():
        return {}
    actor = None
    if getattr(current_user, "is_authenticated", False):
        raw_id = current_user.get_id()
        actor = int(raw_id) if raw_id and raw_id.isdigit() else None
    agent = request.user_agent.string or ""
    return {
        "actor_id": actor,
        "request_id": getattr(g, "request_id", None),
        "ip_address": request.remote_addr,
        "user_agent": agent[:255] or None,
        "path": request.path,
        "method": request.method,
    }


class AuditLog(db.Model):
    """One row per signup, login, review, reset or onboarding event."""

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    entity: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    data: Mapped[Optional[dict[str, Any]]] = mapped_column(db.JSON, nullable=True)
    actor_id: Mapped[Optional[int]] = mapped_column(
        db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    request_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    path: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    method: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_audit_logs_action_created", "action", "created_at"),
        Index("ix_audit_logs_entity", "entity", "entity_id"),
    )

    @classmethod
    def log(
        cls,
        action: str,
        entity: str,
        entity_id: int | str | None,
        data: dict[str, Any] | None = None,
    ) -> "AuditLog":
        """Write one entry and commit it.

        The session is committed, so record an event only after the change
        it describes has been committed.
        """
        entry = cls(
            action=action,
            entity=entity,
            entity_id=None if entity_id is None else str(entity_id),
            data=None if data is None else _plain(data),
            **_request_metadata(),
        )
        db.session.add(entry)
        db.session.commit()
        return entry
