"""Structured application logging.

Every record carries a ``component`` plus, inside a request, the request id,
route, method, caller address and signed-in account. Services log through
:func:`log_info`, :func:`log_warn` and :func:`log_error` so those fields are
filled in the same way everywhere.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from flask import Flask, current_app, g, has_request_context, request
from flask_login import current_user

SLOW_THRESHOLD_MS = 1000

# Keyword extras accepted by the log helpers, copied onto the payload as-is.
_RECORD_FIELDS = ("latency_ms", "status", "account_id", "request_ref")
_PLAIN_ORDER = ("component", "request_id", "route", "method", "status", "latency_ms", "account_id", "request_ref")


def _request_fields() -> Dict[str, Any]:
    if not has_request_context():
        return {}
    fields: Dict[str, Any] = {
        "request_id": getattr(g, "request_id", None),
        "route": request.path,
        "method": request.method,
        "ip": request.remote_addr,
        "latency_ms": getattr(g, "request_latency_ms", None),
        "status": getattr(g, "response_status_code", None),
    }
    if getattr(current_user, "is_authenticated", False):
        fields["user_id"] = current_user.get_id()
    return fields


def _payload(record: logging.LogRecord) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "level": record.levelname,
        "msg": record.getMessage(),
        "component": getattr(record, "component", "app"),
    }
    payload.update(_request_fields())
    for name in _RECORD_FIELDS:
        value = getattr(record, name, None)
        if value is not None:
            payload[name] = value
    context = getattr(record, "context", None)
    if context:
        payload["context"] = context
    return {key: value for key, value in payload.items() if value is not None}


class StructuredFormatter(logging.Formatter):
    """Render records as one JSON object per line, or as ``key=value`` text."""

    def __init__(self, as_json: bool = True) -> None:
        super().__init__()
        self.as_json = as_json

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload = _payload(record)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if self.as_json:
            return json.dumps(payload, ensure_ascii=True, default=str)

        line = [f"[{payload['level']}]", payload["msg"].strip()]
        line.extend(f"{key}={payload[key]}" for key in _PLAIN_ORDER if key in payload)
        if "context" in payload:
            line.append("context=" + json.dumps(payload["context"], default=str))
        text = " ".join(line)
        if "exception" in payload:
            text += "\n" + payload["exception"]
        return text


def configure_logging(app: Flask) -> None:
    """Replace the app logger's handlers with one structured stream handler."""
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    as_json = str(app.config.get("LOG_FORMAT", "json")).lower() == "json"

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter(as_json=as_json))
    app.logger.handlers.clear()
    app.logger.addHandler(handler)
    app.logger.setLevel(level)


def _extra(component: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    extra = dict(fields, component=component)
    context = extra.get("context")
    if context is not None and not isinstance(context, dict):
        extra["context"] = {"value": context}
    return extra


def log_info(message: str, *, component: str = "app", **fields: Any) -> None:
    current_app.logger.info(message, extra=_extra(component, fields))


def log_warn(message: str, *, component: str = "app", **fields: Any) -> None:
    current_app.logger.warning(message, extra=_extra(component, fields))


def log_error(message: str, *, component: str = "app", exc_info: bool = False, **fields: Any) -> None:
    current_app.logger.error(message, exc_info=exc_info, extra=_extra(component, fields))
