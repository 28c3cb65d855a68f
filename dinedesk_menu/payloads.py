"""Field coercion for JSON request bodies on the menu and table endpoints."""
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from flask import request

from dinedesk_ext.errors import ValidationError

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}
_MAX_PRICE = Decimal("99999999.99")


def json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise ValidationError(user_msg="Request body must be a JSON object")
    return data


def parse_price(value: Any) -> Decimal:
    """Parse ``12.5`` or ``"12.50"`` into a two-place decimal, rejecting negatives."""
    if isinstance(value, bool) or value is None:
        raise ValueError("Price is required")
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError("Price must be a number") from exc
    if not price.is_finite():
        raise ValueError("Price must be a number")
    if price < 0:
        raise ValueError("Price cannot be negative")
    if price > _MAX_PRICE:
        raise ValueError("Price is too large")
    return price.quantize(Decimal("0.01"))


class PayloadReader:
    """Reads typed fields from a JSON object and collects field errors.

    Getters return ``None`` for absent keys so update endpoints can tell a
    missing field from an explicit value. Call :meth:`raise_if_invalid` once
    every field has been read.
    """

    def __init__(self, data: Dict[str, Any], prefix: str = "") -> None:
        self.data = data
        self.prefix = prefix
        self.errors: Dict[str, List[str]] = {}

    def has(self, key: str) -> bool:
        return key in self.data

    def fail(self, key: str, message: str) -> None:
        self.errors.setdefault(f"{self.prefix}{key}", []).append(message)

    def text(self, key: str, *, required: bool = False, max_length: int = 255, label: str = "") -> Optional[str]:
        label = label or key.replace("_", " ").capitalize()
        value = self.data.get(key)
        if value is None:
            if required:
                self.fail(key, f"{label} is required")
            return None
        if not isinstance(value, (str, int)) or isinstance(value, bool):
            self.fail(key, f"{label} must be text")
            return None
        cleaned = str(value).strip()
        if required and not cleaned:
            self.fail(key, f"{label} is required")
            return None
        if len(cleaned) > max_length:
            self.fail(key, f"{label} must be at most {max_length} characters")
            return None
        return cleaned

    def integer(self, key: str, *, minimum: int = 0, label: str = "") -> Optional[int]:
        label = label or key.replace("_", " ").capitalize()
        value = self.data.get(key)
        if value is None:
            return None
        if isinstance(value, bool):
            self.fail(key, f"{label} must be a whole number")
            return None
        try:
            number = int(value)
        except (TypeError, ValueError):
            self.fail(key, f"{label} must be a whole number")
            return None
        if number < minimum:
            self.fail(key, f"{label} must be at least {minimum}")
            return None
        return number

    def boolean(self, key: str, *, label: str = "") -> Optional[bool]:
        label = label or key.replace("_", " ").capitalize()
        value = self.data.get(key)
        if value is None or isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in _TRUE | _FALSE:
            return value.strip().lower() in _TRUE
        self.fail(key, f"{label} must be true or false")
        return None

    def price(self, key: str, *, required: bool = True) -> Optional[Decimal]:
        value = self.data.get(key)
        if value is None and not required:
            return None
        try:
            return parse_price(value)
        except ValueError as exc:
            self.fail(key, str(exc))
            return None

    def items(self, key: str, *, required: bool = False, label: str = "") -> List[Dict[str, Any]]:
        """A list of JSON objects under ``key``."""
        label = label or key.replace("_", " ").capitalize()
        value = self.data.get(key)
        if value is None:
            if required:
                self.fail(key, f"{label} are required")
            return []
        if not isinstance(value, list) or not all(isinstance(entry, dict) for entry in value):
            self.fail(key, f"{label} must be a list of objects")
            return []
        if required and not value:
            self.fail(key, f"{label} are required")
        return value

    def nested(self, key: str, index: int, data: Dict[str, Any]) -> "PayloadReader":
        """A reader whose errors land in this one under ``key[index].``."""
        child = PayloadReader(data, prefix=f"{self.prefix}{key}[{index}].")
        child.errors = self.errors
        return child

    def raise_if_invalid(self, message: str = "Validation failed") -> None:
        if self.errors:
            raise ValidationError(user_msg=message, errors=self.errors)
