from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import InvalidRequest
from .models import CONTACT_ROLES, TRANSACTION_KINDS
from .money import MAX_AMOUNT_CENTS, to_cents
from .time_utils import parse_iso_datetime


PHONE_RE = re.compile(r"^\+?[1-9]\d{0,15}$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")

STOCK_ACTIONS = ("increase", "decrease")

# Per line item or stock adjustment
MAX_QUANTITY = 1_000_000

# SQLite INTEGER is a signed 64-bit value
MAX_INTEGER = 2**63 - 1


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - fields: API field name -> model column key; only these may be written
      (security boundary)
    - required_on_create: API fields required for POST
    """
    fields: dict[str, str]
    required_on_create: frozenset[str] = frozenset()


@dataclass(frozen=True)
class LineItem:
    product_id: int
    quantity: int
    unit_price_cents: int

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.unit_price_cents


@dataclass(frozen=True)
class TransactionRequest:
    kind: str
    line_items: tuple[LineItem, ...]
    customer_id: int | None = None
    vendor_id: int | None = None
    occurred_at: datetime | None = None

    @property
    def contact_id(self) -> int | None:
        return self.customer_id if self.kind == "sale" else self.vendor_id

    @property
    def product_ids(self) -> set[int]:
        return {item.product_id for item in self.line_items}

    @property
    def total_amount_cents(self) -> int:
        return sum(item.line_total_cents for item in self.line_items)


def _parse_int(value: Any, field_name: str) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise InvalidRequest(f"{field_name} must be an integer")
        if "e" in stripped.lower():
            raise InvalidRequest(f"{field_name} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise InvalidRequest(f"{field_name} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise InvalidRequest(f"{field_name} must be an integer")
    if isinstance(value, float):
        raise InvalidRequest(f"{field_name} must be an integer, not a decimal")
    raise InvalidRequest(f"{field_name} must be an integer")


def coerce_int(value: Any, field_name: str) -> int:
    """
    Strict integer coercion: ints and plain digit strings only.

    Rejects bools, floats, decimals, scientific notation and values that
    do not fit a 64-bit INTEGER column.
    """
    number = _parse_int(value, field_name)
    if abs(number) > MAX_INTEGER:
        raise InvalidRequest(f"{field_name} is out of range")
    return number


def coerce_id(value: Any, field_name: str) -> int:
    record_id = coerce_int(value, field_name)
    if record_id < 1:
        raise InvalidRequest(f"{field_name} must be a valid id")
    return record_id


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any, field_name: str):
    coltype = col.type

    # Money columns are exposed as decimal amounts
    if col.key.endswith("_cents"):
        return to_cents(value, field_name)

    if isinstance(coltype, Integer):
        return coerce_int(value, field_name)

    if isinstance(coltype, (String, Text)):
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            raise InvalidRequest(f"{field_name} must be a string")
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by column name.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise InvalidRequest("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if f not in payload)
        if missing:
            raise InvalidRequest(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.fields:
            raise InvalidRequest(f"Field not allowed: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[policy.fields[k]]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise InvalidRequest(f"{k} cannot be null")
            patch[col.key] = None
            continue

        val = _coerce_value(col, raw, k)

        if isinstance(val, str) and val == "":
            if not col.nullable:
                raise InvalidRequest(f"{k} cannot be blank")
            val = None

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise InvalidRequest(f"{k} cannot exceed {col.type.length} characters")

        patch[col.key] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "stock" in patch:
        if patch["stock"] is None or patch["stock"] < 0:
            raise InvalidRequest("Stock must be a non-negative integer")


def enforce_rules_contact(patch: dict) -> None:
    if "role" in patch and patch["role"] not in CONTACT_ROLES:
        raise InvalidRequest("Type must be either customer or vendor")

    if "phone" in patch and not PHONE_RE.match(patch["phone"] or ""):
        raise InvalidRequest("Please provide a valid phone number")

    if patch.get("email") is not None:
        email = patch["email"].lower()
        if not EMAIL_RE.match(email):
            raise InvalidRequest("Please provide a valid email")
        patch["email"] = email


def parse_stock_adjustment(payload: dict | None) -> tuple[str, int]:
    """Validate a direct stock adjustment: {action: increase|decrease, quantity >= 1}."""
    if not isinstance(payload, dict):
        raise InvalidRequest("Invalid JSON payload")
    action = payload.get("action")
    if action not in STOCK_ACTIONS:
        raise InvalidRequest("Action must be either increase or decrease")
    quantity = coerce_int(payload.get("quantity"), "quantity")
    if quantity < 1:
        raise InvalidRequest("Quantity must be a positive integer")
    if quantity > MAX_QUANTITY:
        raise InvalidRequest(f"Quantity cannot exceed {MAX_QUANTITY}")
    return action, quantity


def _parse_line_item(raw: Any, index: int) -> LineItem:
    prefix = f"lineItems[{index}]"
    if not isinstance(raw, dict):
        raise InvalidRequest(f"{prefix} must be an object")

    for key in ("productRef", "quantity", "unitPrice"):
        if raw.get(key) is None:
            raise InvalidRequest(f"{prefix}.{key} is required")

    quantity = coerce_int(raw["quantity"], f"{prefix}.quantity")
    if quantity < 1:
        raise InvalidRequest(f"{prefix}.quantity must be at least 1")
    if quantity > MAX_QUANTITY:
        raise InvalidRequest(f"{prefix}.quantity cannot exceed {MAX_QUANTITY}")

    return LineItem(
        product_id=coerce_id(raw["productRef"], f"{prefix}.productRef"),
        quantity=quantity,
        unit_price_cents=to_cents(raw["unitPrice"], f"{prefix}.unitPrice"),
    )


def parse_transaction_request(payload: dict | None) -> TransactionRequest:
    """
    Shape validation for transaction creation.

    Checks the kind enum, a non-empty lineItems list, positive integer
    quantities, non-negative prices, and that exactly the contact reference
    matching the kind is supplied. Does not touch the database.
    """
    if not isinstance(payload, dict):
        raise InvalidRequest("Invalid JSON payload")

    kind = payload.get("kind")
    if kind not in TRANSACTION_KINDS:
        raise InvalidRequest("Kind must be either sale or purchase")

    raw_items = payload.get("lineItems")
    if not isinstance(raw_items, list) or not raw_items:
        raise InvalidRequest("lineItems must be a non-empty array")
    line_items = tuple(_parse_line_item(raw, i) for i, raw in enumerate(raw_items))

    customer_ref = payload.get("customerRef")
    vendor_ref = payload.get("vendorRef")

    if kind == "sale":
        if customer_ref is None:
            raise InvalidRequest("customerRef is required for sales")
        if vendor_ref is not None:
            raise InvalidRequest("vendorRef is not allowed for sales")
        customer_id, vendor_id = coerce_id(customer_ref, "customerRef"), None
    else:
        if vendor_ref is None:
            raise InvalidRequest("vendorRef is required for purchases")
        if customer_ref is not None:
            raise InvalidRequest("customerRef is not allowed for purchases")
        customer_id, vendor_id = None, coerce_id(vendor_ref, "vendorRef")

    occurred_at = None
    if payload.get("occurredAt") is not None:
        try:
            occurred_at = parse_iso_datetime(str(payload["occurredAt"]))
        except ValueError:
            raise InvalidRequest("occurredAt must be an ISO-8601 datetime")

    request = TransactionRequest(
        kind=kind,
        line_items=line_items,
        customer_id=customer_id,
        vendor_id=vendor_id,
        occurred_at=occurred_at,
    )
    if request.total_amount_cents > MAX_AMOUNT_CENTS:
        raise InvalidRequest("totalAmount exceeds maximum allowed value")
    return request
