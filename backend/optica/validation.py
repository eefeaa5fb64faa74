from __future__ import annotations
from datetime import date, datetime
import re
from optica.time_utils import parse_iso_date, parse_iso_datetime

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import JSON, Boolean, Date, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError, ConflictError  # noqa: F401  (re-exported for routes)
from .models.appointments import APPOINTMENT_STATUSES, APPOINTMENT_TYPES
from .models.catalog import (
    CONTACT_REPLACEMENT_SCHEDULES,
    LENS_MATERIALS,
    LENS_TYPES,
    PRODUCT_CATEGORIES,
)
from .models.sales import PAYMENT_STATUSES


# Maximum price: R$9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Signed 64-bit range of an SQLite INTEGER column
MIN_DB_INTEGER = -(2 ** 63)
MAX_DB_INTEGER = 2 ** 63 - 1

MAX_STOCK_QUANTITY = 1_000_000

# Ceiling for a line subtotal and a sale total
MAX_TOTAL_CENTS = 99_999_999_999

TIME_OF_DAY_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - choices: closed vocabularies for tag columns
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    choices: dict[str, tuple[str, ...]] = field(default_factory=dict)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def is_db_integer(value: Any) -> bool:
    """True if value fits an INTEGER column."""
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and MIN_DB_INTEGER <= value <= MAX_DB_INTEGER
    )


def _coerce_int(key: str, value: Any) -> int:
    result = _parse_int(key, value)
    if not is_db_integer(result):
        raise ValidationError(f"{key} is out of range")
    return result


def _parse_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    # Other types
    raise ValidationError(f"{key} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        return _coerce_int(col.key, value)

    # Floats (dioptres, millimetres)
    if isinstance(coltype, Float):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number")
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                raise ValidationError(f"{col.key} must be a number")
        raise ValidationError(f"{col.key} must be a number")

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        # fallback: truthiness
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Calendar dates ("YYYY-MM-DD")
    if isinstance(coltype, Date):
        if isinstance(value, date) and not isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                d = parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be a date (YYYY-MM-DD)")
            if d is None:
                raise ValidationError(f"{col.key} must be a date (YYYY-MM-DD)")
            return d
        raise ValidationError(f"{col.key} must be a date (YYYY-MM-DD)")

    # JSON columns hold lists of strings (e.g. lens treatments)
    if isinstance(coltype, JSON):
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ValidationError(f"{col.key} must be a list of strings")
        return [v.strip() for v in value if v.strip()]

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
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
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    - closed vocabularies (policy.choices)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys; absent keys
    are simply not in the patch and stay untouched)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(
            f for f in policy.required_on_create
            if payload.get(f) is None or (isinstance(payload.get(f), str) and not payload[f].strip())
        )
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # Blank optional strings are treated as "clear this field"
        if isinstance(raw, str) and not raw.strip() and col.nullable:
            raw = None

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        allowed = policy.choices.get(k)
        if allowed is not None and val not in allowed:
            raise ValidationError(f"{k} must be one of: {', '.join(allowed)}")

        patch[k] = val

    return patch


def _enforce_price(patch: dict, key: str) -> None:
    if key in patch and patch[key] is not None:
        price = patch[key]
        if price < 0:
            raise ValidationError(f"{key} must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"{key} cannot exceed {MAX_PRICE_CENTS} (R${MAX_PRICE_CENTS / 100:,.2f})")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _enforce_price(patch, "cost_price_cents")
    _enforce_price(patch, "sale_price_cents")

    if "stock_quantity" in patch:
        if patch["stock_quantity"] is None:
            raise ValidationError("stock_quantity cannot be null")
        if patch["stock_quantity"] < 0:
            raise ValidationError("stock_quantity must be >= 0")
        if patch["stock_quantity"] > MAX_STOCK_QUANTITY:
            raise ValidationError(f"stock_quantity cannot exceed {MAX_STOCK_QUANTITY}")

    for axis_key in ("axis_od", "axis_os"):
        if patch.get(axis_key) is not None and not 0 <= patch[axis_key] <= 180:
            raise ValidationError(f"{axis_key} must be between 0 and 180")


def enforce_rules_prescription(patch: dict) -> None:
    for axis_key in ("axis_od", "axis_os"):
        if patch.get(axis_key) is not None and not 0 <= patch[axis_key] <= 180:
            raise ValidationError(f"{axis_key} must be between 0 and 180")
    for mm_key in ("pupillary_distance", "near_pupillary_distance", "lens_height"):
        if patch.get(mm_key) is not None and patch[mm_key] <= 0:
            raise ValidationError(f"{mm_key} must be > 0")


def enforce_rules_appointment(patch: dict) -> None:
    appointment_time = patch.get("appointment_time")
    if appointment_time is not None and not TIME_OF_DAY_RE.match(appointment_time):
        raise ValidationError("appointment_time must be HH:MM (24h)")


CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "email", "phone", "cpf", "rg", "birth_date",
        "address", "city", "state", "postal_code", "notes",
    },
    required_on_create={"name"},
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "category", "brand", "model", "sku", "supplier", "description",
        "stock_quantity", "cost_price_cents", "sale_price_cents",
        "lens_type", "lens_material", "lens_treatments",
        "sphere_od", "cylinder_od", "axis_od", "addition_od",
        "sphere_os", "cylinder_os", "axis_os", "addition_os",
        "lens_manufacturer",
        "contact_base_curve", "contact_diameter", "contact_power",
        "contact_replacement", "contact_solutions",
    },
    required_on_create={"name", "category"},
    choices={
        "category": PRODUCT_CATEGORIES,
        "lens_type": LENS_TYPES,
        "lens_material": LENS_MATERIALS,
        "contact_replacement": CONTACT_REPLACEMENT_SCHEDULES,
    },
)

PRESCRIPTION_POLICY = ModelValidationPolicy(
    writable_fields={
        "customer_id", "prescription_date", "notes",
        "sphere_od", "cylinder_od", "axis_od", "addition_od",
        "sphere_os", "cylinder_os", "axis_os", "addition_os",
        "pupillary_distance", "near_pupillary_distance", "lens_height",
    },
    required_on_create={"customer_id", "prescription_date"},
)

APPOINTMENT_POLICY = ModelValidationPolicy(
    writable_fields={
        "customer_id", "appointment_date", "appointment_time",
        "appointment_type", "status", "notes",
    },
    required_on_create={"customer_id", "appointment_date", "appointment_time", "appointment_type"},
    choices={
        "appointment_type": APPOINTMENT_TYPES,
        "status": APPOINTMENT_STATUSES,
    },
)

# Only these two fields survive sale creation as mutable
SALE_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"payment_status", "notes"},
    choices={"payment_status": PAYMENT_STATUSES},
)


def validate_sale_items(items: Any) -> list[dict]:
    """
    Validate the requested line items of a new sale.

    Each item is {"product_id": int, "quantity": int > 0,
    "unit_price_cents": optional int >= 0}. Returns normalized dicts
    in request order (duplicates are merged later by the sale service).
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    cleaned: list[dict] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")

        unknown = set(item) - {"product_id", "quantity", "unit_price_cents"}
        if unknown:
            raise ValidationError(f"items[{index}]: field not allowed: {', '.join(sorted(unknown))}")

        if item.get("product_id") is None:
            raise ValidationError(f"items[{index}].product_id is required")
        if item.get("quantity") is None:
            raise ValidationError(f"items[{index}].quantity is required")

        product_id = _coerce_int(f"items[{index}].product_id", item["product_id"])
        quantity = _coerce_int(f"items[{index}].quantity", item["quantity"])
        if quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be a positive integer")

        unit_price_cents = item.get("unit_price_cents")
        if unit_price_cents is not None:
            unit_price_cents = _coerce_int(f"items[{index}].unit_price_cents", unit_price_cents)
            if unit_price_cents < 0 or unit_price_cents > MAX_PRICE_CENTS:
                raise ValidationError(f"items[{index}].unit_price_cents must be between 0 and {MAX_PRICE_CENTS}")

        cleaned.append({
            "product_id": product_id,
            "quantity": quantity,
            "unit_price_cents": unit_price_cents,
        })

    return cleaned


def parse_id(value: Any, name: str) -> int:
    """Coerce an id from JSON/query input."""
    if value is None:
        raise ValidationError(f"{name} is required")
    return _coerce_int(name, value)
