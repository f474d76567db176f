# Overview: Input parsing and product business rules shared by the JSON API and the CSV importers.

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, DecimalException, InvalidOperation
from typing import Any

from sqlalchemy import Integer, String


PRODUCT_CATEGORIES = (
    "Food",
    "Clothes",
    "Electronics",
    "Books",
    "Home Goods",
    "Sports",
    "Other",
)
DEFAULT_CATEGORY = "Other"

MAX_PRODUCT_NAME_LENGTH = 100

# 9,999,999.99
MAX_PRICE_CENTS = 999_999_999
# Largest value a 32-bit INTEGER column holds
MAX_STOCK = 2_147_483_647

PRICE_LIMIT_MESSAGE = f"Price cannot exceed {MAX_PRICE_CENTS / 100:,.2f}"
STOCK_LIMIT_MESSAGE = f"Stock cannot exceed {MAX_STOCK:,}"


class ValidationError(ValueError):
    """Bad input; routes answer 400."""


class ConflictError(ValueError):
    """Input clashes with existing data (duplicate product name); routes answer 409."""


class AmountOutOfRangeError(ValueError):
    """A well-formed number too large to convert to cents."""


def parse_money_to_cents(value: Any) -> int:
    """
    "12.50", "$1,200", 9.99 and 3 all become integer cents.

    Raises ValueError for anything that is not a finite number, and its
    subclass AmountOutOfRangeError for numbers like "1e50" that are too
    large to convert.
    """
    if value is None or isinstance(value, bool):
        raise ValueError("not a number")
    if isinstance(value, int):
        return value * 100

    cleaned = str(value).strip().lstrip("$").replace(",", "")
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"not a number: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"not a number: {value!r}")
    try:
        return int((amount * 100).quantize(Decimal("1")))
    except DecimalException:
        raise AmountOutOfRangeError(f"number out of range: {value!r}")


def parse_whole_number(value: Any) -> int:
    """Strict integer parse: "3" and 3 pass, "3.0", 3.5 and "1e3" do not."""
    if value is None or isinstance(value, (bool, float)):
        raise ValueError("not an integer")
    if isinstance(value, int):
        return value

    cleaned = str(value).strip()
    digits = cleaned[1:] if cleaned[:1] in "+-" else cleaned
    if not digits.isdigit():
        raise ValueError(f"not an integer: {value!r}")
    return int(cleaned)


def cents_to_amount(cents: int | None) -> float | None:
    if cents is None:
        return None
    return float(Decimal(cents) / 100)


@dataclass(frozen=True)
class ModelValidationPolicy:
    """Which model columns a client may write, and which a create must include."""
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)


def validate_payload(*, model, payload: dict, policy: ModelValidationPolicy, partial: bool) -> dict:
    """
    Check a JSON body against the model's columns and return a clean patch.

    Integer columns are parsed strictly, String columns are trimmed and
    length-checked, and NOT NULL columns refuse null or blank values. Keys
    outside policy.writable_fields are refused. With partial=False every
    field in policy.required_on_create must be present.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(policy.required_on_create - payload.keys())
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = {c.key: c for c in model.__mapper__.columns}
    patch: dict = {}

    for key, raw in payload.items():
        if key not in policy.writable_fields or key not in columns:
            raise ValidationError(f"Field not allowed: {key}")
        column = columns[key]

        if raw is None:
            if not column.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
            continue

        if isinstance(column.type, Integer):
            try:
                patch[key] = parse_whole_number(raw)
            except ValueError:
                raise ValidationError(f"{key} must be an integer")

        elif isinstance(column.type, String):
            text = str(raw).strip()
            if not text and not column.nullable:
                raise ValidationError(f"{key} cannot be blank")
            if column.type.length and len(text) > column.type.length:
                raise ValidationError(f"{key} exceeds max length {column.type.length}")
            patch[key] = text

        else:
            patch[key] = raw

    return patch


def normalize_product_payload(payload: dict) -> dict:
    """Translate the API's decimal "price" into the model's price_cents."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    data = dict(payload)
    if "price" not in data:
        return data

    raw_price = data.pop("price")
    if "price_cents" in data:
        return data
    if raw_price is None:
        data["price_cents"] = None
        return data
    try:
        data["price_cents"] = parse_money_to_cents(raw_price)
    except ValueError:
        raise ValidationError("Invalid price. Must be a non-negative number.")
    return data


def enforce_rules_product(patch: dict) -> None:
    """
    Product rules applied on every write, manual or imported.

    Only the keys present in patch are checked.
    """
    if "name" in patch:
        name = (patch["name"] or "").strip()
        if not name:
            raise ValidationError("Product name is required")
        if len(name) > MAX_PRODUCT_NAME_LENGTH:
            raise ValidationError(f"Name can not be more than {MAX_PRODUCT_NAME_LENGTH} characters")

    if "price_cents" in patch:
        price = patch["price_cents"]
        if not isinstance(price, int) or isinstance(price, bool):
            raise ValidationError("Invalid price. Must be a non-negative number.")
        if price < 0:
            raise ValidationError("Invalid price. Must be a non-negative number.")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(PRICE_LIMIT_MESSAGE)

    if "stock" in patch:
        stock = patch["stock"]
        if not isinstance(stock, int) or isinstance(stock, bool) or stock < 0:
            raise ValidationError("Invalid stock. Must be a non-negative integer.")
        if stock > MAX_STOCK:
            raise ValidationError(STOCK_LIMIT_MESSAGE)

    if "category" in patch and patch["category"] not in PRODUCT_CATEGORIES:
        raise ValidationError(
            f'Invalid category: "{patch["category"]}". Must be one of: {", ".join(PRODUCT_CATEGORIES)}.'
        )
