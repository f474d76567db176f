"""
Settings Service

Per-user report branding and alert thresholds, plus the data-management
actions on the settings page (raw data export and full data reset).
"""

from __future__ import annotations

import csv
import io

from ..extensions import db
from ..models import AppSettings, Product, Sale, SaleLine
from ..validation import ValidationError, parse_money_to_cents, parse_whole_number
from bizsight.time_utils import to_utc_z


SETTINGS_TEXT_FIELDS = {
    "company_name": 128,
    "company_logo_url": 512,
    "report_footer_text": 255,
}


def get_or_create_settings(*, user_id: int) -> AppSettings:
    settings = db.session.query(AppSettings).filter_by(user_id=user_id).first()
    if settings is None:
        settings = AppSettings(user_id=user_id)
        db.session.add(settings)
        db.session.commit()
    return settings


def update_settings(*, user_id: int, payload: dict) -> AppSettings:
    """
    Apply a partial settings update.

    Accepts daily_sales_goal (amount) or daily_sales_goal_cents.

    Raises ValidationError on unknown fields or bad values.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    settings = get_or_create_settings(user_id=user_id)
    allowed = set(SETTINGS_TEXT_FIELDS) | {"low_stock_threshold", "daily_sales_goal", "daily_sales_goal_cents"}

    changes: dict = {}
    for key, value in payload.items():
        if key not in allowed:
            raise ValidationError(f"Field not allowed: {key}")

        if key in SETTINGS_TEXT_FIELDS:
            text = "" if value is None else str(value).strip()
            if key == "company_name" and not text:
                raise ValidationError("company_name cannot be blank")
            if len(text) > SETTINGS_TEXT_FIELDS[key]:
                raise ValidationError(f"{key} exceeds max length {SETTINGS_TEXT_FIELDS[key]}")
            changes[key] = text

        elif key == "low_stock_threshold":
            try:
                threshold = parse_whole_number(value)
            except ValueError:
                raise ValidationError("low_stock_threshold must be an integer")
            if threshold < 0:
                raise ValidationError("low_stock_threshold cannot be negative")
            changes["low_stock_threshold"] = threshold

        else:
            try:
                cents = parse_whole_number(value) if key == "daily_sales_goal_cents" else parse_money_to_cents(value)
            except ValueError:
                raise ValidationError("daily_sales_goal must be a number")
            if cents < 0:
                raise ValidationError("daily_sales_goal cannot be negative")
            changes["daily_sales_goal_cents"] = cents

    # Nothing is applied unless every field is valid
    for key, value in changes.items():
        setattr(settings, key, value)
    db.session.commit()
    return settings


def reset_user_data(*, user_id: int) -> dict:
    """
    Delete every product and sale the user owns. Settings and the account stay.

    Returns counts of deleted rows.
    """
    sale_ids = [sid for (sid,) in db.session.query(Sale.id).filter(Sale.user_id == user_id).all()]
    if sale_ids:
        db.session.query(SaleLine).filter(SaleLine.sale_id.in_(sale_ids)).delete(synchronize_session=False)
    sales_deleted = db.session.query(Sale).filter(Sale.user_id == user_id).delete(synchronize_session=False)
    products_deleted = db.session.query(Product).filter(Product.user_id == user_id).delete(synchronize_session=False)
    db.session.commit()
    return {"products_deleted": products_deleted, "sales_deleted": sales_deleted}


def export_raw_data(*, user_id: int) -> str:
    """
    Dump the user's products and sales as CSV text, one section each.

    The product section uses the same header as the inventory import. Only
    that section (everything before the first blank line) can be uploaded
    again as an inventory CSV; the sales section that follows is not an
    import format.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    writer.writerow(["name", "price", "stock", "category"])
    products = (
        db.session.query(Product)
        .filter(Product.user_id == user_id)
        .order_by(Product.name.asc())
        .all()
    )
    for p in products:
        writer.writerow([p.name, f"{p.price_cents / 100:.2f}", p.stock, p.category])

    writer.writerow([])
    writer.writerow(["totalAmount", "saleDate", "items"])
    sales = (
        db.session.query(Sale)
        .filter(Sale.user_id == user_id)
        .order_by(Sale.sale_date.asc(), Sale.id.asc())
        .all()
    )
    for s in sales:
        items = "; ".join(f"{line.product_name} x{line.quantity}" for line in s.lines)
        writer.writerow([f"{s.total_amount_cents / 100:.2f}", to_utc_z(s.sale_date), items])

    return buffer.getvalue()
