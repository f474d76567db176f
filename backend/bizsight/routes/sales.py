# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/bizsight/routes/sales.py
from flask import Blueprint, request, g, current_app

from ..services import sales_service
from ..services.sales_service import ProductNotFoundError, SaleError
from ..validation import parse_whole_number
from ..decorators import require_auth
from bizsight.time_utils import parse_iso_datetime
from .csv_upload import csv_upload_response

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
def list_sales_route():
    """
    List the caller's sales, newest first.

    Query params:
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    return sales_service.list_sales(
        user_id=g.current_user.id,
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@sales_bp.post("/manual-entry")
@require_auth
def manual_entry_route():
    """
    Record one sale at the product's current price.

    Body: {"productId": int, "quantity": int, "saleDate": ISO-8601 (optional)}
    """
    data = request.get_json(silent=True) or {}
    product_id = data.get("productId", data.get("product_id"))
    raw_quantity = data.get("quantity")

    if product_id is None or raw_quantity is None:
        return {"error": "Please provide product and a valid quantity."}, 400

    try:
        product_id = parse_whole_number(product_id)
        quantity = parse_whole_number(raw_quantity)
    except ValueError:
        return {"error": "Please provide product and a valid quantity."}, 400
    if quantity <= 0:
        return {"error": "Please provide product and a valid quantity."}, 400

    try:
        sale_date = parse_iso_datetime(data.get("saleDate") or data.get("sale_date"))
    except (TypeError, ValueError):
        return {"error": "saleDate must be an ISO-8601 date"}, 400

    try:
        sale = sales_service.record_manual_sale(
            user_id=g.current_user.id,
            product_id=product_id,
            quantity=quantity,
            sale_date=sale_date,
        )
    except ProductNotFoundError as e:
        return {"error": str(e)}, 404
    except SaleError as e:
        return {"error": str(e), "details": e.details}, 400
    except Exception:
        current_app.logger.exception("Failed to record manual sale")
        return {"error": "Internal server error"}, 500

    return {"message": "Sale recorded successfully!", "sale": sale.to_dict()}, 201


@sales_bp.post("/upload")
@require_auth
def upload_sales_csv_route():
    """
    Record sales from a CSV in the "salesFile" field.

    Rows with invalid values or unknown products are reported; the rest are recorded.
    """
    return csv_upload_response("sales", "salesFile")
