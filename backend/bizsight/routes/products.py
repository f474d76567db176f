# Overview: Flask API routes for inventory (products) operations; parses input and returns JSON responses.

# backend/bizsight/routes/products.py
"""
Inventory routes.

OWNERSHIP: Every route acts on the caller's own catalog (g.current_user).
Another user's product id is answered with 404, same as a missing one.
"""
from flask import Blueprint, request, g, current_app
from ..services.products_service import (
    list_products as list_products_service,
    get_product,
    create_product,
    update_product,
    delete_product,
)
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    normalize_product_payload,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth
from .csv_upload import csv_upload_response

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "price_cents", "stock", "category"},
    required_on_create={"name", "price_cents", "stock"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/inventory")


@products_bp.get("")
@require_auth
def list_products():
    """
    List the caller's products.

    Query params:
    - category: str (optional) - exact category filter
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    return list_products_service(
        user_id=g.current_user.id,
        category=request.args.get("category"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.post("")
@require_auth
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=Product,
            payload=normalize_product_payload(payload),
            policy=PRODUCT_POLICY,
            partial=False,
        )
        created = create_product(user_id=g.current_user.id, patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409

    current_app.logger.info("User %s created product %s", g.current_user.id, created.id)
    return created.to_dict(), 201


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    """Single product lookup; the QR scanner resolves scanned ids through this."""
    p = get_product(user_id=g.current_user.id, product_id=product_id)
    if not p:
        return {"error": "Product not found"}, 404
    return p.to_dict()


@products_bp.put("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=Product,
            payload=normalize_product_payload(payload),
            policy=PRODUCT_POLICY,
            partial=True,
        )
        updated = update_product(user_id=g.current_user.id, product_id=product_id, patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409

    if not updated:
        return {"error": "Product not found"}, 404
    return updated.to_dict()


@products_bp.delete("/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    if not delete_product(user_id=g.current_user.id, product_id=product_id):
        return {"error": "Product not found"}, 404
    return {"message": "Product removed"}, 200


@products_bp.post("/upload-csv")
@require_auth
def upload_inventory_csv_route():
    """
    Bulk create/update products from a CSV in the "productsFile" field.

    All-or-nothing at validation: one bad row rejects the whole file.
    """
    return csv_upload_response("inventory", "productsFile")
