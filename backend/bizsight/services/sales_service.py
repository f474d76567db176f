"""
Sales Service

A sale is recorded in one unit of work: the Sale row, its single line with the
product name/price snapshot, and the stock decrement on the product are
flushed together and committed by the caller once.
"""

from datetime import datetime

from ..extensions import db
from ..models import Sale, SaleLine, Product
from bizsight.time_utils import utcnow
from ..validation import MAX_PRICE_CENTS, MAX_STOCK
from .concurrency import lock_for_update, run_with_retry


SOURCE_MANUAL = "MANUAL"
SOURCE_CSV = "CSV"

# Largest value a 64-bit INTEGER column holds
MAX_SALE_AMOUNT_CENTS = 2**63 - 1


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ProductNotFoundError(SaleError):
    pass


def insufficient_stock_message(product: Product, quantity: int) -> str:
    return f'Insufficient stock for "{product.name}". Available: {product.stock}, Requested: {quantity}.'


def record_sale(
    *,
    user_id: int,
    product: Product,
    quantity: int,
    price_at_sale_cents: int | None = None,
    sale_date: datetime | None = None,
    source: str = SOURCE_MANUAL,
) -> Sale:
    """
    Build a single-line sale for product and decrement its stock.

    The caller owns the transaction: nothing is committed here.
    price_at_sale_cents falls back to the product's current catalog price.

    Raises SaleError if the product is not the user's, quantity or price is
    out of range, or stock is insufficient. Stock is left untouched on error.
    """
    if product.user_id != user_id:
        raise SaleError("Product does not belong to your inventory.")

    if quantity is None or quantity <= 0:
        raise SaleError("A positive quantity is required.")
    if quantity > MAX_STOCK:
        raise SaleError(f"Quantity cannot exceed {MAX_STOCK:,}.")

    if price_at_sale_cents is not None and not 0 <= price_at_sale_cents <= MAX_PRICE_CENTS:
        raise SaleError(f"Price at sale must be between 0.00 and {MAX_PRICE_CENTS / 100:,.2f}.")

    if product.stock < quantity:
        raise SaleError(
            insufficient_stock_message(product, quantity),
            details={
                "product_id": product.id,
                "available": product.stock,
                "requested": quantity,
            },
        )

    unit_price = product.price_cents if price_at_sale_cents is None else price_at_sale_cents
    subtotal = quantity * unit_price
    if subtotal > MAX_SALE_AMOUNT_CENTS:
        raise SaleError("Sale total is too large to record.")

    line = SaleLine(
        product_id=product.id,
        product_name=product.name,
        quantity=quantity,
        price_at_sale_cents=unit_price,
        subtotal_cents=subtotal,
    )
    sale = Sale(
        user_id=user_id,
        total_amount_cents=subtotal,
        sale_date=sale_date or utcnow(),
        source=source,
        lines=[line],
    )
    db.session.add(sale)

    product.stock -= quantity
    db.session.flush()
    return sale


def record_manual_sale(
    *,
    user_id: int,
    product_id: int,
    quantity: int,
    sale_date: datetime | None = None,
) -> Sale:
    """Record a sale entered by hand (or from a scanned product QR code) at the current price."""
    def _op():
        product = lock_for_update(
            db.session.query(Product).filter_by(id=product_id, user_id=user_id)
        ).first()
        if not product:
            raise ProductNotFoundError("Product not found.")

        sale = record_sale(
            user_id=user_id,
            product=product,
            quantity=quantity,
            sale_date=sale_date,
            source=SOURCE_MANUAL,
        )
        db.session.commit()
        return sale

    try:
        return run_with_retry(_op)
    except SaleError:
        db.session.rollback()
        raise


def list_sales(
    *,
    user_id: int,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """The user's sales, newest sale_date first, each with its line items."""
    base_query = (
        db.session.query(Sale)
        .filter(Sale.user_id == user_id)
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
    )

    if page is None:
        sales = base_query.all()
        return {"items": [s.to_dict() for s in sales], "count": len(sales)}

    per_page = min(per_page or 20, 100)
    page = max(page, 1)
    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    sales = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [s.to_dict() for s in sales],
        "count": len(sales),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
