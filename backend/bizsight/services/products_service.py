# Overview: Product catalog CRUD, always scoped to the owning user.

"""
Products

Every call names its user_id. Another user's product id behaves exactly
like an id that does not exist.
"""
from __future__ import annotations
from sqlalchemy.exc import IntegrityError
from ..extensions import db
from ..models import Product, SaleLine
from ..validation import ConflictError, DEFAULT_CATEGORY, enforce_rules_product

PRODUCT_MUTABLE_FIELDS = {"name", "price_cents", "stock", "category"}

DUPLICATE_NAME_MESSAGE = "A product with this name already exists for this user."


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        if k == "name":
            v = v.strip()
        setattr(p, k, v)


def find_product_by_name(*, user_id: int, name: str) -> Product | None:
    """Natural-key lookup: exact, case-sensitive name within the user's catalog."""
    return (
        db.session.query(Product)
        .filter(Product.user_id == user_id, Product.name == name)
        .first()
    )


def get_product(*, user_id: int, product_id: int) -> Product | None:
    return (
        db.session.query(Product)
        .filter(Product.id == product_id, Product.user_id == user_id)
        .first()
    )


def list_products(
    *,
    user_id: int,
    category: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    The user's catalog sorted by name, optionally narrowed to one category.

    Without page every product comes back. With page, per_page defaults to
    20 (capped at 100) and a "pagination" block is added.
    """
    query = db.session.query(Product).filter(Product.user_id == user_id)
    if category:
        query = query.filter(Product.category == category)
    query = query.order_by(Product.name.asc(), Product.id.asc())

    if page is None:
        items = [p.to_dict() for p in query.all()]
        return {"items": items, "count": len(items)}

    size = min(per_page or 20, 100)
    page = max(page, 1)
    total = query.count()
    pages = max(1, -(-total // size))

    items = [p.to_dict() for p in query.offset((page - 1) * size).limit(size).all()]
    return {
        "items": items,
        "count": len(items),
        "pagination": {
            "page": page,
            "per_page": size,
            "total": total,
            "total_pages": pages,
            "has_next": page < pages,
            "has_prev": page > 1,
        },
    }


def create_product(*, user_id: int, patch: dict) -> Product:
    """Add a product; category defaults to "Other". Duplicate names raise ConflictError."""
    patch = dict(patch)
    patch.setdefault("category", DEFAULT_CATEGORY)
    enforce_rules_product(patch)

    if find_product_by_name(user_id=user_id, name=patch["name"].strip()):
        raise ConflictError("Product with this name already exists for your inventory.")

    p = Product(user_id=user_id)
    apply_product_patch(p, patch)
    db.session.add(p)
    _commit_or_conflict()
    return p


def update_product(*, user_id: int, product_id: int, patch: dict) -> Product | None:
    """Patch a product in place; None when user_id has no such product."""
    p = get_product(user_id=user_id, product_id=product_id)
    if p is None:
        return None

    enforce_rules_product(patch)
    new_name = patch["name"].strip() if "name" in patch else None
    if new_name is not None and new_name != p.name:
        clash = find_product_by_name(user_id=user_id, name=new_name)
        if clash is not None and clash.id != p.id:
            raise ConflictError("Another product with this name already exists for your inventory.")

    apply_product_patch(p, patch)
    _commit_or_conflict()
    return p


def delete_product(*, user_id: int, product_id: int) -> bool:
    # Past sale lines keep their name and price snapshots
    p = get_product(user_id=user_id, product_id=product_id)
    if p is None:
        return False

    db.session.query(SaleLine).filter(SaleLine.product_id == p.id).update(
        {SaleLine.product_id: None}, synchronize_session=False
    )
    db.session.delete(p)
    db.session.commit()
    return True


def _commit_or_conflict() -> None:
    # The (user_id, name) unique constraint catches races the pre-check missed
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(DUPLICATE_NAME_MESSAGE)
