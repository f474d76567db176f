from __future__ import annotations

from ..extensions import db
from ..validation import DEFAULT_CATEGORY, MAX_PRODUCT_NAME_LENGTH, cents_to_amount
from bizsight.time_utils import to_utc_z


class Product(db.Model):
    """
    Inventory item owned by a single user.

    NATURAL KEY: (user_id, name) is unique. CSV reconciliation looks products
    up by exact, case-sensitive name within the owner's catalog.

    Stock is decremented by sales and never driven below zero by the system;
    the check constraint is the last line of defence, not the primary check.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("user_id", "name", name="uq_products_user_name"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_user_category", "user_id", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(MAX_PRODUCT_NAME_LENGTH), nullable=False)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)
    category = db.Column(db.String(32), nullable=False, default=DEFAULT_CATEGORY)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user = db.relationship("User", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} user_id={self.user_id} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "price_cents": self.price_cents,
            "price": cents_to_amount(self.price_cents),
            "stock": self.stock,
            "category": self.category,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
