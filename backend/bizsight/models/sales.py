from __future__ import annotations

from ..extensions import db
from ..validation import cents_to_amount
from bizsight.time_utils import to_utc_z


class Sale(db.Model):
    """
    A recorded sale. Immutable once created.

    total_amount_cents is always the sum of the line subtotals.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("total_amount_cents >= 0", name="ck_sales_total_non_negative"),
        db.Index("ix_sales_user_sale_date", "user_id", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    total_amount_cents = db.Column(db.Integer, nullable=False)

    # Can be backdated for historical records
    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    # MANUAL or CSV
    source = db.Column(db.String(16), nullable=False, default="MANUAL")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("sales", lazy=True))
    lines = db.relationship(
        "SaleLine",
        back_populates="sale",
        lazy="selectin",
        order_by="SaleLine.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "items": [line.to_dict() for line in self.lines],
            "total_amount_cents": self.total_amount_cents,
            "total_amount": cents_to_amount(self.total_amount_cents),
            "sale_date": to_utc_z(self.sale_date),
            "source": self.source,
            "created_at": to_utc_z(self.created_at),
        }


class SaleLine(db.Model):
    """
    Line item on a sale.

    product_name and price_at_sale_cents are snapshots taken when the sale is
    recorded; later product edits or deletion do not change them.
    """
    __tablename__ = "sale_lines"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_sale_lines_quantity_positive"),
        db.CheckConstraint("price_at_sale_cents >= 0", name="ck_sale_lines_price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    # Cleared when the product is deleted
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    product_name = db.Column(db.String(100), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price_at_sale_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", back_populates="lines")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price_at_sale_cents": self.price_at_sale_cents,
            "price_at_sale": cents_to_amount(self.price_at_sale_cents),
            "subtotal_cents": self.subtotal_cents,
            "subtotal": cents_to_amount(self.subtotal_cents),
        }
