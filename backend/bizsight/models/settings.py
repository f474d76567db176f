from __future__ import annotations

from ..extensions import db
from ..validation import cents_to_amount
from bizsight.time_utils import to_utc_z


class AppSettings(db.Model):
    """Per-user report branding and alert thresholds."""
    __tablename__ = "app_settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True)

    # PDF report branding
    company_name = db.Column(db.String(128), nullable=False, default="BizSight Analytics")
    company_logo_url = db.Column(db.String(512), nullable=False, default="")
    report_footer_text = db.Column(
        db.String(255),
        nullable=False,
        default="Generated by BizSight. All rights reserved.",
    )

    # Alert thresholds
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)
    daily_sales_goal_cents = db.Column(db.Integer, nullable=False, default=500_000)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user = db.relationship("User", backref=db.backref("app_settings", uselist=False))

    def to_dict(self) -> dict:
        return {
            "company_name": self.company_name,
            "company_logo_url": self.company_logo_url,
            "report_footer_text": self.report_footer_text,
            "low_stock_threshold": self.low_stock_threshold,
            "daily_sales_goal_cents": self.daily_sales_goal_cents,
            "daily_sales_goal": cents_to_amount(self.daily_sales_goal_cents),
            "updated_at": to_utc_z(self.updated_at),
        }
