# merci/model/checkout.py
from sqlalchemy.sql import func
from ..extensions import db
from .types import GUID

class CheckoutDiscount(db.Model):
    """The single discount line applied to a checkout session."""
    __tablename__ = "checkout_discounts"
    __table_args__ = (
        db.UniqueConstraint("store_id", "checkout_id", name="uq_checkout_discounts_session"),
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.String(64), nullable=False, index=True)
    checkout_id = db.Column(db.String(128), nullable=False, index=True)
    campaign_id = db.Column(GUID(), db.ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = db.Column(db.String(128), nullable=True)

    code = db.Column(db.String(64), nullable=False)
    label = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)   # magnitude, debit sign applied on output
    reservation_id = db.Column(db.String(36), nullable=True)

    applied_at = db.Column(db.DateTime, server_default=func.now(), onupdate=func.now())

    campaign = db.relationship("Campaign", back_populates="checkout_lines")

    def as_api(self):
        return {
            "ok": True,
            "code": self.code,
            "label": self.label,
            "amount": float(-self.amount) if self.amount else 0.0,
        }
