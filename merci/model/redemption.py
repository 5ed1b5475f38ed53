# merci/model/redemption.py
import uuid
from sqlalchemy.sql import func
from ..extensions import db
from .types import GUID

RESERVED = "reserved"
COMMITTED = "committed"
RELEASED = "released"

class Redemption(db.Model):
    """Usage ledger row: one reserved/committed/released use of a campaign by a client."""
    __tablename__ = "redemptions"
    __table_args__ = (
        db.Index("ix_redemptions_usage_key", "store_id", "client_id", "campaign_id", "period"),
    )

    id = db.Column(GUID(), primary_key=True, default=uuid.uuid4)
    store_id = db.Column(db.String(64), nullable=False)
    client_id = db.Column(db.String(128), nullable=False)
    campaign_id = db.Column(GUID(), db.ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False)
    checkout_id = db.Column(db.String(128), nullable=True)

    period = db.Column(db.String(7), nullable=False)      # "YYYY-MM"
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=RESERVED, index=True)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    campaign = db.relationship("Campaign", back_populates="redemptions")
