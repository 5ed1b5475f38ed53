# merci/model/template.py
from sqlalchemy.sql import func
from ..extensions import db
from .campaign import _csv_to_intset

class CampaignTemplate(db.Model):
    """Preset the admin can start a campaign from."""
    __tablename__ = "campaign_templates"

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(64), unique=True, nullable=False)
    label = db.Column(db.String(180), nullable=False, index=True)
    type = db.Column(db.String(16), nullable=False, default="percent")
    value = db.Column(db.Numeric(12, 2), nullable=False)
    max_discount = db.Column(db.Numeric(12, 2), nullable=True)
    min_subtotal = db.Column(db.Numeric(12, 2), nullable=True)
    include_category_ids = db.Column(db.Text, nullable=False, default="")
    exclude_category_ids = db.Column(db.Text, nullable=False, default="")
    notes = db.Column(db.Text, nullable=True)
    active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    def as_api(self):
        return {
            "id": self.id,
            "key": self.key,
            "label": self.label,
            "type": self.type,
            "value": float(self.value),
            "max_discount": float(self.max_discount) if self.max_discount is not None else None,
            "min_subtotal": float(self.min_subtotal) if self.min_subtotal is not None else None,
            "include_category_ids": sorted(_csv_to_intset(self.include_category_ids)),
            "exclude_category_ids": sorted(_csv_to_intset(self.exclude_category_ids)),
            "notes": self.notes,
            "active": self.active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
