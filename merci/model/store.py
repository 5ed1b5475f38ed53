# merci/model/store.py
from sqlalchemy.sql import func
from ..extensions import db

class Store(db.Model):
    """A merchant store that installed the app, with its platform access token."""
    __tablename__ = "stores"

    store_id = db.Column(db.String(64), primary_key=True)
    access_token = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    def as_dict(self):
        return {
            "store_id": self.store_id,
            "has_token": bool(self.access_token),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
