# merci/model/campaign.py
from __future__ import annotations
import uuid
from datetime import date
from sqlalchemy.sql import func
from ..extensions import db
from ..services.discount_engine import CampaignRules
from .types import GUID

def _csv_to_intset(s: str | None) -> set[int]:
    if not s:
        return set()
    return {int(x) for x in s.split(",") if x.strip().lstrip("-").isdigit()}

def _intset_to_csv(values) -> str:
    return ",".join(str(v) for v in sorted({int(v) for v in (values or [])}))

def _money_out(x):
    return None if x is None else float(x)

class Campaign(db.Model):
    __tablename__ = "campaigns"
    __table_args__ = (
        db.UniqueConstraint("store_id", "code", name="uq_campaigns_store_code"),
    )

    id = db.Column(GUID(), primary_key=True, default=uuid.uuid4)
    store_id = db.Column(db.String(64), nullable=False, index=True)

    # stored upper-case, so the unique constraint is case-insensitive
    code = db.Column(db.String(64), nullable=False, index=True)
    name = db.Column(db.String(180), nullable=False)

    # "percent" or "absolute"
    discount_type = db.Column(db.String(16), nullable=False, default="percent")
    discount_value = db.Column(db.Numeric(12, 2), nullable=False)

    # inclusive bounds, None = unbounded
    valid_from = db.Column(db.Date, nullable=True)
    valid_until = db.Column(db.Date, nullable=True)

    # "all" | "categories" | "products"; id lists kept as csv
    apply_scope = db.Column(db.String(16), nullable=False, default="all")
    include_category_ids = db.Column(db.Text, nullable=False, default="")
    exclude_category_ids = db.Column(db.Text, nullable=False, default="")
    include_product_ids = db.Column(db.Text, nullable=False, default="")
    exclude_product_ids = db.Column(db.Text, nullable=False, default="")

    min_cart_amount = db.Column(db.Numeric(12, 2), nullable=True)
    max_discount_amount = db.Column(db.Numeric(12, 2), nullable=True)
    monthly_cap_amount = db.Column(db.Numeric(12, 2), nullable=True)   # per client, per calendar month
    exclude_sale_items = db.Column(db.Boolean, nullable=False, default=False)

    # "active" | "paused"; date expiry is derived, never stored
    status = db.Column(db.String(16), nullable=False, default="active", index=True)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    redemptions = db.relationship(
        "Redemption",
        back_populates="campaign",
        cascade="all, delete-orphan",
        lazy="select",
    )
    checkout_lines = db.relationship(
        "CheckoutDiscount",
        back_populates="campaign",
        cascade="all, delete-orphan",
        lazy="select",
    )

    # --------- id list helpers ----------
    def id_set(self, column: str) -> set[int]:
        return _csv_to_intset(getattr(self, column))

    def set_id_list(self, column: str, values):
        setattr(self, column, _intset_to_csv(values))

    def is_expired(self, today: date) -> bool:
        return self.valid_until is not None and today > self.valid_until

    def to_rules(self) -> CampaignRules:
        return CampaignRules(
            id=str(self.id),
            store_id=self.store_id,
            code=self.code,
            name=self.name,
            discount_type=self.discount_type,
            discount_value=self.discount_value,
            valid_from=self.valid_from,
            valid_until=self.valid_until,
            apply_scope=self.apply_scope,
            include_category_ids=self.id_set("include_category_ids"),
            exclude_category_ids=self.id_set("exclude_category_ids"),
            include_product_ids=self.id_set("include_product_ids"),
            exclude_product_ids=self.id_set("exclude_product_ids"),
            max_discount_amount=self.max_discount_amount,
            min_cart_amount=self.min_cart_amount,
            status=self.status,
            exclude_sale_items=bool(self.exclude_sale_items),
            monthly_cap_amount=self.monthly_cap_amount,
        )

    def as_payload(self) -> dict:
        """Editable fields, in the shape the admin form sends them."""
        return {
            "code": self.code,
            "name": self.name,
            "discount_type": self.discount_type,
            "discount_value": self.discount_value,
            "valid_from": self.valid_from.isoformat() if self.valid_from else None,
            "valid_until": self.valid_until.isoformat() if self.valid_until else None,
            "apply_scope": self.apply_scope,
            "include_category_ids": sorted(self.id_set("include_category_ids")),
            "exclude_category_ids": sorted(self.id_set("exclude_category_ids")),
            "include_product_ids": sorted(self.id_set("include_product_ids")),
            "exclude_product_ids": sorted(self.id_set("exclude_product_ids")),
            "min_cart_amount": self.min_cart_amount,
            "max_discount_amount": self.max_discount_amount,
            "monthly_cap_amount": self.monthly_cap_amount,
            "exclude_sale_items": bool(self.exclude_sale_items),
            "status": self.status,
        }

    def as_api(self, today: date | None = None) -> dict:
        data = self.as_payload()
        data.update({
            "id": str(self.id),
            "store_id": self.store_id,
            "discount_value": _money_out(self.discount_value),
            "min_cart_amount": _money_out(self.min_cart_amount),
            "max_discount_amount": _money_out(self.max_discount_amount),
            "monthly_cap_amount": _money_out(self.monthly_cap_amount),
            "expired": self.is_expired(today) if today else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        })
        return data
