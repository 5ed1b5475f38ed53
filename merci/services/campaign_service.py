# merci/services/campaign_service.py
from __future__ import annotations
import re
from datetime import date, datetime
from sqlalchemy import func
from ..extensions import db
from ..model import Campaign
from ..utils.money import D, round_money
from ..utils.convert import to_bool
from ..utils.logger import get_logger
from .discount_engine import APPLY_SCOPES, DISCOUNT_TYPES, STATUSES, CampaignRules

log = get_logger("campaigns")

_CODE_RE = re.compile(r"^[A-Z0-9][A-Z0-9_\-]{0,63}$")
_ID_COLUMNS = (
    "include_category_ids",
    "exclude_category_ids",
    "include_product_ids",
    "exclude_product_ids",
)

class DuplicateCodeError(ValueError):
    pass

class CampaignNotFound(LookupError):
    pass

# ---- payload parsing ---------------------------------------------------------

def _parse_date(value, field: str) -> date | None:
    """Accepts 'YYYY-MM-DD' or a full ISO-8601 timestamp (date part is kept)."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        if len(s) == 10:
            return date.fromisoformat(s)
        return datetime.fromisoformat(s).date()
    except ValueError:
        raise ValueError(f"Invalid date format for {field}, expected YYYY-MM-DD")

def _parse_money(value, field: str, *, positive: bool = False):
    if value in (None, ""):
        return None
    try:
        amount = D(value)
    except ValueError:
        raise ValueError(f"{field} must be numeric")
    if not amount.is_finite():
        raise ValueError(f"{field} must be numeric")
    if positive and amount <= 0:
        raise ValueError(f"{field} must be > 0")
    if amount < 0:
        raise ValueError(f"{field} must be >= 0")
    return round_money(amount)

def _parse_ids(value, field: str) -> list[int]:
    if value in (None, ""):
        return []
    if isinstance(value, str):
        value = [v for v in value.split(",") if v.strip()]
    if not isinstance(value, (list, tuple, set)):
        raise ValueError(f"{field} must be a list of ids")
    out = []
    for v in value:
        if isinstance(v, bool):
            raise ValueError(f"{field} must contain integer ids")
        try:
            out.append(int(str(v).strip()))
        except ValueError:
            raise ValueError(f"{field} must contain integer ids")
    return out

def clean_campaign_payload(data: dict) -> dict:
    """Validate an admin create/update payload; returns normalized column values."""
    code = str(data.get("code") or "").strip().upper()
    if not code:
        raise ValueError("code is required")
    if not _CODE_RE.match(code):
        raise ValueError("code may only contain letters, digits, '-' and '_' (max 64)")

    name = str(data.get("name") or "").strip()
    if not name:
        raise ValueError("name is required")

    discount_type = str(data.get("discount_type") or "percent").lower().strip()
    if discount_type not in DISCOUNT_TYPES:
        raise ValueError("discount_type must be 'percent' or 'absolute'")

    if data.get("discount_value") in (None, ""):
        raise ValueError("discount_value is required")
    discount_value = _parse_money(data.get("discount_value"), "discount_value", positive=True)
    if discount_type == "percent" and discount_value > 100:
        raise ValueError("percent discount_value must be <= 100")

    valid_from = _parse_date(data.get("valid_from"), "valid_from")
    valid_until = _parse_date(data.get("valid_until"), "valid_until")
    if valid_from and valid_until and valid_from > valid_until:
        raise ValueError("valid_from must be on or before valid_until")

    apply_scope = str(data.get("apply_scope") or "all").lower().strip()
    if apply_scope not in APPLY_SCOPES:
        raise ValueError("apply_scope must be 'all', 'categories' or 'products'")

    status = str(data.get("status") or "active").lower().strip()
    if status not in STATUSES:
        raise ValueError("status must be 'active' or 'paused'")

    cleaned = {
        "code": code,
        "name": name[:180],
        "discount_type": discount_type,
        "discount_value": discount_value,
        "valid_from": valid_from,
        "valid_until": valid_until,
        "apply_scope": apply_scope,
        "min_cart_amount": _parse_money(data.get("min_cart_amount"), "min_cart_amount"),
        "max_discount_amount": _parse_money(data.get("max_discount_amount"), "max_discount_amount", positive=True),
        "monthly_cap_amount": _parse_money(data.get("monthly_cap_amount"), "monthly_cap_amount", positive=True),
        "exclude_sale_items": to_bool(data.get("exclude_sale_items", False)),
        "status": status,
    }
    for col in _ID_COLUMNS:
        cleaned[col] = _parse_ids(data.get(col), col)

    # the engine must accept whatever we store
    CampaignRules(**cleaned)
    return cleaned

def _apply_cleaned(c: Campaign, cleaned: dict):
    for key, value in cleaned.items():
        if key in _ID_COLUMNS:
            c.set_id_list(key, value)
        else:
            setattr(c, key, value)

# ---- queries -----------------------------------------------------------------

def _find_by_code(store_id: str, code: str) -> Campaign | None:
    return (
        Campaign.query
        .filter(Campaign.store_id == str(store_id))
        .filter(func.upper(Campaign.code) == (code or "").strip().upper())
        .first()
    )

def list_campaigns(store_id: str, status: str | None = None, limit: int = 50) -> list[Campaign]:
    q = Campaign.query.filter(Campaign.store_id == str(store_id))
    if status:
        q = q.filter(Campaign.status == status)
    return q.order_by(Campaign.created_at.desc(), Campaign.code.asc()).limit(limit).all()

def get_campaign(store_id: str, campaign_id) -> Campaign:
    c = db.session.get(Campaign, campaign_id)
    if not c or c.store_id != str(store_id):
        raise CampaignNotFound("campaign not found")
    return c

# ---- commands ----------------------------------------------------------------

def create_campaign(store_id: str, data: dict) -> Campaign:
    store_id = str(store_id or "").strip()
    if not store_id:
        raise ValueError("store_id is required")
    cleaned = clean_campaign_payload(data)

    if _find_by_code(store_id, cleaned["code"]):
        raise DuplicateCodeError("Campaign code already exists")

    c = Campaign(store_id=store_id)
    _apply_cleaned(c, cleaned)
    db.session.add(c)
    db.session.commit()
    log.info("campaign created store=%s code=%s id=%s", store_id, c.code, c.id)
    return c

def update_campaign(c: Campaign, data: dict) -> Campaign:
    """Partial update. The code is fixed once the campaign exists."""
    new_code = data.get("code")
    if new_code is not None and str(new_code).strip().upper() != c.code:
        raise ValueError("code cannot be changed")

    merged = c.as_payload()
    merged.update({k: v for k, v in data.items() if k not in ("id", "store_id", "code")})
    cleaned = clean_campaign_payload(merged)

    _apply_cleaned(c, cleaned)
    db.session.commit()
    log.info("campaign updated store=%s code=%s", c.store_id, c.code)
    return c

def set_status(c: Campaign, status: str) -> Campaign:
    if status not in STATUSES:
        raise ValueError("status must be 'active' or 'paused'")
    c.status = status
    db.session.commit()
    log.info("campaign %s store=%s code=%s", status, c.store_id, c.code)
    return c

def delete_campaign(c: Campaign):
    db.session.delete(c)
    db.session.commit()
    log.info("campaign deleted store=%s code=%s", c.store_id, c.code)

# ---- engine repository -------------------------------------------------------

class SqlCampaignRepository:
    """Reads campaigns for the decision engine."""

    def find_by_code(self, store_id, code):
        c = _find_by_code(store_id, code)
        return c.to_rules() if c else None
