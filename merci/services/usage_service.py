# merci/services/usage_service.py
"""
Monthly per-client usage ledger.

Implements the engine's reserve / commit / release hook on top of the
``redemptions`` table. A reservation counts against the cap until it is
released, so two concurrent checkouts cannot both slip under it: the
campaign row is locked (SELECT ... FOR UPDATE) while the running total is
read and the new reservation is inserted. Callers own the transaction.
"""
from __future__ import annotations
import uuid
from datetime import date
from typing import Callable, Optional
from sqlalchemy import func
from ..extensions import db
from ..model import Campaign, Redemption
from ..model.redemption import RESERVED, COMMITTED, RELEASED
from ..utils.money import D, Money
from ..utils.logger import get_logger
from .discount_engine import CampaignRules

log = get_logger("usage")

def period_of(day: date) -> str:
    return day.strftime("%Y-%m")

def _as_uuid(value) -> Optional[uuid.UUID]:
    try:
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None

class SqlUsageLedger:
    def __init__(self, clock: Callable[[], date] = date.today):
        self.clock = clock

    def used_amount(self, store_id: str, client_id: str, campaign_id, period: str | None = None) -> Money:
        period = period or period_of(self.clock())
        total = (
            db.session.query(func.coalesce(func.sum(Redemption.amount), 0))
            .filter(
                Redemption.store_id == str(store_id),
                Redemption.client_id == str(client_id),
                Redemption.campaign_id == _as_uuid(campaign_id),
                Redemption.period == period,
                Redemption.status.in_((RESERVED, COMMITTED)),
            )
            .scalar()
        )
        return D(total)

    def reserve(self, store_id, client_id, rules: CampaignRules, amount, checkout_id=None) -> Optional[str]:
        campaign_id = _as_uuid(rules.id)
        # serialize reservations for this campaign
        db.session.query(Campaign.id).filter(Campaign.id == campaign_id).with_for_update().first()

        period = period_of(self.clock())
        used = self.used_amount(store_id, client_id, campaign_id, period)
        if rules.monthly_cap_amount is not None and used + D(amount) > rules.monthly_cap_amount:
            log.info("cap reached store=%s client=%s code=%s used=%s amount=%s cap=%s",
                     store_id, client_id, rules.code, used, amount, rules.monthly_cap_amount)
            return None

        r = Redemption(
            store_id=str(store_id),
            client_id=str(client_id),
            campaign_id=campaign_id,
            checkout_id=checkout_id,
            period=period,
            amount=D(amount),
            status=RESERVED,
        )
        db.session.add(r)
        db.session.flush()
        return str(r.id)

    def _transition(self, reservation_id, new_status: str) -> bool:
        rid = _as_uuid(reservation_id)
        r = db.session.get(Redemption, rid) if rid else None
        if not r or r.status != RESERVED:
            return False
        r.status = new_status
        db.session.flush()
        return True

    def commit(self, reservation_id) -> bool:
        return self._transition(reservation_id, COMMITTED)

    def release(self, reservation_id) -> bool:
        return self._transition(reservation_id, RELEASED)
