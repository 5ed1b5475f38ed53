# merci/services/checkout_service.py
"""
Applies codes to checkout sessions.

One discount line per (store_id, checkout_id): a valid code replaces the
previous line, a rejected code clears it (the widget removes its row too).
When a campaign carries a monthly cap and the shopper is identified, the
amount is reserved in the usage ledger; replacing or clearing the line
releases that reservation and the order webhook commits it.
"""
from __future__ import annotations
from datetime import date, datetime
from zoneinfo import ZoneInfo
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from ..extensions import db
from ..model import CheckoutDiscount
from ..utils.logger import get_logger
from .campaign_service import SqlCampaignRepository
from .discount_engine import CartSnapshot, Decision, ErrorKind, apply_code
from .usage_service import SqlUsageLedger

log = get_logger("checkout")

def store_today(tz_name: str) -> date:
    return datetime.now(ZoneInfo(tz_name)).date()

class CheckoutService:
    def __init__(self, repository=None, ledger=None, places: int = 2, clock=date.today):
        self.clock = clock
        self.places = places
        self.repository = repository or SqlCampaignRepository()
        self.ledger = ledger or SqlUsageLedger(clock=clock)

    @classmethod
    def from_config(cls, config) -> "CheckoutService":
        tz = config["STORE_TIMEZONE"]
        return cls(places=config["MONEY_PLACES"], clock=lambda: store_today(tz))

    # ---- queries -------------------------------------------------------------

    def current(self, store_id: str, checkout_id: str) -> CheckoutDiscount | None:
        return CheckoutDiscount.query.filter_by(
            store_id=str(store_id), checkout_id=str(checkout_id)
        ).first()

    # ---- commands ------------------------------------------------------------

    def _drop(self, line: CheckoutDiscount):
        if line.reservation_id:
            self.ledger.release(line.reservation_id)
        db.session.delete(line)
        db.session.flush()

    def apply(self, store_id: str, checkout_id: str, code: str, cart: CartSnapshot,
              client_id: str | None = None, today: date | None = None) -> Decision:
        today = today or self.clock()
        for attempt in (1, 2):
            try:
                return self._apply(store_id, checkout_id, code, cart, client_id, today)
            except IntegrityError:
                # another apply inserted this session's line first
                db.session.rollback()
                if attempt == 2:
                    log.error("apply failed store=%s checkout=%s code=%s",
                              store_id, checkout_id, code, exc_info=True)
                    return Decision.failure(ErrorKind.INTERNAL_ERROR)
                log.warning("session line created concurrently store=%s checkout=%s, retrying",
                            store_id, checkout_id)
            except (SQLAlchemyError, ValueError):
                # storage down or a campaign row the engine cannot read
                db.session.rollback()
                log.error("apply failed store=%s checkout=%s code=%s",
                          store_id, checkout_id, code, exc_info=True)
                return Decision.failure(ErrorKind.INTERNAL_ERROR)

    def _apply(self, store_id, checkout_id, code, cart, client_id, today) -> Decision:
        decision = apply_code(self.repository, store_id, code, cart, today, self.places)
        line = self.current(store_id, checkout_id)

        reservation_id = None
        if decision.ok:
            # the previous line's reservation must not count against the new one
            if line and line.reservation_id:
                self.ledger.release(line.reservation_id)
                line.reservation_id = None
            if client_id:
                decision, reservation_id = self._reserve(store_id, checkout_id, client_id, decision)

        if not decision.ok:
            if line:
                self._drop(line)
            db.session.commit()
            log.info("code rejected store=%s checkout=%s code=%s reason=%s",
                     store_id, checkout_id, decision.code or code, decision.error.value)
            return decision

        if line is None:
            line = CheckoutDiscount(store_id=str(store_id), checkout_id=str(checkout_id))
            db.session.add(line)
        line.campaign_id = decision.campaign_id
        line.client_id = client_id
        line.code = decision.code
        line.label = decision.label
        line.amount = decision.amount
        line.reservation_id = reservation_id
        db.session.commit()
        log.info("code applied store=%s checkout=%s code=%s amount=%s",
                 store_id, checkout_id, decision.code, decision.amount)
        return decision

    def _reserve(self, store_id, checkout_id, client_id, decision: Decision):
        rules = self.repository.find_by_code(store_id, decision.code)
        if rules is None or rules.monthly_cap_amount is None:
            return decision, None

        reservation_id = self.ledger.reserve(store_id, client_id, rules, decision.amount, checkout_id)
        if reservation_id is None:
            return Decision.failure(ErrorKind.CAP_REACHED, code=decision.code, campaign_id=decision.campaign_id), None
        return decision, reservation_id

    def clear(self, store_id: str, checkout_id: str) -> bool:
        line = self.current(store_id, checkout_id)
        if not line:
            return False
        self._drop(line)
        db.session.commit()
        log.info("code cleared store=%s checkout=%s", store_id, checkout_id)
        return True

    def commit_order(self, store_id: str, checkout_id: str) -> bool:
        """Order placed: the reserved amount becomes a committed use."""
        line = self.current(store_id, checkout_id)
        if not line or not line.reservation_id:
            return False
        done = self.ledger.commit(line.reservation_id)
        db.session.commit()
        log.info("usage committed store=%s checkout=%s code=%s", store_id, checkout_id, line.code)
        return done
