"""
Checkout sessions: one discount line per checkout, usage ledger reservations.
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from merci.model import CheckoutDiscount, Redemption
from merci.services.checkout_service import CheckoutService
from merci.services.discount_engine import CartSnapshot, ErrorKind
from merci.services.usage_service import SqlUsageLedger, period_of

from .conftest import STORE_ID

TODAY = date(2025, 6, 1)


def snapshot(*prices):
    return CartSnapshot.from_payload([{"name": f"item {i}", "price": p, "qty": 1} for i, p in enumerate(prices)])


@pytest.fixture()
def service(app):
    return CheckoutService(clock=lambda: TODAY)


class TestApply:

    def test_success_stores_line(self, service, make_campaign):
        make_campaign()
        d = service.apply(STORE_ID, "chk-1", "merci10", snapshot(1000))
        assert d.ok and d.amount == Decimal("100.00")
        line = service.current(STORE_ID, "chk-1")
        assert line.code == "MERCI10"
        assert line.as_api() == {"ok": True, "code": "MERCI10", "label": "Merci (MERCI10)", "amount": -100.0}

    def test_new_code_replaces_previous(self, service, make_campaign):
        make_campaign(code="TEN")
        make_campaign(code="FIFTY", name="Fifty", discount_type="absolute", discount_value=50)
        service.apply(STORE_ID, "chk-1", "TEN", snapshot(1000))
        service.apply(STORE_ID, "chk-1", "FIFTY", snapshot(1000))
        lines = CheckoutDiscount.query.filter_by(checkout_id="chk-1").all()
        assert len(lines) == 1
        assert lines[0].code == "FIFTY"
        assert lines[0].amount == Decimal("50.00")

    def test_rejected_code_clears_line(self, service, make_campaign):
        make_campaign()
        service.apply(STORE_ID, "chk-1", "MERCI10", snapshot(1000))
        d = service.apply(STORE_ID, "chk-1", "UNKNOWN", snapshot(1000))
        assert d.error is ErrorKind.CODE_NOT_FOUND
        assert service.current(STORE_ID, "chk-1") is None

    def test_sessions_are_independent(self, service, make_campaign):
        make_campaign()
        service.apply(STORE_ID, "chk-1", "MERCI10", snapshot(1000))
        service.apply(STORE_ID, "chk-2", "MERCI10", snapshot(200))
        assert service.current(STORE_ID, "chk-1").amount == Decimal("100.00")
        assert service.current(STORE_ID, "chk-2").amount == Decimal("20.00")

    def test_reapply_is_idempotent(self, service, make_campaign):
        make_campaign()
        first = service.apply(STORE_ID, "chk-1", "MERCI10", snapshot("99.99", "0.01"))
        second = service.apply(STORE_ID, "chk-1", "MERCI10", snapshot("99.99", "0.01"))
        assert (first.amount, first.label) == (second.amount, second.label)

    def test_clear(self, service, make_campaign):
        make_campaign()
        service.apply(STORE_ID, "chk-1", "MERCI10", snapshot(1000))
        assert service.clear(STORE_ID, "chk-1") is True
        assert service.clear(STORE_ID, "chk-1") is False

    def test_storage_failure_is_internal_error(self, service, monkeypatch):
        def boom(*a, **kw):
            raise OperationalError("SELECT 1", {}, Exception("db down"))
        monkeypatch.setattr(service.repository, "find_by_code", boom)
        d = service.apply(STORE_ID, "chk-1", "MERCI10", snapshot(10))
        assert d.error is ErrorKind.INTERNAL_ERROR
        assert d.as_dict() == {"ok": False, "error": "InternalError",
                               "message": "Something went wrong. Please try again."}

    def test_malformed_campaign_row_is_internal_error(self, service, make_campaign, db):
        c = make_campaign()
        c.discount_type = "bogus"
        db.session.commit()
        d = service.apply(STORE_ID, "chk-1", "MERCI10", snapshot(10))
        assert d.error is ErrorKind.INTERNAL_ERROR

    def test_line_inserted_concurrently_is_updated(self, service, make_campaign, db, monkeypatch):
        c = make_campaign()
        lookup = service.current
        calls = []

        def racing_current(store_id, checkout_id):
            # another request commits the session line right after our read
            if not calls:
                calls.append(1)
                db.session.add(CheckoutDiscount(
                    store_id=STORE_ID, checkout_id="chk-1", campaign_id=c.id,
                    code="OTHER", label="Other (OTHER)", amount=Decimal("5.00"),
                ))
                db.session.commit()
                return None
            return lookup(store_id, checkout_id)

        monkeypatch.setattr(service, "current", racing_current)
        d = service.apply(STORE_ID, "chk-1", "MERCI10", snapshot(1000))
        assert d.ok and d.amount == Decimal("100.00")
        lines = CheckoutDiscount.query.filter_by(store_id=STORE_ID, checkout_id="chk-1").all()
        assert len(lines) == 1
        assert lines[0].code == "MERCI10"
        assert lines[0].amount == Decimal("100.00")


class TestMonthlyCap:

    def test_reservation_made_for_identified_client(self, service, make_campaign):
        make_campaign(monthly_cap_amount=150)
        d = service.apply(STORE_ID, "chk-1", "MERCI10", snapshot(1000), client_id="c-1")
        assert d.ok
        line = service.current(STORE_ID, "chk-1")
        assert line.reservation_id
        r = Redemption.query.one()
        assert (r.status, r.amount, r.period) == ("reserved", Decimal("100.00"), "2025-06")

    def test_cap_reached_across_checkouts(self, service, make_campaign):
        make_campaign(monthly_cap_amount=150)
        assert service.apply(STORE_ID, "chk-1", "MERCI10", snapshot(1000), client_id="c-1").ok
        d = service.apply(STORE_ID, "chk-2", "MERCI10", snapshot(1000), client_id="c-1")
        assert d.error is ErrorKind.CAP_REACHED
        assert service.current(STORE_ID, "chk-2") is None
        # another client has its own budget
        assert service.apply(STORE_ID, "chk-3", "MERCI10", snapshot(1000), client_id="c-2").ok

    def test_reapply_in_same_checkout_does_not_double_count(self, service, make_campaign):
        make_campaign(monthly_cap_amount=150)
        for _ in range(3):
            assert service.apply(STORE_ID, "chk-1", "MERCI10", snapshot(1000), client_id="c-1").ok
        ledger = SqlUsageLedger(clock=lambda: TODAY)
        line = service.current(STORE_ID, "chk-1")
        assert ledger.used_amount(STORE_ID, "c-1", line.campaign_id) == Decimal("100.00")

    def test_clear_releases_reservation(self, service, make_campaign):
        make_campaign(monthly_cap_amount=150)
        service.apply(STORE_ID, "chk-1", "MERCI10", snapshot(1000), client_id="c-1")
        service.clear(STORE_ID, "chk-1")
        assert Redemption.query.one().status == "released"
        assert service.apply(STORE_ID, "chk-2", "MERCI10", snapshot(1000), client_id="c-1").ok

    def test_commit_order(self, service, make_campaign):
        make_campaign(monthly_cap_amount=150)
        service.apply(STORE_ID, "chk-1", "MERCI10", snapshot(1000), client_id="c-1")
        assert service.commit_order(STORE_ID, "chk-1") is True
        assert Redemption.query.one().status == "committed"
        # committed uses are no longer released by clearing the session
        service.clear(STORE_ID, "chk-1")
        assert Redemption.query.one().status == "committed"

    def test_no_reservation_without_client(self, service, make_campaign):
        make_campaign(monthly_cap_amount=150)
        assert service.apply(STORE_ID, "chk-1", "MERCI10", snapshot(1000)).ok
        assert Redemption.query.count() == 0

    def test_new_month_resets_budget(self, make_campaign):
        make_campaign(monthly_cap_amount=150)
        june = CheckoutService(clock=lambda: date(2025, 6, 30))
        july = CheckoutService(clock=lambda: date(2025, 7, 1))
        assert june.apply(STORE_ID, "chk-1", "MERCI10", snapshot(1000), client_id="c-1").ok
        assert not june.apply(STORE_ID, "chk-2", "MERCI10", snapshot(1000), client_id="c-1").ok
        assert july.apply(STORE_ID, "chk-3", "MERCI10", snapshot(1000), client_id="c-1").ok

    def test_period_format(self):
        assert period_of(date(2025, 1, 9)) == "2025-01"


class TestUsageLedger:

    def test_transitions(self, app, make_campaign):
        rules = make_campaign(monthly_cap_amount=100).to_rules()
        ledger = SqlUsageLedger(clock=lambda: TODAY)

        rid = ledger.reserve(STORE_ID, "c-1", rules, Decimal("60"))
        assert rid
        assert ledger.reserve(STORE_ID, "c-1", rules, Decimal("60")) is None
        assert ledger.release(rid) is True
        assert ledger.release(rid) is False

        rid = ledger.reserve(STORE_ID, "c-1", rules, Decimal("100"))
        assert ledger.commit(rid) is True
        assert ledger.commit(rid) is False
        assert ledger.used_amount(STORE_ID, "c-1", rules.id) == Decimal("100")

    def test_unknown_reservation(self, app):
        ledger = SqlUsageLedger()
        assert ledger.commit("not-a-uuid") is False
        assert ledger.release("00000000-0000-0000-0000-000000000000") is False
