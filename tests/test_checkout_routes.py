"""
Checkout widget endpoint: request validation and the {ok, code, amount, label} contract.
"""

from .conftest import STORE_ID


def apply(client, code="MERCI10", items=None, **extra):
    body = {
        "store_id": STORE_ID,
        "checkout_id": "chk-1",
        "code": code,
        "cart": {"items": items if items is not None else [{"name": "Yerba", "qty": 2, "price": 500}]},
    }
    body.update(extra)
    return client.post("/api/checkout/code/set", json=body)


class TestSetCode:

    def test_success_contract(self, client, make_campaign):
        make_campaign()
        r = apply(client, code="merci10")
        assert r.status_code == 200
        assert r.get_json() == {"ok": True, "code": "MERCI10", "amount": -100.0, "label": "Merci (MERCI10)"}

    def test_client_subtotal_is_ignored(self, client, make_campaign):
        make_campaign()
        r = client.post("/api/checkout/code/set", json={
            "store_id": STORE_ID, "checkout_id": "chk-1", "code": "MERCI10",
            "cart": {"items": [{"name": "A", "qty": 1, "price": 100}], "subtotal": 100000},
        })
        assert r.get_json()["amount"] == -10.0

    def test_items_list_accepted_directly(self, client, make_campaign):
        make_campaign()
        r = apply(client, items=None, cart=[{"name": "A", "quantity": 1, "unit_price": 300}])
        assert r.get_json()["amount"] == -30.0

    def test_unknown_code(self, client):
        r = apply(client, code="NOPE")
        assert r.status_code == 200
        body = r.get_json()
        assert body["ok"] is False
        assert body["error"] == "CodeNotFound"

    def test_inapplicable_reason_is_specific(self, client, make_campaign):
        make_campaign(valid_until="2000-01-01")
        body = apply(client).get_json()
        assert body == {"ok": False, "error": "Expired", "message": "This code has expired."}

    def test_scope_mismatch(self, client, make_campaign):
        make_campaign(apply_scope="categories", include_category_ids=[5])
        body = apply(client, items=[{"name": "A", "price": 10, "category_ids": [1]}]).get_json()
        assert body["error"] == "ScopeMismatch"

    def test_cart_too_small(self, client, make_campaign):
        make_campaign(min_cart_amount=5000)
        assert apply(client).get_json()["error"] == "CartTooSmall"

    def test_paused_campaign_is_inactive_not_missing(self, client, make_campaign):
        make_campaign(status="paused")
        assert apply(client).get_json()["error"] == "Inactive"

    def test_cap_reached(self, client, make_campaign):
        make_campaign(monthly_cap_amount=150)
        assert apply(client, client_id="shopper-1").get_json()["ok"] is True
        body = apply(client, client_id="shopper-1", checkout_id="chk-2").get_json()
        assert body["error"] == "CapReached"

    def test_bad_requests(self, client):
        assert apply(client, code="").status_code == 400
        assert apply(client, store_id="").status_code == 400
        assert apply(client, checkout_id="").status_code == 400
        assert apply(client, items=[{"name": "A", "qty": 0, "price": 1}]).status_code == 400
        r = client.post("/api/checkout/code/set", json={"store_id": STORE_ID, "checkout_id": "x", "code": "A"})
        assert r.status_code == 400
        assert r.get_json()["message"] == "cart is required"


class TestCurrentAndClear:

    def test_get_current_line(self, client, make_campaign):
        make_campaign()
        apply(client)
        r = client.get(f"/api/checkout/code?store_id={STORE_ID}&checkout_id=chk-1")
        assert r.get_json() == {"ok": True, "code": "MERCI10", "label": "Merci (MERCI10)", "amount": -100.0}

    def test_get_without_line(self, client):
        r = client.get(f"/api/checkout/code?store_id={STORE_ID}&checkout_id=chk-9")
        assert r.get_json()["ok"] is False

    def test_failed_apply_clears_line(self, client, make_campaign):
        make_campaign()
        apply(client)
        apply(client, code="NOPE")
        r = client.get(f"/api/checkout/code?store_id={STORE_ID}&checkout_id=chk-1")
        assert r.get_json()["ok"] is False

    def test_delete(self, client, make_campaign):
        make_campaign()
        apply(client)
        r = client.delete("/api/checkout/code", json={"store_id": STORE_ID, "checkout_id": "chk-1"})
        assert r.get_json() == {"ok": True, "removed": True}
        r = client.delete(f"/api/checkout/code?store_id={STORE_ID}&checkout_id=chk-1")
        assert r.get_json() == {"ok": True, "removed": False}

    def test_delete_requires_keys(self, client):
        assert client.delete("/api/checkout/code").status_code == 400
