# merci/checkout/routes.py
"""
Endpoints called by the storefront checkout widget.

POST /api/checkout/code/set answers {ok, code, amount, label} with a negative
amount (a debit to the order), or {ok: false, error, message}. Rejections are
HTTP 200 so the widget can explain the reason; only malformed requests are 400.
"""
from __future__ import annotations
from flask import request, jsonify, current_app
from ..services.checkout_service import CheckoutService
from ..services.discount_engine import CartSnapshot, ErrorKind
from . import bp

def _bad_request(message: str):
    r = jsonify({"ok": False, "error": "BadRequest", "message": message})
    r.status_code = 400
    return r

def _session_keys(data: dict):
    store_id = str(data.get("store_id") or "").strip()
    checkout_id = str(data.get("checkout_id") or "").strip()
    return store_id, checkout_id

def _service() -> CheckoutService:
    return CheckoutService.from_config(current_app.config)

@bp.post("/code/set")
def set_code():
    data = request.get_json(silent=True) or {}
    store_id, checkout_id = _session_keys(data)
    code = str(data.get("code") or "").strip()
    if not store_id:
        return _bad_request("store_id is required")
    if not checkout_id:
        return _bad_request("checkout_id is required")
    if not code:
        return _bad_request("code is required")

    cart = data.get("cart")
    if isinstance(cart, dict):
        cart = cart.get("items")
    if cart is None:
        return _bad_request("cart is required")
    try:
        snapshot = CartSnapshot.from_payload(cart, places=current_app.config["MONEY_PLACES"])
    except ValueError as e:
        return _bad_request(str(e))

    client_id = str(data.get("client_id") or "").strip() or None
    decision = _service().apply(store_id, checkout_id, code, snapshot, client_id=client_id)

    r = jsonify(decision.as_dict())
    if decision.error is ErrorKind.INTERNAL_ERROR:
        r.status_code = 500
    return r

@bp.get("/code")
def get_code():
    store_id = (request.args.get("store_id") or "").strip()
    checkout_id = (request.args.get("checkout_id") or "").strip()
    if not store_id or not checkout_id:
        return _bad_request("store_id and checkout_id are required")
    line = _service().current(store_id, checkout_id)
    if not line:
        return jsonify({"ok": False, "error": None, "message": "no discount applied"})
    return jsonify(line.as_api())

@bp.delete("/code")
def clear_code():
    data = request.get_json(silent=True) or {}
    store_id, checkout_id = _session_keys(data)
    if not store_id or not checkout_id:
        store_id = store_id or (request.args.get("store_id") or "").strip()
        checkout_id = checkout_id or (request.args.get("checkout_id") or "").strip()
    if not store_id or not checkout_id:
        return _bad_request("store_id and checkout_id are required")
    removed = _service().clear(store_id, checkout_id)
    return jsonify({"ok": True, "removed": removed})
