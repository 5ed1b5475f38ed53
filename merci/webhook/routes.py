# merci/webhook/routes.py
from flask import request, jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError
from ..extensions import db
from ..services.checkout_service import CheckoutService
from ..utils.logger import get_logger
from . import bp

log = get_logger("webhooks")

@bp.post("/discounts/callback")
def discounts_callback():
    # platform discount callback: discounts are applied by our own checkout line
    return jsonify({"discounts": []})

@bp.post("/webhooks/orders/create")
def order_created():
    data = request.get_json(silent=True) or {}
    store_id = str(data.get("store_id") or "").strip()
    checkout_id = str(data.get("checkout_id") or "").strip()
    if store_id and checkout_id:
        try:
            committed = CheckoutService.from_config(current_app.config).commit_order(store_id, checkout_id)
        except SQLAlchemyError:
            # non-2xx makes the platform redeliver the webhook
            db.session.rollback()
            log.error("order webhook failed store=%s checkout=%s", store_id, checkout_id, exc_info=True)
            r = jsonify({"ok": False, "error": "InternalError"})
            r.status_code = 500
            return r
        log.info("order webhook store=%s checkout=%s committed=%s", store_id, checkout_id, committed)
    return "", 200
