# merci/campaign/routes.py
from __future__ import annotations
import uuid
from flask import request, jsonify, g, current_app
from ..utils.api import api_ok, api_error
from ..utils.decorators import store_required
from ..services import campaign_service as svc
from ..services.checkout_service import store_today
from ..services.discount_engine import STATUSES
from . import bp

# ---- standard API response format ------------------------------------------
def ok(msg, data=None, status=200):
    r = jsonify(api_ok(msg, data)); r.status_code = status; return r
def err(msg, status=400, data=None):
    r = jsonify(api_error(msg, data)); r.status_code = status; return r

def _today():
    return store_today(current_app.config["STORE_TIMEZONE"])

def _load(campaign_id: uuid.UUID):
    return svc.get_campaign(g.store_id, campaign_id)

@bp.get("")
@store_required
def list_campaigns():
    status = (request.args.get("status") or "").strip().lower() or None
    if status and status not in STATUSES:
        return err("status must be 'active' or 'paused'")
    today = _today()
    items = svc.list_campaigns(g.store_id, status=status)
    return ok("ok", {"count": len(items), "items": [c.as_api(today) for c in items]})

@bp.post("")
@store_required
def create_campaign():
    data = request.get_json(silent=True) or {}
    try:
        c = svc.create_campaign(g.store_id, data)
    except svc.DuplicateCodeError as e:
        return err(str(e), 409)
    except ValueError as e:
        return err(str(e), 400)
    return ok("Campaign created", {"campaign": c.as_api(_today())}, status=201)

@bp.get("/<uuid:campaign_id>")
@store_required
def get_campaign(campaign_id):
    try:
        c = _load(campaign_id)
    except svc.CampaignNotFound as e:
        return err(str(e), 404)
    return ok("ok", {"campaign": c.as_api(_today())})

@bp.patch("/<uuid:campaign_id>")
@bp.put("/<uuid:campaign_id>")
@store_required
def update_campaign(campaign_id):
    data = request.get_json(silent=True) or {}
    try:
        c = svc.update_campaign(_load(campaign_id), data)
    except svc.CampaignNotFound as e:
        return err(str(e), 404)
    except ValueError as e:
        return err(str(e), 400)
    return ok("Campaign updated", {"campaign": c.as_api(_today())})

@bp.post("/<uuid:campaign_id>/pause")
@store_required
def pause_campaign(campaign_id):
    try:
        c = svc.set_status(_load(campaign_id), "paused")
    except svc.CampaignNotFound as e:
        return err(str(e), 404)
    return ok("Campaign paused", {"campaign": c.as_api(_today())})

@bp.post("/<uuid:campaign_id>/resume")
@store_required
def resume_campaign(campaign_id):
    try:
        c = svc.set_status(_load(campaign_id), "active")
    except svc.CampaignNotFound as e:
        return err(str(e), 404)
    return ok("Campaign resumed", {"campaign": c.as_api(_today())})

@bp.delete("/<uuid:campaign_id>")
@store_required
def delete_campaign(campaign_id):
    try:
        svc.delete_campaign(_load(campaign_id))
    except svc.CampaignNotFound as e:
        return err(str(e), 404)
    return ok("Campaign deleted", {"id": str(campaign_id)})
