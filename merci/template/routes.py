# merci/template/routes.py
from flask import request, jsonify
from ..model import CampaignTemplate
from . import bp

@bp.get("")
def list_templates():
    """
    GET /api/templates
      ?all=1   include inactive templates
      ?q=text  case-insensitive filter on label
    """
    show_all = request.args.get("all") == "1"
    q = (request.args.get("q") or "").strip()

    query = CampaignTemplate.query
    if not show_all:
        query = query.filter(CampaignTemplate.active.is_(True))
    if q:
        query = query.filter(CampaignTemplate.label.ilike(f"%{q}%"))

    rows = query.order_by(CampaignTemplate.id.desc()).all()
    return jsonify({"ok": True, "count": len(rows), "data": [t.as_api() for t in rows]})
