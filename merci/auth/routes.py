# merci/auth/routes.py
import secrets
from html import escape
from urllib.parse import urlencode
from flask import request, session, redirect, current_app, make_response
from flask_jwt_extended import create_access_token
from ..services import store_service
from ..utils.logger import get_logger
from . import bp

log = get_logger("auth")

@bp.get("/install")
def install():
    store_id = (request.args.get("store_id") or "").strip()
    if not store_id:
        return "Missing store_id", 400

    cfg = current_app.config
    state = secrets.token_hex(16)
    session["oauth_state"] = state
    params = {
        "response_type": "code",
        "client_id": cfg["TN_CLIENT_ID"],
        "redirect_uri": f"{cfg['APP_BASE_URL']}/oauth/callback",
        "state": state,
        "scope": cfg["TN_SCOPES"],
        "store_id": store_id,
    }
    return redirect(f"{cfg['TN_AUTHORIZE_URL']}?{urlencode(params)}")

@bp.get("/oauth/callback")
def oauth_callback():
    code = request.args.get("code")
    state = request.args.get("state")
    if not code or not state:
        return "Invalid callback", 400
    if state != session.pop("oauth_state", None):
        return "Invalid state", 400

    try:
        store_id, access_token = store_service.exchange_code(code, current_app.config)
    except store_service.OAuthError:
        return "OAuth error", 502

    store_service.save_token(store_id, access_token)
    log.info("store installed store=%s", store_id)

    admin_token = create_access_token(identity=store_id)
    return redirect(f"/admin?{urlencode({'store_id': store_id, 'access_token': admin_token})}")

@bp.get("/admin")
def admin():
    store_id = (request.args.get("store_id") or "").strip()
    installed = store_service.has_token(store_id)
    status = (
        "Token saved" if installed
        else "No token. Install from <code>/install?store_id=YOUR_STORE</code>"
    )
    html = f"""<!doctype html>
<html><head><meta charset="utf-8"><title>Merci coupons</title></head>
<body style="font-family:system-ui;padding:24px;max-width:960px;margin:auto">
  <h1>App installed for store: {escape(store_id) or "-"}</h1>
  <p>{status}</p>
</body></html>"""
    resp = make_response(html)
    resp.headers["Content-Type"] = "text/html; charset=utf-8"
    return resp
