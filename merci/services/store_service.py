# merci/services/store_service.py
from __future__ import annotations
import requests
from ..extensions import db
from ..model import Store
from ..utils.logger import get_logger

log = get_logger("stores")

class OAuthError(Exception):
    pass

def get_store(store_id: str) -> Store | None:
    return db.session.get(Store, str(store_id))

def has_token(store_id: str | None) -> bool:
    if not store_id:
        return False
    s = get_store(store_id)
    return bool(s and s.access_token)

def save_token(store_id: str, access_token: str) -> Store:
    s = get_store(store_id)
    if s:
        s.access_token = access_token
    else:
        s = Store(store_id=str(store_id), access_token=access_token)
        db.session.add(s)
    db.session.commit()
    return s

def exchange_code(code: str, config) -> tuple[str, str]:
    """Swap an authorization code for (store_id, access_token)."""
    form = {
        "client_id": config["TN_CLIENT_ID"],
        "client_secret": config["TN_CLIENT_SECRET"],
        "code": str(code),
        "grant_type": "authorization_code",
        "redirect_uri": f"{config['APP_BASE_URL']}/oauth/callback",
    }
    try:
        resp = requests.post(config["TN_TOKEN_URL"], data=form, timeout=config["OAUTH_TIMEOUT"])
        resp.raise_for_status()
        data = resp.json() or {}
    except (requests.RequestException, ValueError) as e:
        log.error("token exchange failed: %s", e)
        raise OAuthError("token exchange failed") from e

    access_token = data.get("access_token")
    store_id = str(data.get("store_id") or data.get("user_id") or "").strip()
    if not access_token or not store_id:
        log.error("token response without access_token/store_id: keys=%s", sorted(data))
        raise OAuthError("no token received")
    return store_id, access_token
