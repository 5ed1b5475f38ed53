# ------- merci/utils/decorators.py -------
from functools import wraps
from flask import g, jsonify
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from ..utils.api import api_error

def current_store_id() -> str | None:
    verify_jwt_in_request()
    sid = get_jwt_identity()
    return str(sid).strip() if sid else None

def store_required(fn):
    """Admin endpoints act on the store named by the caller's JWT identity (g.store_id)."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        sid = current_store_id()
        if not sid:
            return jsonify(api_error("Unauthorized")), 401
        g.store_id = sid
        return fn(*args, **kwargs)
    return wrapper
