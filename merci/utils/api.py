# merci/utils/api.py
from datetime import datetime, timezone

def _stamp():
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

def api_ok(message, data=None):
    return {
        "status": True,
        "message": message,
        "data": data if data is not None else {},
        "api_time": _stamp(),
    }

def api_error(message, data=None):
    return {
        "status": False,
        "message": message,
        "data": data if data is not None else {},
        "api_time": _stamp(),
    }
