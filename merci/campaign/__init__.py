from flask import Blueprint

bp = Blueprint("campaign", __name__, url_prefix="/api/campaigns")

from . import routes  # noqa: E402,F401
