from flask import Blueprint

bp = Blueprint("template", __name__, url_prefix="/api/templates")

from . import routes  # noqa: E402,F401
