from flask import Blueprint

production_api_bp = Blueprint("production_api", __name__, url_prefix="/api/production")

from . import routes  # noqa: E402,F401
