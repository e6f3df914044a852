from flask import Blueprint

wholesale_api_bp = Blueprint("wholesale_api", __name__, url_prefix="/api/wholesale")

from . import routes  # noqa: E402,F401
