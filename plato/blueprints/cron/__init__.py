from flask import Blueprint

cron_bp = Blueprint("cron", __name__, url_prefix="/api/cron")

from . import routes  # noqa: E402,F401
