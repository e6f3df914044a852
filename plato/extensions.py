from __future__ import annotations

import re

from flask import current_app
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager, current_user
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_wtf.csrf import CSRFProtect
from sqlalchemy.exc import SQLAlchemyError

__all__ = [
    "db",
    "migrate",
    "csrf",
    "limiter",
    "login_manager",
]

FALLBACK_RATE_LIMITS = ("5000 per hour", "1000 per minute")

db = SQLAlchemy()
migrate = Migrate(compare_type=True, render_as_batch=True)
csrf = CSRFProtect()
login_manager = LoginManager()


def _default_rate_limits() -> str:
    """RATELIMIT_DEFAULT accepts ``;``, ``,`` or ``|`` separated limits."""
    raw = current_app.config.get("RATELIMIT_DEFAULT") or ""
    limits = [entry.strip() for entry in re.split(r"[;,|]", raw) if entry.strip()]
    return ";".join(limits or FALLBACK_RATE_LIMITS)


def _limiter_key_func():
    """Per staff member within a company when signed in, otherwise per IP."""
    try:
        if current_user.is_authenticated:
            return f"company:{current_user.company_id}:user:{current_user.get_id()}"
    except SQLAlchemyError:
        db.session.rollback()
    return get_remote_address()


limiter = Limiter(key_func=_limiter_key_func, default_limits=[_default_rate_limits])
