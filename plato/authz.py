from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from .extensions import db, login_manager
from .utils.api_responses import APIResponse
from .utils.error_messages import ErrorMessages as EM


def configure_login_manager(app):
    """Attach Flask-Login handlers; every surface is an API, so failures are JSON."""
    login_manager.init_app(app)

    @login_manager.unauthorized_handler
    def _unauthorized():
        return APIResponse.unauthorized(EM.AUTH_REQUIRED)

    @login_manager.user_loader
    def load_user(user_id: str):
        from .models import User

        try:
            user = db.session.get(User, int(user_id))
        except (ValueError, TypeError):
            return None
        except SQLAlchemyError:
            db.session.rollback()
            return None

        if not user or not user.is_active:
            return None
        return user
