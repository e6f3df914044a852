"""Global resilience and error-handler registration.

Synopsis:
Registers teardown and error handlers for database rollback safety and renders
production-core errors through the API envelope.

Glossary:
- Resilience handler: Global request teardown/error behavior for known failures.
- ProductionError: Service-layer failure carrying a stable ``code`` and status.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import DBAPIError, OperationalError
from werkzeug.exceptions import HTTPException

from .errors import ProductionError
from .extensions import db
from .utils.api_responses import APIResponse
from .utils.error_messages import ErrorMessages as EM

logger = logging.getLogger(__name__)


def _rollback_safely() -> None:
    try:
        db.session.rollback()
    except Exception:
        logger.warning("Session rollback failed during error handling", exc_info=True)


def register_resilience_handlers(app) -> None:
    """Install global DB rollback and JSON error handlers."""

    @app.teardown_request
    def _rollback_on_error(exc):
        if exc is not None:
            _rollback_safely()

    @app.errorhandler(ProductionError)
    def _production_error_handler(err: ProductionError):
        _rollback_safely()
        return APIResponse.error(err.message, errors=err.to_dict(), status_code=err.status_code)

    @app.errorhandler(OperationalError)
    @app.errorhandler(DBAPIError)
    def _db_error_handler(_error):
        _rollback_safely()
        logger.exception("Database unavailable")
        return APIResponse.error(
            "Service temporarily unavailable. Please try again shortly.",
            errors={"code": "service_unavailable"},
            status_code=503,
        )

    @app.errorhandler(HTTPException)
    def _http_error_handler(err: HTTPException):
        return APIResponse.error(
            err.description or err.name,
            errors={"code": err.name.lower().replace(" ", "_")},
            status_code=err.code or 500,
        )

    @app.errorhandler(Exception)
    def _unexpected_error_handler(err: Exception):
        _rollback_safely()
        logger.exception("Unhandled error: %s", err)
        return APIResponse.error(EM.INTERNAL_ERROR, errors={"code": "internal_error"}, status_code=500)
