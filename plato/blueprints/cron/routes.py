"""Scheduled job endpoints.

Called daily by an external scheduler with ``Authorization: Bearer <CRON_SECRET>``.
There is no in-process scheduler; when ``CRON_SECRET`` is unset every call is
rejected.
"""

import hmac
import logging
from functools import wraps

from flask import current_app, request

from plato.extensions import limiter
from plato.services.production_planning import WeeklyPlanGenerator
from plato.services.recurring_orders import RecurringOrderService
from plato.utils.api_responses import APIResponse
from plato.utils.error_messages import ErrorMessages as EM

from . import cron_bp

logger = logging.getLogger(__name__)


def _cron_rate_limit():
    return current_app.config.get("CRON_RATELIMIT") or "30 per hour"


def _authorized() -> bool:
    secret = current_app.config.get("CRON_SECRET")
    if not secret:
        return False
    header = request.headers.get("Authorization", "")
    return hmac.compare_digest(header.encode(), f"Bearer {secret}".encode())


def require_cron_secret(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _authorized():
            logger.warning("Rejected cron call to %s from %s", request.path, request.remote_addr)
            return APIResponse.unauthorized(EM.CRON_UNAUTHORIZED)
        return f(*args, **kwargs)

    return decorated_function


@cron_bp.route("/generate-recurring-orders", methods=["GET", "POST"])
@limiter.limit(_cron_rate_limit)
@require_cron_secret
def generate_recurring_orders():
    summary = RecurringOrderService.generate_due_orders()
    return APIResponse.success(
        summary,
        message=f"Generated {summary['generated']} recurring order(s)",
    )


@cron_bp.route("/generate-production-plans", methods=["GET", "POST"])
@limiter.limit(_cron_rate_limit)
@require_cron_secret
def generate_production_plans():
    summary = WeeklyPlanGenerator.generate_all()
    return APIResponse.success(
        summary,
        message=f"Created {summary['plans_created']} production plan(s)",
    )
