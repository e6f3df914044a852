import logging

from flask import g, request
from flask_login import current_user, login_required

from plato.services.recurring_orders import RecurringOrderService, serialize_order
from plato.utils.api_responses import APIResponse
from plato.utils.permissions import require_company, require_permission

from . import wholesale_api_bp

logger = logging.getLogger(__name__)


@wholesale_api_bp.route("/orders/recurring", methods=["GET"])
@login_required
@require_company
def list_recurring_orders():
    """Recurring roots with how many orders each has generated"""
    orders = RecurringOrderService.list_recurring_orders(
        company_id=g.company_id,
        customer_id=request.args.get("customer_id"),
    )
    return APIResponse.success(orders)


@wholesale_api_bp.route("/orders/recurring/generate", methods=["POST"])
@login_required
@require_company
@require_permission("wholesale:recurring")
def generate_recurring_order():
    """Manually generate the next order of a recurring root"""
    data = APIResponse.request_payload()
    order = RecurringOrderService.generate_next_order(
        company_id=g.company_id,
        parent_order_id=data.get("order_id"),
        user_id=current_user.id,
    )
    return APIResponse.success(serialize_order(order), message="Recurring order generated", status_code=201)
