"""
Centralized error messages for the production core.

Usage:
    from plato.utils.error_messages import ErrorMessages as EM

    raise NotFoundError(EM.PLAN_NOT_FOUND)
    raise InvalidInputError(EM.FIELD_REQUIRED.format(field="name"))
"""


class ErrorMessages:
    """User-facing error messages - never contain HTML or special characters"""

    # ==================== AUTHENTICATION & COMPANY ====================
    AUTH_REQUIRED = "Authentication required."
    COMPANY_NOT_FOUND = "Company not found."
    CRON_UNAUTHORIZED = "Unauthorized."
    PERMISSION_DENIED = "Permission denied: {permission}."
    INTERNAL_ERROR = "Something went wrong. Please try again."

    # ==================== VALIDATION ====================
    FIELD_REQUIRED = "{field} is required."
    DATE_INVALID = "{field} must be a date in YYYY-MM-DD format."
    DATE_WINDOW_INVALID = "Start date must be on or before end date."
    QUANTITY_INVALID = "{field} must be a number."
    QUANTITY_NEGATIVE = "{field} cannot be negative."
    ID_INVALID = "{field} must be a positive whole number."
    ITEMS_REQUIRED = "A production plan needs at least one item."
    ITEM_INVALID = "Item {index}: {reason}"
    ALLOCATION_INVALID = "Item {index}, allocation {allocation}: {reason}"

    # ==================== PRODUCTION PLANS ====================
    PLAN_NOT_FOUND = "Production plan not found."
    PLAN_FORBIDDEN = "This production plan belongs to another company."
    ITEM_NOT_FOUND = "Production item not found."

    # ==================== RECURRING ORDERS ====================
    ORDER_NOT_FOUND = "Order not found."
    ORDER_NOT_RECURRING = "Order #{order_id} is not a recurring order."
    ORDER_IS_GENERATED = "Order #{order_id} was generated from a recurring order; generate from #{parent_id} instead."
    ORDER_INTERVAL_UNKNOWN = "Order #{order_id} has no usable recurring interval."
    RECURRING_GENERATED_NOTE = "Auto-generated from recurring order #{order_id}"

    # ==================== JOB ASSIGNMENTS ====================
    MEMBERSHIP_NOT_FOUND = "Team member not found."
    ASSIGNMENT_NOT_FOUND = "Assignment not found."
    ASSIGNMENT_EXISTS = "This team member is already assigned to this item on {date}."
