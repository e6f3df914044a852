from functools import wraps

from flask import g
from flask_login import current_user

from .api_responses import APIResponse
from .error_messages import ErrorMessages as EM


def get_effective_company_id():
    """Company id for the signed-in user, or None outside an authenticated request"""
    try:
        if not current_user or not current_user.is_authenticated:
            return None
    except Exception:
        return None
    return current_user.company_id


def user_has_company_access(user, company_id) -> bool:
    if user is None or company_id is None:
        return False
    return any(
        membership.is_active and membership.company_id == company_id
        for membership in getattr(user, "memberships", None) or []
    )


def require_company(f):
    """Resolve the caller's company into ``g.company_id`` or reject the request"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return APIResponse.unauthorized(EM.AUTH_REQUIRED)

        company_id = get_effective_company_id()
        if company_id is None or not user_has_company_access(current_user, company_id):
            return APIResponse.not_found("Company")

        g.company_id = company_id
        return f(*args, **kwargs)

    return decorated_function


ROLE_PERMISSIONS = {
    "OWNER": {"production:plan", "production:assign", "wholesale:recurring"},
    "ADMIN": {"production:plan", "production:assign", "wholesale:recurring"},
    "EDITOR": {"production:plan", "production:assign", "wholesale:recurring"},
    "VIEWER": set(),
}


def has_permission(user, permission_name: str) -> bool:
    membership = getattr(user, "active_membership", None)
    if membership is None:
        return False
    return permission_name in ROLE_PERMISSIONS.get((membership.role or "").upper(), set())


def require_permission(permission_name: str):
    """Reject callers whose membership role does not grant ``permission_name``"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return APIResponse.unauthorized(EM.AUTH_REQUIRED)
            if has_permission(current_user, permission_name):
                return f(*args, **kwargs)
            return APIResponse.error(
                EM.PERMISSION_DENIED.format(permission=permission_name),
                errors={"code": "forbidden", "permission": permission_name},
                status_code=403,
            )

        return decorated_function
    return decorator
