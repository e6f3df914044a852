from typing import Any, Dict, List, Optional

from flask import Response, jsonify, request


class APIResponse:
    """Standardized API response handler"""

    @staticmethod
    def success(data: Any = None, message: str = "Success", status_code: int = 200) -> Response:
        """Standard success response"""
        response_data = {
            'success': True,
            'message': message,
            'data': data
        }
        return jsonify(response_data), status_code

    @staticmethod
    def error(message: str, errors: Optional[Dict] = None, status_code: int = 400) -> Response:
        """Standard error response"""
        response_data = {
            'success': False,
            'message': message,
            'errors': errors or {}
        }
        return jsonify(response_data), status_code

    @staticmethod
    def validation_error(errors: Dict[str, List[str]]) -> Response:
        return APIResponse.error(
            message="Validation failed",
            errors=errors,
            status_code=422
        )

    @staticmethod
    def not_found(resource: str = "Resource") -> Response:
        return APIResponse.error(
            message=f"{resource} not found",
            errors={'code': 'not_found'},
            status_code=404
        )

    @staticmethod
    def unauthorized(message: str = "Authentication required") -> Response:
        return APIResponse.error(
            message=message,
            errors={'code': 'unauthorized'},
            status_code=401
        )

    @staticmethod
    def request_payload() -> Dict[str, Any]:
        """Return the JSON body, or form fields when the client posted a form"""
        if request.is_json:
            return request.get_json(silent=True) or {}
        if request.form:
            return request.form.to_dict()
        return {}


__all__ = ['APIResponse']
