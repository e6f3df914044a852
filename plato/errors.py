"""Error taxonomy for the production core.

Every error carries a stable ``code`` so API clients can react to a specific
failure (for instance rendering "already assigned" instead of a generic banner)
and an HTTP status used by the blueprint error handler.
"""


class ProductionError(RuntimeError):
    code = "production_error"
    status_code = 400

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        payload = {"code": self.code}
        payload.update(self.details)
        return payload


class NotFoundError(ProductionError):
    code = "not_found"
    status_code = 404


class ForbiddenError(ProductionError):
    code = "forbidden"
    status_code = 403


class InvalidInputError(ProductionError):
    code = "invalid_input"
    status_code = 400


class ConflictError(ProductionError):
    code = "already_assigned"
    status_code = 409


class InvalidStateError(ProductionError):
    code = "invalid_state"
    status_code = 409
