class ServiceError(ValueError):
    """Business-rule failure that maps onto an HTTP status."""

    status: int = 400
    code: str = "BAD_REQUEST"

    def __init__(self, message: str, *, code: str | None = None, payload: dict | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        # extra fields merged into the JSON error body
        self.payload = payload or {}


class InvalidRequestError(ServiceError):
    status = 400
    code = "INVALID_REQUEST"


class AuthenticationError(ServiceError):
    status = 401
    code = "UNAUTHORIZED"


class PermissionDeniedError(ServiceError):
    status = 403
    code = "FORBIDDEN"


class NotFoundError(ServiceError):
    status = 404
    code = "NOT_FOUND"


class ConflictError(ServiceError):
    status = 409
    code = "CONFLICT"
