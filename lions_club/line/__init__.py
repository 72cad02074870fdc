from .client import LineApiError, LineClient, validate_signature

__all__ = ["LineApiError", "LineClient", "validate_signature"]
