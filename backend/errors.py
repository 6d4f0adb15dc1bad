"""
Lead Suite - Error taxonomy
Every error leaves the API as {"error": "<message>"} (see server.py handlers).
"""

from fastapi import HTTPException


class ApiError(HTTPException):
    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str = None):
        super().__init__(status_code=self.status_code, detail=message or self.default_message)

    @property
    def message(self) -> str:
        return self.detail


class Unauthorized(ApiError):
    """No session, or the session could not be decoded."""
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(ApiError):
    """Authenticated but lacking the role or capability."""
    status_code = 403
    default_message = "Forbidden"


class BadRequest(ApiError):
    status_code = 400
    default_message = "Bad request"


class NotFound(ApiError):
    status_code = 404
    default_message = "Not found"


class UpstreamError(ApiError):
    """The distribution service could not be reached or answered garbage."""
    status_code = 500
    default_message = "Upstream error"


class ServerError(ApiError):
    status_code = 500
    default_message = "Server error"
