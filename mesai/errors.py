from __future__ import annotations

from fastapi import Request, status
from fastapi.responses import JSONResponse


class ApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message


class NotFoundError(ApiError):
    def __init__(self, message: str):
        super().__init__(status.HTTP_404_NOT_FOUND, "NOT_FOUND", message)


class InvalidIntervalError(ApiError):
    def __init__(self, message: str = "Clock out time must be after clock in time"):
        super().__init__(status.HTTP_422_UNPROCESSABLE_ENTITY, "INVALID_INTERVAL", message)


class IncompleteSessionError(ApiError):
    def __init__(self, message: str = "Session has no clock_out time yet"):
        super().__init__(status.HTTP_409_CONFLICT, "INCOMPLETE_SESSION", message)


class NotEligibleError(ApiError):
    def __init__(self, message: str = "Employee is not eligible for this special day type"):
        super().__init__(status.HTTP_403_FORBIDDEN, "NOT_ELIGIBLE", message)


class ValidationError(ApiError):
    def __init__(self, message: str):
        super().__init__(status.HTTP_422_UNPROCESSABLE_ENTITY, "VALIDATION_ERROR", message)


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return str(request_id)
    return "unknown"


def error_response(request: Request, *, status_code: int, code: str, message: str) -> JSONResponse:
    payload = {
        "error": {
            "code": code,
            "message": message,
            "request_id": get_request_id(request),
        }
    }
    return JSONResponse(status_code=status_code, content=payload)
