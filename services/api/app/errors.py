"""Domain error taxonomy and its HTTP rendering."""

from fastapi import Request
from fastapi.responses import JSONResponse


class DomainError(Exception):
    """Base class for errors raised by the lifecycle services.

    Every error carries a machine-readable ``kind`` and a human-readable message.
    """

    kind = "DomainError"
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.kind, "detail": self.message}


class NotFound(DomainError):
    kind = "NotFound"
    status_code = 404


class NotAuthorized(DomainError):
    kind = "NotAuthorized"
    status_code = 403


class InvalidState(DomainError):
    kind = "InvalidState"
    status_code = 409


class ValidationError(DomainError):
    kind = "ValidationError"
    status_code = 422


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
