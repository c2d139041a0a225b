"""
HTTP exceptions and framework declaration errors.

``HttpException`` and its subclasses are recoverable, request-scoped
failures: the execution container turns them into a structured
``{"error": message, "status": code}`` body with the carried status.
"""

from http import HTTPStatus as HttpStatus
from typing import Any, Dict, Optional


class HttpException(Exception):
    """
    Base HTTP exception.

    Attributes:
        status: HTTP status code
        message: Client-facing message (defaults to the reason phrase)
    """

    status: int = HttpStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: Optional[str] = None, status: Optional[int] = None):
        if status is not None:
            self.status = int(status)
        else:
            self.status = int(type(self).status)
        self.message = message if message is not None else _reason(self.status)
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message, "status": self.status}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status}, message={self.message!r})"


def _reason(status: int) -> str:
    try:
        return HttpStatus(status).phrase
    except ValueError:
        return "Error"


class BadRequestException(HttpException):
    status = HttpStatus.BAD_REQUEST


class UnauthorizedException(HttpException):
    status = HttpStatus.UNAUTHORIZED


class ForbiddenException(HttpException):
    status = HttpStatus.FORBIDDEN


class NotFoundException(HttpException):
    status = HttpStatus.NOT_FOUND


class MethodNotAllowedException(HttpException):
    status = HttpStatus.METHOD_NOT_ALLOWED


class ConflictException(HttpException):
    status = HttpStatus.CONFLICT


class UnprocessableEntityException(HttpException):
    status = HttpStatus.UNPROCESSABLE_ENTITY


class InternalServerErrorException(HttpException):
    status = HttpStatus.INTERNAL_SERVER_ERROR


class NotImplementedException(HttpException):
    status = HttpStatus.NOT_IMPLEMENTED


class ServiceUnavailableException(HttpException):
    status = HttpStatus.SERVICE_UNAVAILABLE


class BindingError(BadRequestException):
    """A request value could not be coerced to the declared parameter type."""

    def __init__(self, source: str, key: Optional[str], reason: str = ""):
        self.source = source
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid value for {source} '{key}'")


# ============================================================================
# Declaration errors (startup, fatal)
# ============================================================================

class DescriptorError(Exception):
    """A controller, route or parameter declaration is malformed."""
    pass


class NotAControllerError(DescriptorError):
    """A class without controller metadata was passed to the router."""

    def __init__(self, target: Any):
        self.target = target
        name = getattr(target, "__qualname__", repr(target))
        super().__init__(
            f"Attempted to register non-controller class {name}. "
            f"Decorate it with @Controller(prefix)."
        )


__all__ = [
    "HttpStatus",
    "HttpException",
    "BadRequestException",
    "UnauthorizedException",
    "ForbiddenException",
    "NotFoundException",
    "MethodNotAllowedException",
    "ConflictException",
    "UnprocessableEntityException",
    "InternalServerErrorException",
    "NotImplementedException",
    "ServiceUnavailableException",
    "BindingError",
    "DescriptorError",
    "NotAControllerError",
]
