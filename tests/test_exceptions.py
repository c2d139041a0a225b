"""
HTTP exceptions (dactyl/exceptions.py)
"""

import pytest

from dactyl.exceptions import (
    BadRequestException,
    BindingError,
    ConflictException,
    ForbiddenException,
    HttpException,
    HttpStatus,
    NotAControllerError,
    NotFoundException,
    ServiceUnavailableException,
    UnauthorizedException,
)


class TestHttpException:

    @pytest.mark.parametrize("cls, status, message", [
        (BadRequestException, 400, "Bad Request"),
        (UnauthorizedException, 401, "Unauthorized"),
        (ForbiddenException, 403, "Forbidden"),
        (NotFoundException, 404, "Not Found"),
        (ConflictException, 409, "Conflict"),
        (ServiceUnavailableException, 503, "Service Unavailable"),
    ])
    def test_defaults(self, cls, status, message):
        exc = cls()
        assert exc.status == status
        assert exc.message == message
        assert exc.to_body() == {"error": message, "status": status}

    def test_custom_message_and_status(self):
        exc = HttpException("I'm a teapot", status=HttpStatus.IM_A_TEAPOT)
        assert exc.status == 418
        assert str(exc) == "I'm a teapot"
        assert exc.to_body() == {"error": "I'm a teapot", "status": 418}

    def test_base_defaults_to_500(self):
        assert HttpException().to_body() == {"error": "Internal Server Error", "status": 500}

    def test_unknown_status_reason(self):
        assert HttpException(status=599).message == "Error"

    def test_binding_error(self):
        exc = BindingError("query", "limit", "invalid literal for int()")
        assert isinstance(exc, BadRequestException)
        assert exc.status == 400
        assert exc.to_body() == {"error": "Invalid value for query 'limit'", "status": 400}
        assert exc.reason == "invalid literal for int()"

    def test_not_a_controller(self):
        class Plain:
            pass

        exc = NotAControllerError(Plain)
        assert exc.target is Plain
        assert "@Controller" in str(exc)
