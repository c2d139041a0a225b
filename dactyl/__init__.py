"""
Dactyl - metadata-driven async web framework

- DI: singleton, transient and request scopes resolved from type hints
- Controllers: decorator-declared routes compiled into descriptors
- Execution: per-request pipeline of hooks, argument binding and actions
- Router: prefix + path dispatch with a JSON 404 fallback
"""

__version__ = "0.1.0"

from .application import Application, ApplicationConfig, create_app
from .config import ConfigError, ConfigLoader, Settings
from .controller import (
    DELETE,
    GET,
    PATCH,
    POST,
    PUT,
    Before,
    Body,
    Context,
    Controller,
    ExecutionResult,
    Header,
    Param,
    Query,
    Req,
    RequestContext,
    Res,
    Router,
)
from .di import Container, Inject, InjectionScope, RequestScope, injectable
from .exceptions import (
    BadRequestException,
    BindingError,
    ForbiddenException,
    HttpException,
    HttpStatus,
    NotFoundException,
    UnauthorizedException,
)
from .middleware import CORSMiddleware, LoggingMiddleware, MiddlewareStack, TimingMiddleware
from .request import Request
from .response import Response

__all__ = [
    "__version__",
    "Application",
    "ApplicationConfig",
    "create_app",
    "ConfigError",
    "ConfigLoader",
    "Settings",
    "Controller",
    "GET",
    "POST",
    "PUT",
    "PATCH",
    "DELETE",
    "Before",
    "Param",
    "Query",
    "Header",
    "Body",
    "Context",
    "Req",
    "Res",
    "ExecutionResult",
    "RequestContext",
    "Router",
    "Container",
    "Inject",
    "InjectionScope",
    "RequestScope",
    "injectable",
    "HttpException",
    "HttpStatus",
    "BadRequestException",
    "BindingError",
    "ForbiddenException",
    "NotFoundException",
    "UnauthorizedException",
    "CORSMiddleware",
    "LoggingMiddleware",
    "MiddlewareStack",
    "TimingMiddleware",
    "Request",
    "Response",
]
