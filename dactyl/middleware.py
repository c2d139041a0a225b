"""
Middleware system - composable async middleware around the router.

A middleware is ``async (request, response, next) -> Response``; ``next``
takes ``(request, response)`` and runs the rest of the chain.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional
import logging
import time

from .request import Request
from .response import Response


Handler = Callable[[Request, Response], Awaitable[Response]]
Middleware = Callable[[Request, Response, Handler], Awaitable[Response]]


@dataclass
class MiddlewareDescriptor:
    """Descriptor for middleware registration."""
    middleware: Middleware
    priority: int
    name: str


class MiddlewareStack:
    """
    Ordered middleware stack.

    Lower priority runs outermost; ties keep insertion order.
    """

    def __init__(self):
        self.middlewares: List[MiddlewareDescriptor] = []

    def add(
        self,
        middleware: Middleware,
        priority: int = 50,
        name: Optional[str] = None,
    ) -> None:
        if name is None:
            name = getattr(middleware, "__name__", type(middleware).__name__)

        self.middlewares.append(
            MiddlewareDescriptor(middleware=middleware, priority=priority, name=name)
        )

    def build_handler(self, final_handler: Handler) -> Handler:
        """Build the chain wrapping ``final_handler``."""
        ordered = sorted(self.middlewares, key=lambda d: d.priority)

        handler = final_handler
        # Wrap in reverse order so the first middleware is outermost
        for desc in reversed(ordered):
            handler = self._wrap_middleware(desc.middleware, handler)

        return handler

    def _wrap_middleware(self, middleware: Middleware, next_handler: Handler) -> Handler:
        async def wrapped(request: Request, response: Response) -> Response:
            return await middleware(request, response, next_handler)

        return wrapped

    def __len__(self) -> int:
        return len(self.middlewares)


class LoggingMiddleware:
    """Logs each request with its status and duration."""

    def __init__(self, slow_threshold_ms: float = 1000.0):
        self.logger = logging.getLogger("dactyl.requests")
        self.slow_threshold_ms = slow_threshold_ms

    async def __call__(self, request: Request, response: Response, next: Handler) -> Response:
        if not self.logger.isEnabledFor(logging.INFO):
            return await next(request, response)

        start = time.monotonic()
        response = await next(request, response)
        elapsed_ms = (time.monotonic() - start) * 1000.0

        self.logger.info(
            "%s %s - %d (%.1fms)",
            request.method, request.path, response.status, elapsed_ms,
        )

        if elapsed_ms > self.slow_threshold_ms:
            self.logger.warning(
                "Slow request: %s %s took %.1fms",
                request.method, request.path, elapsed_ms,
            )

        return response


class TimingMiddleware:
    """Adds an ``X-Response-Time`` header."""

    def __init__(self, header_name: str = "X-Response-Time"):
        self.header_name = header_name

    async def __call__(self, request: Request, response: Response, next: Handler) -> Response:
        start = time.perf_counter()
        response = await next(request, response)
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        response.set_header(self.header_name, f"{elapsed_ms:.2f}ms")
        return response


class CORSMiddleware:
    """Handles CORS headers and preflight requests."""

    def __init__(
        self,
        allow_origins: Optional[List[str]] = None,
        allow_methods: Optional[List[str]] = None,
        allow_headers: Optional[List[str]] = None,
        allow_credentials: bool = False,
        max_age: int = 600,
    ):
        self.allow_origins = allow_origins or ["*"]
        self.allow_methods = allow_methods or ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
        self.allow_headers = allow_headers or ["*"]
        self.allow_credentials = allow_credentials
        self.max_age = max_age

    async def __call__(self, request: Request, response: Response, next: Handler) -> Response:
        origin = request.header("origin")

        if request.method == "OPTIONS" and request.header("access-control-request-method"):
            response.status = 204
            response.body = None
            response.set_header("access-control-allow-methods", ", ".join(self.allow_methods))
            response.set_header("access-control-allow-headers", ", ".join(self.allow_headers))
            response.set_header("access-control-max-age", str(self.max_age))
            self._apply_origin(response, origin)
            return response

        response = await next(request, response)
        self._apply_origin(response, origin)
        return response

    def _apply_origin(self, response: Response, origin: Optional[str]) -> None:
        if origin and origin in self.allow_origins:
            response.set_header("access-control-allow-origin", origin)
            response.set_header("vary", "Origin")
        elif "*" in self.allow_origins:
            response.set_header("access-control-allow-origin", "*")

        if self.allow_credentials:
            response.set_header("access-control-allow-credentials", "true")
