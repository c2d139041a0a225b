"""
Application - ASGI entry point wiring the DI container, router and
middleware together.

Startup order:
1. every singleton is instantiated eagerly
2. middleware is installed (logging, timing, CORS, then user middleware)
3. the router becomes the final handler; unmatched requests get 404
4. the server starts listening (``run``)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union
import asyncio
import logging

from .config import Settings
from .controller.router import Router
from .di.core import Container
from .di.scopes import InjectionScope
from .middleware import (
    CORSMiddleware,
    Handler,
    LoggingMiddleware,
    Middleware,
    MiddlewareStack,
    TimingMiddleware,
)
from .request import Request
from .response import Response


InjectableEntry = Union[type, Tuple[type, Union[InjectionScope, str]]]

INTERNAL_ERROR_BODY = {"error": "Internal Server Error", "status": 500}


@dataclass
class ApplicationConfig:
    """
    Declarative application inputs.

    Order within each list does not matter: registration only records
    metadata and resolution happens later.
    """

    controllers: Sequence[type] = field(default_factory=list)
    injectables: Sequence[InjectableEntry] = field(default_factory=list)
    middleware: Sequence[Middleware] = field(default_factory=list)
    settings: Optional[Settings] = None


class Application:
    """
    ASGI application.

    Example:
        app = Application(ApplicationConfig(
            controllers=[DinosaurController],
            injectables=[DinosaurService],
        ))
        app.run(8000)
    """

    def __init__(self, config: Optional[ApplicationConfig] = None):
        self.config = config or ApplicationConfig()
        self.settings = self.config.settings or Settings()
        self.logger = logging.getLogger("dactyl.app")

        self.container = Container()
        self.container.register_value(Settings, self.settings)

        for entry in self.config.injectables:
            if isinstance(entry, tuple):
                target, scope = entry
                self.container.register(target, scope)
            else:
                self.container.register(entry)

        self.router = Router(self.container)
        for controller in self.config.controllers:
            self.router.register(controller)

        # Fail fast on cycles and missing dependencies
        self.container.validate()

        self.middleware_stack = MiddlewareStack()
        self._handler: Optional[Handler] = None
        self._startup_complete = False
        self._startup_lock: Optional[asyncio.Lock] = None

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def use(self, middleware: Middleware, priority: int = 50, name: Optional[str] = None) -> None:
        """Add middleware; must be called before startup."""
        if self._startup_complete:
            raise RuntimeError("Middleware must be added before application startup")
        self.middleware_stack.add(middleware, priority=priority, name=name)

    def _install_middleware(self) -> None:
        settings = self.settings
        if settings.logging_enabled:
            self.middleware_stack.add(LoggingMiddleware(), priority=10, name="logging")
        if settings.timing_enabled:
            self.middleware_stack.add(TimingMiddleware(), priority=20, name="timing")
        if settings.cors_enabled:
            self.middleware_stack.add(
                CORSMiddleware(allow_origins=list(settings.cors_origins)),
                priority=30,
                name="cors",
            )
        for middleware in self.config.middleware:
            self.middleware_stack.add(middleware)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def startup(self) -> None:
        """Build every singleton, then install middleware and the router."""
        if self._startup_complete:
            return
        if self._startup_lock is None:
            self._startup_lock = asyncio.Lock()

        async with self._startup_lock:
            if self._startup_complete:
                return

            await self.container.instantiate_all_singletons()

            # Installed only after every singleton is built
            self._install_middleware()
            self._handler = self.middleware_stack.build_handler(self.router.dispatch)

            self._startup_complete = True
            self.logger.info("%s", self.router.get_bootstrap_msg())

    @property
    def started(self) -> bool:
        return self._startup_complete

    # ------------------------------------------------------------------
    # ASGI entry point
    # ------------------------------------------------------------------

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        scope_type = scope["type"]
        if scope_type == "http":
            await self.handle_http(scope, receive, send)
        elif scope_type == "lifespan":
            await self.handle_lifespan(scope, receive, send)
        elif scope_type == "websocket":
            self.logger.warning("WebSocket connection attempt but websockets are not supported")
            await send({"type": "websocket.close", "code": 1003})

    async def handle_http(self, scope: dict, receive: Callable, send: Callable) -> None:
        if not self._startup_complete:
            await self.startup()

        request = Request(scope, receive)
        response = Response()

        try:
            response = await self._handler(request, response)
        except Exception as e:
            self.logger.error("Critical error in request pipeline: %s", e, exc_info=True)
            response = Response.json(dict(INTERNAL_ERROR_BODY), status=500)

        await response.send_asgi(send)

    async def handle_lifespan(self, scope: dict, receive: Callable, send: Callable) -> None:
        """Handle ASGI lifespan events."""
        while True:
            message = await receive()

            if message["type"] == "lifespan.startup":
                try:
                    await self.startup()
                except Exception as e:
                    self.logger.error("Startup error: %s", e, exc_info=True)
                    await send({"type": "lifespan.startup.failed", "message": str(e)})
                    raise
                await send({"type": "lifespan.startup.complete"})

            elif message["type"] == "lifespan.shutdown":
                self.logger.debug("Application shutdown")
                await send({"type": "lifespan.shutdown.complete"})
                break

    # ------------------------------------------------------------------
    # Serving
    # ------------------------------------------------------------------

    def run(self, port: Optional[int] = None, host: Optional[str] = None) -> None:
        """
        Serve the application with uvicorn until stopped externally.

        Args:
            port: Port to bind to (default: ``settings.port``)
            host: Host to bind to (default: ``settings.host``)
        """
        import uvicorn

        # debug forces verbose logging regardless of log_level
        log_level = "debug" if self.settings.debug else self.settings.log_level
        logging.basicConfig(
            level=getattr(logging, log_level.upper(), logging.INFO),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

        host = host or self.settings.host
        port = port or self.settings.port
        self.logger.info("Starting uvicorn server on %s:%d", host, port)

        uvicorn.run(self, host=host, port=port, log_level=log_level, lifespan="on")

    def routes(self) -> List[dict]:
        return self.router.routes()


def create_app(
    controllers: Sequence[type] = (),
    injectables: Sequence[InjectableEntry] = (),
    **kwargs: Any,
) -> Application:
    """Shortcut for ``Application(ApplicationConfig(...))``."""
    return Application(
        ApplicationConfig(controllers=list(controllers), injectables=list(injectables), **kwargs)
    )
