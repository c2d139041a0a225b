"""
Router - turns controller descriptors into a live dispatch table.

Two-tier matching:
1. Static routes: O(1) dict lookup keyed by (method, normalized path)
2. Parameterized routes (``:name`` / ``{name}`` segments): compiled
   regexes tried in registration order
"""

from typing import Dict, List, Optional, Pattern, Tuple
import logging
import re

from ..di.core import Container, token_of
from ..di.errors import DuplicateRegistrationError
from ..exceptions import NotAControllerError
from ..request import Request
from ..response import Response
from .descriptors import ControllerDescriptor, RouteDescriptor
from .execution import ExecutionContainer, ExecutionResult


NOT_FOUND_BODY = {"error": "Not Found", "status": 404}

_PARAM_SEGMENT = re.compile(r"^(?::(?P<colon>[A-Za-z_][A-Za-z0-9_]*)|\{(?P<brace>[A-Za-z_][A-Za-z0-9_]*)\})$")

RouteEntry = Tuple[ExecutionContainer, RouteDescriptor]


def normalize_path(path: str) -> str:
    """Trim a single trailing slash; the root path is preserved as-is."""
    if path != "/" and path.endswith("/"):
        return path[:-1]
    return path or "/"


def join_path(prefix: str, path: str) -> str:
    """Combine a controller prefix with a route path."""
    return normalize_path(prefix + path)


def compile_path(path: str) -> Optional[Tuple[Pattern, List[str]]]:
    """
    Compile a parameterized path to a regex.

    Returns ``None`` for static paths.
    """
    names: List[str] = []
    parts = []
    for segment in path.split("/"):
        m = _PARAM_SEGMENT.match(segment)
        if m:
            name = m.group("colon") or m.group("brace")
            if name in names:
                raise ValueError(f"Duplicate path parameter '{name}' in {path!r}")
            names.append(name)
            parts.append(f"(?P<{name}>[^/]+)")
        else:
            parts.append(re.escape(segment))
    if not names:
        return None
    return re.compile("^" + "/".join(parts) + "$"), names


def not_found(response: Response) -> Response:
    """Fallback responder for unmatched requests."""
    response.status = 404
    response.body = dict(NOT_FOUND_BODY)
    return response


class Router:
    """
    Router for controller classes.

    ``register`` creates one ExecutionContainer per controller prefix and
    installs a dispatch entry per route. ``dispatch`` matches a request and
    writes the execution result onto the response.

    Example:
        container = Container()
        router = Router(container)
        router.register(DinosaurController)
        await router.dispatch(request, response)
    """

    LOGO_ASCII = r"""
______           _         _
|  _  \         | |       | |
| | | |__ _  ___| |_ _   _| |
| | | / _` |/ __| __| | | | |
| |/ / (_| | (__| |_| |_| | |
|___/ \__,_|\___|\__|\__, |_| FRAMEWORK
                      __/ |
                     |___/
"""

    def __init__(self, container: Container):
        self.container = container
        self.logger = logging.getLogger("dactyl.router")
        self._container_cache: Dict[str, ExecutionContainer] = {}
        # {(method, path): (execution_container, route)}
        self._static_routes: Dict[Tuple[str, str], RouteEntry] = {}
        # [(method, path, regex, execution_container, route)]
        self._dynamic_routes: List[Tuple[str, str, Pattern, ExecutionContainer, RouteDescriptor]] = []
        self._bootstrap_msg = self.LOGO_ASCII + "\n"

    @property
    def container_cache(self) -> Dict[str, ExecutionContainer]:
        return self._container_cache

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, controller: type) -> ExecutionContainer:
        """
        Register a controller class.

        The controller is also registered in the DI container under its
        declared scope unless that already happened. An earlier registration
        must use the same scope.

        Raises:
            NotAControllerError: ``controller`` has no ControllerDescriptor
            DuplicateRegistrationError: Prefix or (method, path) collision, or the
                controller was already registered with another scope
        """
        descriptor = ControllerDescriptor.declared_on(controller)
        if descriptor is None:
            raise NotAControllerError(controller)

        prefix = descriptor.prefix
        if prefix in self._container_cache:
            existing = self._container_cache[prefix].controller.__name__
            raise DuplicateRegistrationError(f"controller prefix {prefix!r}", existing=existing)

        # Validate every entry before installing any of them
        entries = []
        seen = set()
        for route in descriptor.routes:
            method = route.http_method.value
            path = join_path(prefix, route.path)
            key = (method, path)
            if key in seen or key in self._static_routes or any(
                m == method and p == path for m, p, *_ in self._dynamic_routes
            ):
                raise DuplicateRegistrationError(f"route {method} {path}")
            seen.add(key)
            entries.append((method, path, compile_path(path), route))

        if not self.container.is_registered(controller):
            self.container.register(controller, descriptor.scope)
        else:
            registered = self.container.descriptor(controller)
            if registered.scope is not descriptor.scope:
                raise DuplicateRegistrationError(
                    token_of(controller),
                    existing=f"an injectable with scope {registered.scope.value!r}",
                )

        execution = ExecutionContainer(controller, descriptor, self.container, token_of(controller))
        self._container_cache[prefix] = execution

        self._append_to_bootstrap_msg(f"{prefix or '/'}\n")
        for method, path, compiled, route in entries:
            if compiled is None:
                self._static_routes[(method, path)] = (execution, route)
            else:
                self._dynamic_routes.append((method, path, compiled[0], execution, route))
            self._append_to_bootstrap_msg(f"  [{method}] {path}\n")
            self.logger.debug("Mapped %s %s -> %s.%s", method, path, controller.__name__, route.action_name)

        return execution

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def match(self, method: str, path: str) -> Optional[Tuple[ExecutionContainer, RouteDescriptor, Dict[str, str]]]:
        """Find the route for ``(method, path)``; returns path params too."""
        method = method.upper()
        path = normalize_path(path)

        hit = self._static_routes.get((method, path))
        if hit is not None:
            return hit[0], hit[1], {}

        for route_method, _, regex, execution, route in self._dynamic_routes:
            if route_method != method:
                continue
            m = regex.match(path)
            if m is not None:
                return execution, route, m.groupdict()

        return None

    async def dispatch(self, request: Request, response: Response) -> Response:
        """Execute the matching route and write its result onto ``response``."""
        found = self.match(request.method, request.path)
        if found is None:
            return not_found(response)

        execution, route, params = found
        request.path_params = params

        result: ExecutionResult = await execution.execute(route, request, response)

        response.body = result.body
        response.status = result.status
        return response

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def routes(self) -> List[Dict[str, str]]:
        """All installed dispatch entries, static ones first."""
        listing = [
            {"method": method, "path": path, "controller": execution.controller.__name__,
             "action": route.action_name}
            for (method, path), (execution, route) in self._static_routes.items()
        ]
        listing.extend(
            {"method": method, "path": path, "controller": execution.controller.__name__,
             "action": route.action_name}
            for method, path, _, execution, route in self._dynamic_routes
        )
        return listing

    def get_bootstrap_msg(self) -> str:
        """Message displayed when the application starts."""
        return self._bootstrap_msg

    def _append_to_bootstrap_msg(self, msg: str) -> str:
        self._bootstrap_msg += msg
        return self._bootstrap_msg
