"""
Controller descriptors - immutable records of controllers, routes and
parameter bindings.

Descriptors are built once by the ``@Controller`` decorator (or by hand)
and are read-only afterwards. The router and execution containers only
ever read them.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Tuple

from ..di.scopes import InjectionScope
from ..exceptions import DescriptorError


CONTROLLER_ATTR = "__dactyl_controller__"


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class ParamSource(str, Enum):
    """Where an action argument is taken from."""

    PATH_PARAM = "path"
    BODY = "body"
    QUERY = "query"
    HEADER = "header"
    REQUEST_CONTEXT = "context"
    RAW_REQUEST = "request"
    RAW_RESPONSE = "response"
    INJECTED_DEPENDENCY = "inject"


# Sources that are looked up by key and extracted as strings
KEYED_SOURCES = frozenset((ParamSource.PATH_PARAM, ParamSource.QUERY, ParamSource.HEADER))


@dataclass(frozen=True)
class ParamBinding:
    """
    Binding of one positional action argument.

    Attributes:
        source: Where the value comes from
        target_index: Zero-based argument position (after ``self``)
        key: Lookup key for path/query/header, DI token for injected
             dependencies, optional field name for the body
        coerce: Explicit conversion applied to present string values
        optional: For injected dependencies, pass ``None`` when the
                  token is not registered
    """

    source: ParamSource
    target_index: int
    key: Optional[str] = None
    coerce: Optional[Callable[[str], Any]] = None
    optional: bool = False

    def __post_init__(self):
        if self.target_index < 0:
            raise DescriptorError(f"target_index must be >= 0, got {self.target_index}")
        if self.source in KEYED_SOURCES and not self.key:
            raise DescriptorError(f"{self.source.value} binding requires a key")
        if self.source is ParamSource.INJECTED_DEPENDENCY and not self.key:
            raise DescriptorError("injected dependency binding requires a token")
        if self.coerce is not None and self.source not in KEYED_SOURCES:
            raise DescriptorError(
                f"coerce is only supported for path/query/header bindings, "
                f"not {self.source.value}"
            )


def _validate_bindings(action_name: str, params: Tuple[ParamBinding, ...]) -> None:
    indexes = [binding.target_index for binding in params]
    if len(set(indexes)) != len(indexes):
        raise DescriptorError(f"Duplicate target_index in bindings of '{action_name}'")
    if sorted(indexes) != list(range(len(indexes))):
        raise DescriptorError(
            f"Bindings of '{action_name}' leave gaps: every positional argument "
            f"needs exactly one binding (got indexes {sorted(indexes)})"
        )


@dataclass(frozen=True)
class RouteDescriptor:
    """
    One route of a controller.

    ``params`` is stored sorted by ``target_index``.
    """

    http_method: HttpMethod
    path: str
    action_name: str
    params: Tuple[ParamBinding, ...] = ()
    before_hooks: Tuple[Callable[..., Any], ...] = ()

    def __post_init__(self):
        if not isinstance(self.http_method, HttpMethod):
            object.__setattr__(self, "http_method", HttpMethod(self.http_method.upper()))
        ordered = tuple(sorted(self.params, key=lambda b: b.target_index))
        _validate_bindings(self.action_name, ordered)
        object.__setattr__(self, "params", ordered)
        object.__setattr__(self, "before_hooks", tuple(self.before_hooks))
        if not self.path.startswith("/"):
            raise DescriptorError(f"Route path must start with '/': {self.path!r}")


@dataclass(frozen=True)
class ControllerDescriptor:
    """Route prefix plus ordered routes of one controller type."""

    prefix: str
    routes: Tuple[RouteDescriptor, ...] = field(default_factory=tuple)
    scope: InjectionScope = InjectionScope.REQUEST

    def __post_init__(self):
        object.__setattr__(self, "routes", tuple(self.routes))
        if self.prefix and not self.prefix.startswith("/"):
            raise DescriptorError(f"Controller prefix must start with '/': {self.prefix!r}")

    @staticmethod
    def declared_on(cls: Any) -> Optional["ControllerDescriptor"]:
        """Return the descriptor declared on ``cls`` itself (not inherited)."""
        if not isinstance(cls, type):
            return None
        return cls.__dict__.get(CONTROLLER_ATTR)
