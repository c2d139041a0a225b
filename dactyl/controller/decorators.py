"""
Controller decorators.

``@GET/@POST/...`` and ``@Before`` only attach metadata to functions.
``@Controller`` compiles that metadata, together with the parameter
markers found in ``Annotated`` hints, into an immutable
``ControllerDescriptor``.

Example:
    @Controller("/dinosaurs")
    class DinosaurController:
        def __init__(self, service: DinosaurService):
            self.service = service

        @GET("/:id")
        async def get_one(self, id: Annotated[int, Param("id", coerce=int)]):
            return self.service.get(id)
"""

from dataclasses import dataclass, replace
from typing import Annotated, Any, Callable, List, Optional, TypeVar, Union, get_args, get_origin, get_type_hints
import inspect

from ..di.core import token_of
from ..di.decorators import Inject
from ..di.scopes import InjectionScope, coerce_scope
from ..exceptions import DescriptorError
from .descriptors import (
    CONTROLLER_ATTR,
    ControllerDescriptor,
    HttpMethod,
    ParamBinding,
    ParamSource,
    RouteDescriptor,
)


F = TypeVar("F", bound=Callable[..., Any])
C = TypeVar("C", bound=type)

ROUTE_ATTR = "__dactyl_routes__"
BEFORE_ATTR = "__dactyl_before__"


# ============================================================================
# Parameter markers
# ============================================================================

@dataclass(frozen=True)
class ParamMarker:
    """Base marker; subclasses fix the source."""

    key: Optional[str] = None
    coerce: Optional[Callable[[str], Any]] = None

    source = ParamSource.QUERY

    def to_binding(self, index: int) -> ParamBinding:
        return ParamBinding(
            source=self.source,
            target_index=index,
            key=self.key,
            coerce=self.coerce,
        )


class Param(ParamMarker):
    """Path parameter, extracted as a string."""
    source = ParamSource.PATH_PARAM


class Query(ParamMarker):
    """Query-string parameter, extracted as a string."""
    source = ParamSource.QUERY


class Header(ParamMarker):
    """Request header (case-insensitive), extracted as a string."""
    source = ParamSource.HEADER


@dataclass(frozen=True)
class _WholeValueMarker:
    source = ParamSource.BODY

    def to_binding(self, index: int) -> ParamBinding:
        return ParamBinding(source=self.source, target_index=index)


@dataclass(frozen=True)
class Body(_WholeValueMarker):
    """Parsed request payload, or one field of it when ``key`` is given."""

    key: Optional[str] = None
    source = ParamSource.BODY

    def to_binding(self, index: int) -> ParamBinding:
        return ParamBinding(source=self.source, target_index=index, key=self.key)


class Context(_WholeValueMarker):
    """The per-request ``RequestContext``."""
    source = ParamSource.REQUEST_CONTEXT


class Req(_WholeValueMarker):
    """The raw ``Request`` object."""
    source = ParamSource.RAW_REQUEST


class Res(_WholeValueMarker):
    """The outgoing ``Response`` object."""
    source = ParamSource.RAW_RESPONSE


_MARKER_TYPES = (ParamMarker, _WholeValueMarker, Inject)


# ============================================================================
# Route decorators
# ============================================================================

class RouteDecorator:
    """
    Base route decorator.

    Attaches ``(method, path)`` to the function without side effects.
    A function may carry several routes.
    """

    method: HttpMethod = HttpMethod.GET

    def __init__(self, path: str = "/"):
        if not path.startswith("/"):
            path = "/" + path
        self.path = path

    def __call__(self, func: F) -> F:
        routes = func.__dict__.setdefault(ROUTE_ATTR, [])
        routes.append((self.method, self.path))
        return func


class GET(RouteDecorator):
    method = HttpMethod.GET


class POST(RouteDecorator):
    method = HttpMethod.POST


class PUT(RouteDecorator):
    method = HttpMethod.PUT


class PATCH(RouteDecorator):
    method = HttpMethod.PATCH


class DELETE(RouteDecorator):
    method = HttpMethod.DELETE


def Before(*hooks: Callable[..., Any]) -> Callable[[Union[F, C]], Union[F, C]]:
    """
    Attach before-hooks to an action, or to every action of a controller
    when applied to the class.

    Hooks run in declared order, top decorator first. A hook receives the
    ``RequestContext``; returning an ``ExecutionResult`` short-circuits.
    """
    for hook in hooks:
        if not callable(hook):
            raise DescriptorError(f"Before hook {hook!r} is not callable")

    def decorator(target):
        existing = target.__dict__.get(BEFORE_ATTR, ())
        # Decorators apply bottom-up; prepend to keep reading order
        setattr(target, BEFORE_ATTR, tuple(hooks) + tuple(existing))

        # Applied above @Controller: the routes are already compiled
        compiled = ControllerDescriptor.declared_on(target)
        if compiled is not None:
            routes = tuple(
                replace(route, before_hooks=tuple(hooks) + route.before_hooks)
                for route in compiled.routes
            )
            setattr(target, CONTROLLER_ATTR, replace(compiled, routes=routes))
        return target

    return decorator


# ============================================================================
# Controller compilation
# ============================================================================

def Controller(
    prefix: str = "",
    *,
    scope: Union[InjectionScope, str] = InjectionScope.REQUEST,
) -> Callable[[C], C]:
    """
    Mark a class as a controller mounted at ``prefix``.

    Args:
        prefix: Route prefix, e.g. "/users"
        scope: Injection scope of controller instances (default: one per request)
    """
    resolved_scope = coerce_scope(scope)

    def decorator(cls: C) -> C:
        descriptor = ControllerDescriptor(
            prefix=prefix,
            routes=tuple(compile_routes(cls)),
            scope=resolved_scope,
        )
        setattr(cls, CONTROLLER_ATTR, descriptor)
        return cls

    return decorator


def compile_routes(cls: type) -> List[RouteDescriptor]:
    """Build route descriptors for every decorated method, in definition order."""
    class_hooks = tuple(cls.__dict__.get(BEFORE_ATTR, ()))

    # Walk bases first so overrides keep the base definition position
    members = {}
    for klass in reversed(cls.__mro__):
        for name, member in klass.__dict__.items():
            if callable(member) and ROUTE_ATTR in getattr(member, "__dict__", {}):
                members[name] = member

    routes = []
    for name, func in members.items():
        params = build_bindings(cls, func)
        hooks = class_hooks + tuple(func.__dict__.get(BEFORE_ATTR, ()))
        for method, path in func.__dict__[ROUTE_ATTR]:
            routes.append(
                RouteDescriptor(
                    http_method=method,
                    path=path,
                    action_name=name,
                    params=params,
                    before_hooks=hooks,
                )
            )
    return routes


def build_bindings(cls: type, func: Callable[..., Any]) -> tuple:
    """Translate an action signature into ordered ``ParamBinding``s."""
    sig = inspect.signature(func)
    try:
        hints = get_type_hints(func, include_extras=True)
    except Exception:
        hints = {}

    bindings = []
    index = 0
    for i, (name, param) in enumerate(sig.parameters.items()):
        if i == 0 and name == "self":
            continue

        where = f"{cls.__qualname__}.{func.__name__}"
        if param.kind not in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
            raise DescriptorError(
                f"Parameter '{name}' of {where} must be positional to be bound"
            )

        annotation = hints.get(name, param.annotation)
        marker, base_type = _find_marker(annotation)
        if marker is None:
            raise DescriptorError(
                f"Parameter '{name}' of {where} has no binding; annotate it as "
                f"Annotated[T, Param(...)/Query(...)/Header(...)/Body()/Context()/Req()/Res()/Inject()]"
            )

        if isinstance(marker, Inject):
            target = marker.token if marker.token is not None else base_type
            if target is None:
                raise DescriptorError(f"Inject() on '{name}' of {where} needs a type or token")
            bindings.append(
                ParamBinding(
                    source=ParamSource.INJECTED_DEPENDENCY,
                    target_index=index,
                    key=token_of(target),
                    optional=marker.optional,
                )
            )
        else:
            bindings.append(marker.to_binding(index))
        index += 1

    return tuple(bindings)


def _find_marker(annotation: Any):
    if get_origin(annotation) is not Annotated:
        return None, None
    base_type, *metadata = get_args(annotation)
    found = [meta for meta in metadata if isinstance(meta, _MARKER_TYPES)]
    if len(found) > 1:
        raise DescriptorError(f"Multiple binding markers in {annotation!r}")
    return (found[0] if found else None), base_type
