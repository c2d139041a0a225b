"""
Provider implementations for different instantiation strategies.
"""

from dataclasses import dataclass
from typing import Annotated, Any, List, Optional, Tuple, Union, get_args, get_origin, get_type_hints
import inspect
import types

from .core import InjectableDescriptor, RequestScope, ResolveCtx, token_of
from .errors import DIError
from .scopes import InjectionScope


@dataclass(frozen=True)
class Dependency:
    """One constructor parameter to be resolved from the container."""

    name: str
    token: str
    default: Any = inspect.Parameter.empty
    optional: bool = False

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty

    @property
    def skippable(self) -> bool:
        """May be left unresolved when no provider is registered."""
        return self.has_default or self.optional


class ClassProvider:
    """
    Provider that instantiates a class by resolving constructor dependencies.

    Supports async initialisation via an ``async_init()`` coroutine method,
    awaited right after construction.
    """

    __slots__ = ("descriptor", "dependencies", "_has_async_init")

    def __init__(self, descriptor: InjectableDescriptor):
        self.descriptor = descriptor
        self.dependencies: Tuple[Dependency, ...] = tuple(
            self._extract_dependencies(descriptor.cls)
        )
        self._has_async_init = inspect.iscoroutinefunction(
            getattr(descriptor.cls, "async_init", None)
        )

    async def instantiate(self, ctx: ResolveCtx, request_scope: Optional[RequestScope]) -> Any:
        """Instantiate the class, resolving dependencies depth-first."""
        container = ctx.container
        kwargs = {}
        for dep in self.dependencies:
            if dep.skippable and not container.is_registered(dep.token):
                if not dep.has_default:
                    kwargs[dep.name] = None
                continue
            kwargs[dep.name] = await container._resolve(dep.token, request_scope, ctx)

        instance = self.descriptor.cls(**kwargs)

        if self._has_async_init:
            await instance.async_init()

        return instance

    def _extract_dependencies(self, cls: type) -> List[Dependency]:
        """
        Extract dependencies from the ``__init__`` signature.

        Type hints are resolved with ``include_extras`` so that
        ``Annotated[T, Inject(...)]`` markers survive.
        """
        if cls.__init__ is object.__init__:
            return []

        try:
            sig = inspect.signature(cls.__init__)
        except (TypeError, ValueError):
            return []

        try:
            type_hints = get_type_hints(cls.__init__, include_extras=True)
        except Exception:
            # Unresolvable forward references; fall back to raw annotations
            type_hints = {}

        deps = []
        for param_name, param in sig.parameters.items():
            if param_name in ("self", "cls"):
                continue

            if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                continue

            if param.kind is inspect.Parameter.POSITIONAL_ONLY:
                raise DIError(
                    f"Positional-only parameter '{param_name}' in "
                    f"{cls.__qualname__}.__init__ cannot be injected"
                )

            annotation = type_hints.get(param_name, param.annotation)

            if annotation is inspect.Parameter.empty:
                if param.default is not inspect.Parameter.empty:
                    continue
                raise DIError(
                    f"Missing type annotation for parameter '{param_name}' "
                    f"in {cls.__qualname__}.__init__"
                )

            token, optional = self._parse_annotation(annotation, cls, param_name)
            deps.append(
                Dependency(
                    name=param_name,
                    token=token,
                    default=param.default,
                    optional=optional,
                )
            )

        return deps

    @staticmethod
    def _parse_annotation(annotation: Any, cls: type, param_name: str) -> Tuple[str, bool]:
        """Return ``(token, optional)`` for one parameter annotation."""
        from .decorators import Inject

        if get_origin(annotation) is Annotated:
            base_type, *metadata = get_args(annotation)
            for meta in metadata:
                if isinstance(meta, Inject):
                    target = meta.token if meta.token is not None else base_type
                    return token_of_annotation(target, cls, param_name), meta.optional
            annotation = base_type

        # Optional[T] resolves T and injects None when T is not registered
        if get_origin(annotation) in (Union, types.UnionType):
            members = [arg for arg in get_args(annotation) if arg is not type(None)]
            if len(members) == 1 and len(members) < len(get_args(annotation)):
                return token_of_annotation(members[0], cls, param_name), True

        return token_of_annotation(annotation, cls, param_name), False


class ValueProvider:
    """Provider for a pre-built instance."""

    __slots__ = ("descriptor", "dependencies", "_value")

    def __init__(self, token: str, value: Any):
        self.descriptor = InjectableDescriptor(
            token=token,
            cls=type(value),
            scope=InjectionScope.SINGLETON,
        )
        self.dependencies: Tuple[Dependency, ...] = ()
        self._value = value

    async def instantiate(self, ctx: ResolveCtx, request_scope: Optional[RequestScope]) -> Any:
        return self._value


def token_of_annotation(annotation: Any, cls: type, param_name: str) -> str:
    """Token for a type annotation; strings are treated as explicit tokens."""
    try:
        return token_of(annotation)
    except TypeError:
        raise DIError(
            f"Cannot inject parameter '{param_name}' of {cls.__qualname__}: "
            f"annotation {annotation!r} is not a class or token"
        ) from None
