"""
Core DI types and the Container.

The container owns the instance registry. Singletons are constructed at
most once per container, request-scoped instances live in a
``RequestScope`` supplied by the caller, and transients are never cached.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Set, Type, TypeVar, Union
import asyncio
import logging

from .errors import (
    CyclicDependencyError,
    DIError,
    DuplicateRegistrationError,
    ScopeViolationError,
    UnresolvedDependencyError,
)
from .scopes import InjectionScope, coerce_scope


T = TypeVar("T")

INJECTABLE_ATTR = "__dactyl_injectable__"

# Module-level cache: type -> "module.qualname"
_type_key_cache: Dict[type, str] = {}

_MISSING = object()

logger = logging.getLogger("dactyl.di")


def token_of(target: Union[Type, str]) -> str:
    """Convert a class or string into a registry token."""
    if isinstance(target, str):
        return target

    if isinstance(target, type):
        key = _type_key_cache.get(target)
        if key is None:
            key = f"{target.__module__}.{target.__qualname__}"
            _type_key_cache[target] = key
        return key

    raise TypeError(f"Cannot derive an injection token from {target!r}")


@dataclass(frozen=True)
class InjectableDescriptor:
    """Class identity plus injection scope. Immutable once created."""

    token: str
    cls: type
    scope: InjectionScope

    @staticmethod
    def declared_on(cls: Any) -> Optional["InjectableDescriptor"]:
        """Return the descriptor declared on ``cls`` itself (not inherited)."""
        if not isinstance(cls, type):
            return None
        return cls.__dict__.get(INJECTABLE_ATTR)

    @property
    def name(self) -> str:
        return self.cls.__name__


class LifecycleState(str, Enum):
    """Singleton lifecycle in the instance registry."""

    REGISTERED = "registered"
    INSTANTIATING = "instantiating"
    INSTANTIATED = "instantiated"


class RequestScope:
    """
    Ephemeral instance cache for one logical request.

    Created at the start of request handling and discarded afterwards;
    never shared between requests.
    """

    __slots__ = ("_instances",)

    def __init__(self):
        self._instances: Dict[str, Any] = {}

    def get(self, token: str, default: Any = None) -> Any:
        return self._instances.get(token, default)

    def set(self, token: str, instance: Any) -> None:
        self._instances[token] = instance

    def __contains__(self, token: str) -> bool:
        return token in self._instances

    def __len__(self) -> int:
        return len(self._instances)

    def __repr__(self) -> str:
        return f"<RequestScope {len(self._instances)} instances>"


class ResolveCtx:
    """
    Context for one top-level resolution.

    Tracks the resolution stack for cycle detection and diagnostics.
    """

    __slots__ = ("container", "stack")

    def __init__(self, container: "Container"):
        self.container = container
        self.stack: List[str] = []

    def push(self, token: str) -> None:
        self.stack.append(token)

    def pop(self) -> None:
        self.stack.pop()

    def in_cycle(self, token: str) -> bool:
        return token in self.stack

    def get_trace(self) -> List[str]:
        return self.stack.copy()


class Container:
    """
    DI Container - registers injectable descriptors and resolves instances
    honoring their scope.

    Singleton construction is guarded by a per-token ``asyncio.Lock`` and
    double-checked, so concurrent first resolution builds one instance.
    """

    __slots__ = (
        "_providers",
        "_singletons",
        "_states",
        "_locks",
        "_acyclic",
    )

    def __init__(self):
        self._providers: Dict[str, Any] = {}  # {token: provider}, insertion ordered
        self._singletons: Dict[str, Any] = {}  # {token: instance}
        self._states: Dict[str, LifecycleState] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._acyclic: Set[str] = set()  # tokens whose dependency graph was checked

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        target: Type[T],
        scope: Optional[Union[InjectionScope, str]] = None,
        name: Optional[str] = None,
    ) -> InjectableDescriptor:
        """
        Register an injectable class. No instantiation happens here.

        Args:
            target: The class to register
            scope: Overrides the scope declared with ``@injectable``
                   (default SINGLETON for undecorated classes)
            name: Explicit token; defaults to the declared or class token

        Raises:
            DuplicateRegistrationError: If the token is already registered
        """
        from .providers import ClassProvider

        declared = InjectableDescriptor.declared_on(target)
        if scope is None:
            scope = declared.scope if declared else InjectionScope.SINGLETON
        if name is None:
            name = declared.token if declared else token_of(target)

        descriptor = InjectableDescriptor(token=name, cls=target, scope=coerce_scope(scope))
        self._add(ClassProvider(descriptor))
        return descriptor

    def register_value(self, token: Union[Type, str], value: Any) -> InjectableDescriptor:
        """Register a pre-built instance as a singleton."""
        from .providers import ValueProvider

        key = token_of(token)
        provider = ValueProvider(key, value)
        self._add(provider)
        self._singletons[key] = value
        self._states[key] = LifecycleState.INSTANTIATED
        return provider.descriptor

    def _add(self, provider: Any) -> None:
        token = provider.descriptor.token
        existing = self._providers.get(token)
        if existing is not None:
            raise DuplicateRegistrationError(token, existing=existing.descriptor.name)

        self._providers[token] = provider
        if provider.descriptor.scope is InjectionScope.SINGLETON:
            self._states[token] = LifecycleState.REGISTERED
        self._acyclic.clear()
        logger.debug("Registered %s (%s)", token, provider.descriptor.scope.value)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def is_registered(self, token: Union[Type, str]) -> bool:
        return token_of(token) in self._providers

    def descriptor(self, token: Union[Type, str]) -> InjectableDescriptor:
        key = token_of(token)
        provider = self._providers.get(key)
        if provider is None:
            self._raise_unresolved(key, None)
        return provider.descriptor

    def state(self, token: Union[Type, str]) -> Optional[LifecycleState]:
        """Lifecycle state of a singleton token, ``None`` for other scopes."""
        return self._states.get(token_of(token))

    def tokens(self) -> Iterator[str]:
        return iter(self._providers)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def resolve(
        self,
        token: Union[Type[T], str],
        request_scope: Optional[RequestScope] = None,
    ) -> T:
        """
        Resolve an instance according to its scope.

        Args:
            token: Class or string token
            request_scope: Registry for request-scoped instances. Required
                           when the token (or one of its dependencies) is
                           request-scoped.

        Raises:
            UnresolvedDependencyError: Token was never registered
            CyclicDependencyError: The dependency graph loops back on itself
            ScopeViolationError: Request-scoped instance outside a request
        """
        ctx = ResolveCtx(container=self)
        return await self._resolve(token_of(token), request_scope, ctx)

    async def _resolve(
        self,
        key: str,
        request_scope: Optional[RequestScope],
        ctx: ResolveCtx,
    ) -> Any:
        provider = self._providers.get(key)
        if provider is None:
            self._raise_unresolved(key, ctx)

        scope = provider.descriptor.scope

        # Fast paths: already built for this lifetime
        if scope is InjectionScope.SINGLETON:
            cached = self._singletons.get(key, _MISSING)
            if cached is not _MISSING:
                return cached
        elif scope is InjectionScope.REQUEST:
            if request_scope is None:
                consumer = ctx.stack[-1] if ctx.stack else None
                raise ScopeViolationError(key, consumer=consumer)
            if key in request_scope:
                return request_scope.get(key)

        if ctx.in_cycle(key):
            raise CyclicDependencyError(ctx.get_trace() + [key])

        if key not in self._acyclic:
            self._check_acyclic(key)

        ctx.push(key)
        try:
            if scope is InjectionScope.SINGLETON:
                return await self._instantiate_singleton(key, provider, ctx)

            instance = await provider.instantiate(ctx, request_scope)
            if scope is InjectionScope.REQUEST:
                request_scope.set(key, instance)
            return instance
        finally:
            ctx.pop()

    async def _instantiate_singleton(self, key: str, provider: Any, ctx: ResolveCtx) -> Any:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()

        async with lock:
            # Another task may have finished construction while we waited
            cached = self._singletons.get(key, _MISSING)
            if cached is not _MISSING:
                return cached

            self._states[key] = LifecycleState.INSTANTIATING
            try:
                # Singletons never capture request-scoped instances
                instance = await provider.instantiate(ctx, None)
            except BaseException:
                self._states[key] = LifecycleState.REGISTERED
                raise

            self._singletons[key] = instance
            self._states[key] = LifecycleState.INSTANTIATED
            logger.debug("Instantiated singleton %s", key)
            return instance

    async def instantiate_all_singletons(self) -> int:
        """
        Eagerly construct every singleton, in registration order.

        Called once at startup so construction failures surface before the
        first request. Returns the number of singletons now instantiated.
        """
        for key, provider in list(self._providers.items()):
            if provider.descriptor.scope is InjectionScope.SINGLETON:
                await self._resolve(key, None, ResolveCtx(container=self))

        count = sum(
            1 for state in self._states.values() if state is LifecycleState.INSTANTIATED
        )
        logger.info("Instantiated %d singleton(s)", count)
        return count

    # ------------------------------------------------------------------
    # Graph validation
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """
        Check the whole registered graph for cycles and missing dependencies.

        Raises:
            CyclicDependencyError: First cycle found
            UnresolvedDependencyError: A required dependency is not registered
        """
        for key in list(self._providers):
            self._check_acyclic(key)
            for dep in self._providers[key].dependencies:
                if dep.token not in self._providers and not dep.skippable:
                    raise UnresolvedDependencyError(dep.token, requested_by=key)

    def _check_acyclic(self, root: str) -> None:
        """Depth-first walk of the declared dependency graph from ``root``."""
        path: List[str] = []
        on_path: Set[str] = set()

        def visit(key: str) -> None:
            if key in self._acyclic:
                return
            if key in on_path:
                start = path.index(key)
                raise CyclicDependencyError(path[start:] + [key])
            provider = self._providers.get(key)
            if provider is None:
                return
            path.append(key)
            on_path.add(key)
            for dep in provider.dependencies:
                visit(dep.token)
            on_path.discard(key)
            path.pop()
            self._acyclic.add(key)

        visit(root)

    def _raise_unresolved(self, key: str, ctx: Optional[ResolveCtx]) -> None:
        suffix = key.rsplit(".", 1)[-1]
        candidates = [
            token for token in self._providers
            if token != key and token.rsplit(".", 1)[-1] == suffix
        ]
        requested_by = ctx.stack[-1] if ctx and ctx.stack else None
        raise UnresolvedDependencyError(key, requested_by=requested_by, candidates=candidates)

    def __repr__(self) -> str:
        return f"<Container {len(self._providers)} providers>"


__all__ = [
    "Container",
    "DIError",
    "InjectableDescriptor",
    "LifecycleState",
    "RequestScope",
    "ResolveCtx",
    "token_of",
]
