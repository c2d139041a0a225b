"""
Dactyl Dependency Injection

Async-first DI with three explicit scopes:
- singleton: one instance per container, built at most once (lock guarded)
- transient: a new instance on every resolution
- request:   one instance per RequestScope, never shared across requests

Dependencies are read from ``__init__`` type hints; cycles are detected
before construction instead of recursing without bound.
"""

from .core import (
    Container,
    InjectableDescriptor,
    LifecycleState,
    RequestScope,
    ResolveCtx,
    token_of,
)
from .decorators import Inject, inject, injectable, is_injectable
from .errors import (
    CyclicDependencyError,
    DIError,
    DuplicateRegistrationError,
    ScopeViolationError,
    UnresolvedDependencyError,
)
from .providers import ClassProvider, Dependency, ValueProvider
from .scopes import InjectionScope, coerce_scope

__all__ = [
    "Container",
    "InjectableDescriptor",
    "LifecycleState",
    "RequestScope",
    "ResolveCtx",
    "token_of",
    "Inject",
    "inject",
    "injectable",
    "is_injectable",
    "CyclicDependencyError",
    "DIError",
    "DuplicateRegistrationError",
    "ScopeViolationError",
    "UnresolvedDependencyError",
    "ClassProvider",
    "Dependency",
    "ValueProvider",
    "InjectionScope",
    "coerce_scope",
]
