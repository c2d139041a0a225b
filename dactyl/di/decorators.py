"""
Decorators and injection markers for declaring injectables.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional, Type, TypeVar, Union

from .core import INJECTABLE_ATTR, InjectableDescriptor, token_of
from .scopes import InjectionScope, coerce_scope


T = TypeVar("T")


@dataclass(frozen=True)
class Inject:
    """
    Injection marker.

    Usage:
        def __init__(self, repo: Annotated[UserRepo, Inject("users.primary")]):
            ...

        @GET("/")
        async def index(self, service: Annotated[UserService, Inject()]):
            ...

    Without a token, the annotated type is resolved.
    """

    token: Optional[Union[Type, str]] = None
    optional: bool = False


def inject(token: Optional[Union[Type, str]] = None, *, optional: bool = False) -> Inject:
    """Functional spelling of ``Inject(...)``."""
    return Inject(token=token, optional=optional)


def injectable(
    scope: Union[InjectionScope, str] = InjectionScope.SINGLETON,
    *,
    name: Optional[str] = None,
) -> Callable[[Type[T]], Type[T]]:
    """
    Mark a class as injectable.

    Attaches an immutable ``InjectableDescriptor``; nothing is registered
    or instantiated until the class is passed to ``Container.register``.

    Example:
        @injectable(InjectionScope.REQUEST)
        class UnitOfWork:
            def __init__(self, db: Database):
                self.db = db
    """
    resolved_scope = coerce_scope(scope)

    def decorator(cls: Type[T]) -> Type[T]:
        descriptor = InjectableDescriptor(
            token=name or token_of(cls),
            cls=cls,
            scope=resolved_scope,
        )
        setattr(cls, INJECTABLE_ATTR, descriptor)
        return cls

    return decorator


def is_injectable(cls: Any) -> bool:
    return InjectableDescriptor.declared_on(cls) is not None
