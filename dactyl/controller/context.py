"""
Request context provided to before-hooks and ``Context()`` bindings.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from ..di.core import Container, RequestScope
    from ..request import Request
    from ..response import Response


@dataclass
class RequestContext:
    """
    Per-request capability bundle.

    Attributes:
        request: The HTTP request
        response: The outgoing response
        container: The application DI container
        request_scope: Registry of request-scoped instances for this call
        state: Free-form state shared between hooks and the action
    """

    request: "Request"
    response: "Response"
    container: Optional["Container"] = None
    request_scope: Optional["RequestScope"] = None
    state: Dict[str, Any] = field(default_factory=dict)

    @property
    def path(self) -> str:
        return self.request.path

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def params(self) -> Dict[str, str]:
        """Path parameters matched by the router."""
        return self.request.path_params

    @property
    def headers(self):
        return self.request.headers

    @property
    def query_params(self) -> Dict[str, str]:
        return self.request.query_params

    async def resolve(self, token: Any) -> Any:
        """Resolve a dependency within this request's scope."""
        return await self.container.resolve(token, self.request_scope)
