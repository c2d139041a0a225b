"""
Execution Container - runs the request lifecycle of one controller.

One ExecutionContainer exists per registered controller. For each call
to ``execute`` it, strictly in order:

1. resolves the controller instance with a fresh ``RequestScope``
2. runs the route's before-hooks (any may short-circuit)
3. binds action arguments from the request
4. invokes the action, awaiting it if asynchronous
5. translates the return value or failure into an ``ExecutionResult``

Nothing is retained between calls beyond the container's singletons.
"""

from dataclasses import dataclass
from typing import Any, List, Optional
import inspect
import logging

from ..di.core import Container, RequestScope, token_of
from ..exceptions import BindingError, HttpException
from ..request import Request
from ..response import Response
from .context import RequestContext
from .descriptors import ControllerDescriptor, ParamBinding, ParamSource, RouteDescriptor


INTERNAL_ERROR_BODY = {"error": "Internal Server Error", "status": 500}


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one route invocation."""

    body: Any = None
    status: int = 200


class ExecutionContainer:
    """
    Executes routes of a single controller.

    Holds the controller's descriptor and a reference to the DI container;
    controller instances are owned by the DI container according to the
    controller's scope.
    """

    __slots__ = ("controller", "descriptor", "container", "token", "logger")

    def __init__(
        self,
        controller: type,
        descriptor: ControllerDescriptor,
        container: Container,
        token: Optional[str] = None,
    ):
        self.controller = controller
        self.descriptor = descriptor
        self.container = container
        self.token = token or token_of(controller)
        self.logger = logging.getLogger("dactyl.execution")

    @property
    def prefix(self) -> str:
        return self.descriptor.prefix

    async def execute(
        self,
        route: RouteDescriptor,
        request: Request,
        response: Optional[Response] = None,
    ) -> ExecutionResult:
        """Run one route invocation and return its result."""
        if response is None:
            response = Response()

        request_scope = RequestScope()
        ctx = RequestContext(
            request=request,
            response=response,
            container=self.container,
            request_scope=request_scope,
        )

        try:
            instance = await self.container.resolve(self.token, request_scope)

            for hook in route.before_hooks:
                outcome = hook(ctx)
                if inspect.isawaitable(outcome):
                    outcome = await outcome
                if isinstance(outcome, ExecutionResult):
                    self.logger.debug(
                        "Before hook %s short-circuited %s.%s with %d",
                        getattr(hook, "__name__", hook), self.controller.__name__,
                        route.action_name, outcome.status,
                    )
                    return outcome

            args = await self._bind_arguments(route.params, ctx)

            action = getattr(instance, route.action_name)
            value = action(*args)
            if inspect.isawaitable(value):
                value = await value

        except HttpException as exc:
            return ExecutionResult(body=exc.to_body(), status=exc.status)

        except Exception:
            self.logger.error(
                "Error executing %s.%s",
                self.controller.__name__, route.action_name,
                exc_info=True,
            )
            return ExecutionResult(body=dict(INTERNAL_ERROR_BODY), status=500)

        # An explicit status set through a Res() binding wins over 200
        status = response.status if response.status_set else 200
        return ExecutionResult(body=value, status=status)

    async def _bind_arguments(self, params: tuple, ctx: RequestContext) -> List[Any]:
        """Build positional arguments in ascending ``target_index`` order."""
        return [await self._bind(binding, ctx) for binding in params]

    async def _bind(self, binding: ParamBinding, ctx: RequestContext) -> Any:
        source = binding.source
        request = ctx.request

        if source is ParamSource.PATH_PARAM:
            return self._coerce(binding, request.path_params.get(binding.key))
        if source is ParamSource.QUERY:
            return self._coerce(binding, request.query_params.get(binding.key))
        if source is ParamSource.HEADER:
            return self._coerce(binding, request.headers.get(binding.key))

        if source is ParamSource.BODY:
            body = await request.parsed_body()
            if binding.key is None:
                return body
            return body.get(binding.key) if isinstance(body, dict) else None

        if source is ParamSource.REQUEST_CONTEXT:
            return ctx
        if source is ParamSource.RAW_REQUEST:
            return request
        if source is ParamSource.RAW_RESPONSE:
            return ctx.response

        if source is ParamSource.INJECTED_DEPENDENCY:
            if binding.optional and not self.container.is_registered(binding.key):
                return None
            return await self.container.resolve(binding.key, ctx.request_scope)

        raise ValueError(f"Unknown parameter source {source!r}")

    @staticmethod
    def _coerce(binding: ParamBinding, value: Optional[str]) -> Any:
        # Missing values pass through as None; validation is the action's job
        if value is None or binding.coerce is None:
            return value
        try:
            return binding.coerce(value)
        except (TypeError, ValueError) as exc:
            raise BindingError(binding.source.value, binding.key, str(exc)) from exc

    def __repr__(self) -> str:
        return f"<ExecutionContainer {self.controller.__name__} prefix={self.prefix!r}>"
