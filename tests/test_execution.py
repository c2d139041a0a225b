"""
Execution container (dactyl/controller/execution.py)

Tests the per-request pipeline: controller resolution, before-hooks,
argument binding, action invocation and result translation.
"""

import logging
from typing import Annotated, Any, Dict, Optional

import pytest

from dactyl.controller import (
    GET,
    POST,
    Before,
    Body,
    Context,
    Controller,
    ControllerDescriptor,
    ExecutionContainer,
    ExecutionResult,
    Header,
    Param,
    Query,
    Req,
    RequestContext,
    Res,
)
from dactyl.di import Container, Inject, InjectionScope, injectable
from dactyl.exceptions import BadRequestException, HttpException, NotFoundException
from dactyl.request import Request
from dactyl.response import Response
from dactyl.testing import make_test_request


DINOSAURS = [
    {"id": 0, "name": "Tyrannosaurus Rex", "period": "Maastrichtian"},
    {"id": 1, "name": "Velociraptor", "period": "Cretaceous"},
    {"id": 2, "name": "Diplodocus", "period": "Oxfordian"},
]


@injectable(InjectionScope.SINGLETON)
class DinosaurService:
    def get_all(self):
        return DINOSAURS


@injectable(InjectionScope.REQUEST)
class RequestState:
    def __init__(self):
        self.events = []


class Calls:
    count = 0


def deny(ctx):
    return ExecutionResult(body={"error": "Unauthorized", "status": 401}, status=401)


async def async_deny(ctx):
    return ExecutionResult(body={"error": "Forbidden", "status": 403}, status=403)


def allow(ctx):
    ctx.state["allowed"] = True
    return None


async def record(ctx):
    state = await ctx.resolve(RequestState)
    state.events.append("hook")


def raise_not_found(ctx):
    raise NotFoundException("nothing here")


def explode(ctx):
    raise RuntimeError("hook exploded")


@Controller("/dinosaurs")
class DinosaurController:
    def __init__(self, service: DinosaurService, state: RequestState):
        self.service = service
        self.state = state

    @GET("/")
    def get_all(self):
        return self.service.get_all()

    @GET("/async")
    async def get_all_async(self):
        return self.service.get_all()

    @GET("/bad")
    async def bad(self):
        raise BadRequestException("Bad Request")

    @GET("/teapot")
    def teapot(self):
        raise HttpException("short and stout", status=418)

    @GET("/crash")
    def crash(self):
        raise KeyError("secret internal detail")

    @GET("/denied")
    @Before(deny)
    def denied(self):
        Calls.count += 1
        return "never"

    @GET("/async-denied")
    @Before(allow, async_deny)
    async def async_denied(self):
        Calls.count += 1
        return "never"

    @GET("/allowed")
    @Before(allow)
    def allowed(self, ctx: Annotated[RequestContext, Context()]):
        return {"allowed": ctx.state.get("allowed")}

    @GET("/hook-http-error")
    @Before(raise_not_found)
    def hook_http_error(self):
        Calls.count += 1

    @GET("/hook-crash")
    @Before(explode)
    def hook_crash(self):
        Calls.count += 1

    @GET("/recorded")
    @Before(record)
    def recorded(self):
        self.state.events.append("action")
        return self.state.events

    @GET("/:id")
    def get_one(
        self,
        dinosaur_id: Annotated[int, Param("id", coerce=int)],
        fields: Annotated[Optional[str], Query("fields")],
    ):
        return {"id": dinosaur_id, "fields": fields}

    @POST("/")
    async def create(
        self,
        payload: Annotated[Dict[str, Any], Body()],
        name: Annotated[str, Body("name")],
        token: Annotated[Optional[str], Header("authorization")],
        response: Annotated[Response, Res()],
    ):
        response.status = 201
        return {"payload": payload, "name": name, "token": token}

    @POST("/raw")
    def raw(
        self,
        request: Annotated[Request, Req()],
        service: Annotated[DinosaurService, Inject()],
        missing: Annotated[Any, Inject("not.registered", optional=True)],
    ):
        return {"method": request.method, "service": service is self.service, "missing": missing}

    @POST("/status-then-fail")
    def status_then_fail(self, response: Annotated[Response, Res()]):
        response.status = 202
        raise BadRequestException()


def build_execution() -> ExecutionContainer:
    container = Container()
    container.register(DinosaurService)
    container.register(RequestState)
    descriptor = ControllerDescriptor.declared_on(DinosaurController)
    container.register(DinosaurController, descriptor.scope)
    return ExecutionContainer(DinosaurController, descriptor, container)


def route_for(execution: ExecutionContainer, action: str):
    for route in execution.descriptor.routes:
        if route.action_name == action:
            return route
    raise AssertionError(action)


async def run(action: str, request: Optional[Request] = None, params: Optional[dict] = None,
              response: Optional[Response] = None, execution: Optional[ExecutionContainer] = None):
    execution = execution or build_execution()
    request = request or make_test_request()
    if params:
        request.path_params = params
    return await execution.execute(route_for(execution, action), request, response)


@pytest.fixture(autouse=True)
def reset_calls():
    Calls.count = 0


class TestActions:

    @pytest.mark.asyncio
    async def test_returns_records_with_200(self):
        result = await run("get_all")
        assert result == ExecutionResult(body=DINOSAURS, status=200)

    @pytest.mark.asyncio
    async def test_async_action_awaited(self):
        result = await run("get_all_async")
        assert result.status == 200
        assert len(result.body) == 3

    @pytest.mark.asyncio
    async def test_prefix(self):
        assert build_execution().prefix == "/dinosaurs"


class TestErrors:

    @pytest.mark.asyncio
    async def test_http_exception_becomes_structured_body(self):
        result = await run("bad")
        assert result == ExecutionResult(body={"error": "Bad Request", "status": 400}, status=400)

    @pytest.mark.asyncio
    async def test_custom_status(self):
        result = await run("teapot")
        assert result.status == 418
        assert result.body == {"error": "short and stout", "status": 418}

    @pytest.mark.asyncio
    async def test_unknown_error_is_generic_500(self, caplog):
        with caplog.at_level(logging.ERROR, logger="dactyl.execution"):
            result = await run("crash")
        assert result.status == 500
        assert result.body == {"error": "Internal Server Error", "status": 500}
        assert "secret" not in str(result.body)
        assert any(record.exc_info for record in caplog.records)

    @pytest.mark.asyncio
    async def test_exception_wins_over_explicit_status(self):
        result = await run("status_then_fail", make_test_request("POST", "/dinosaurs/status-then-fail"))
        assert result.status == 400


class TestHooks:

    @pytest.mark.asyncio
    async def test_short_circuit_skips_action(self):
        result = await run("denied")
        assert result.status == 401
        assert result.body == {"error": "Unauthorized", "status": 401}
        assert Calls.count == 0

    @pytest.mark.asyncio
    async def test_async_hook_short_circuit_after_passing_hook(self):
        result = await run("async_denied")
        assert result.status == 403
        assert Calls.count == 0

    @pytest.mark.asyncio
    async def test_passing_hook_shares_state(self):
        result = await run("allowed")
        assert result.body == {"allowed": True}

    @pytest.mark.asyncio
    async def test_hook_http_exception(self):
        result = await run("hook_http_error")
        assert result.body == {"error": "nothing here", "status": 404}
        assert Calls.count == 0

    @pytest.mark.asyncio
    async def test_hook_unknown_error(self):
        result = await run("hook_crash")
        assert result.status == 500
        assert Calls.count == 0

    @pytest.mark.asyncio
    async def test_hook_shares_request_scope_with_controller(self):
        result = await run("recorded")
        assert result.body == ["hook", "action"]


class TestBinding:

    @pytest.mark.asyncio
    async def test_path_param_coerced_and_query(self):
        request = make_test_request(path="/dinosaurs/2", query_string="fields=name&fields=period")
        result = await run("get_one", request, params={"id": "2"})
        assert result.body == {"id": 2, "fields": "name"}

    @pytest.mark.asyncio
    async def test_missing_query_is_none(self):
        result = await run("get_one", params={"id": "1"})
        assert result.body == {"id": 1, "fields": None}

    @pytest.mark.asyncio
    async def test_coercion_failure_is_400(self):
        result = await run("get_one", params={"id": "rex"})
        assert result.status == 400
        assert result.body == {"error": "Invalid value for path 'id'", "status": 400}

    @pytest.mark.asyncio
    async def test_body_header_and_explicit_status(self):
        request = make_test_request(
            "POST",
            "/dinosaurs",
            headers=[("Content-Type", "application/json"), ("Authorization", "Bearer t")],
            body=b'{"name": "Stegosaurus", "period": "Jurassic"}',
        )
        result = await run("create", request)
        assert result.status == 201
        assert result.body == {
            "payload": {"name": "Stegosaurus", "period": "Jurassic"},
            "name": "Stegosaurus",
            "token": "Bearer t",
        }

    @pytest.mark.asyncio
    async def test_invalid_json_is_400(self):
        request = make_test_request(
            "POST", "/dinosaurs", headers=[("content-type", "application/json")], body=b"{nope",
        )
        result = await run("create", request)
        assert result.body == {"error": "Invalid JSON body", "status": 400}

    @pytest.mark.asyncio
    async def test_raw_request_and_injected(self):
        result = await run("raw", make_test_request("POST", "/dinosaurs/raw"))
        assert result.body == {"method": "POST", "service": True, "missing": None}

    @pytest.mark.asyncio
    async def test_response_object_is_shared(self):
        response = Response()
        request = make_test_request("POST", "/dinosaurs", body=b"{}")
        await run("create", request, response=response)
        assert response.status == 201


class TestIsolation:

    @pytest.mark.asyncio
    async def test_fresh_request_scope_per_execution(self):
        execution = build_execution()
        first = await run("recorded", execution=execution)
        second = await run("recorded", execution=execution)
        assert first.body == ["hook", "action"]
        assert second.body == ["hook", "action"]
        assert first.body is not second.body

    @pytest.mark.asyncio
    async def test_singleton_shared_across_executions(self):
        execution = build_execution()
        await run("get_all", execution=execution)
        service = await execution.container.resolve(DinosaurService)
        assert service is await execution.container.resolve(DinosaurService)


@Before(deny)
@Controller("/guarded")
class GuardedController:

    @GET("/")
    def index(self):
        Calls.count += 1
        return "never"


class TestGuardedController:

    @pytest.mark.asyncio
    async def test_class_guard_declared_above_controller_short_circuits(self):
        container = Container()
        descriptor = ControllerDescriptor.declared_on(GuardedController)
        container.register(GuardedController, descriptor.scope)
        execution = ExecutionContainer(GuardedController, descriptor, container)

        result = await execution.execute(descriptor.routes[0], make_test_request())

        assert result.status == 401
        assert Calls.count == 0
