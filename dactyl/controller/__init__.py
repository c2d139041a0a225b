"""
Dactyl Controller System

Class-based controllers compiled into immutable descriptors, executed
per request by an ExecutionContainer and dispatched by the Router.

Example:
    from typing import Annotated
    from dactyl.controller import Controller, GET, Param

    @Controller("/users")
    class UsersController:
        def __init__(self, repo: UserRepo):
            self.repo = repo

        @GET("/:id")
        async def get_user(self, user_id: Annotated[str, Param("id")]):
            return self.repo.get(user_id)
"""

from .context import RequestContext
from .decorators import (
    DELETE,
    GET,
    PATCH,
    POST,
    PUT,
    Before,
    Body,
    Context,
    Controller,
    Header,
    Param,
    Query,
    Req,
    Res,
    RouteDecorator,
)
from .descriptors import (
    ControllerDescriptor,
    HttpMethod,
    ParamBinding,
    ParamSource,
    RouteDescriptor,
)
from .execution import ExecutionContainer, ExecutionResult
from .router import Router, join_path, normalize_path, not_found

__all__ = [
    "RequestContext",
    "Controller",
    "RouteDecorator",
    "GET",
    "POST",
    "PUT",
    "PATCH",
    "DELETE",
    "Before",
    "Param",
    "Query",
    "Header",
    "Body",
    "Context",
    "Req",
    "Res",
    "ControllerDescriptor",
    "HttpMethod",
    "ParamBinding",
    "ParamSource",
    "RouteDescriptor",
    "ExecutionContainer",
    "ExecutionResult",
    "Router",
    "join_path",
    "normalize_path",
    "not_found",
]
