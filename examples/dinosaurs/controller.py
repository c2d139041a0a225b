"""
Example DinosaurController.

GET  /dinosaurs      list all dinosaurs
GET  /dinosaurs/:id  one dinosaur, 404 when unknown
POST /dinosaurs      add a dinosaur (requires an Authorization header)
"""

from typing import Annotated, Any, Dict, Optional

from dactyl import (
    GET,
    POST,
    BadRequestException,
    Before,
    Body,
    Controller,
    ExecutionResult,
    NotFoundException,
    Param,
    RequestContext,
    Res,
    Response,
)

from service import DinosaurService


def require_authorization(ctx: RequestContext) -> Optional[ExecutionResult]:
    if not ctx.headers.get("authorization"):
        return ExecutionResult(body={"error": "Unauthorized", "status": 401}, status=401)
    return None


@Controller("/dinosaurs")
class DinosaurController:
    def __init__(self, service: DinosaurService):
        self.service = service

    @GET("/")
    def get_all(self):
        return self.service.get_all()

    @GET("/:id")
    def get_by_id(self, dinosaur_id: Annotated[int, Param("id", coerce=int)]):
        dinosaur = self.service.get_by_id(dinosaur_id)
        if dinosaur is None:
            raise NotFoundException(f"No dinosaur with id {dinosaur_id}")
        return dinosaur

    @POST("/")
    @Before(require_authorization)
    async def create(
        self,
        payload: Annotated[Dict[str, Any], Body()],
        response: Annotated[Response, Res()],
    ):
        if not isinstance(payload, dict) or not payload.get("name") or not payload.get("period"):
            raise BadRequestException("Both 'name' and 'period' are required")
        response.status = 201
        return self.service.add(payload["name"], payload["period"])
