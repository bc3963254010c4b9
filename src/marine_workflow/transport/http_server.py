"""Starlette HTTP adapter over the family workflow engines."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from typing import Any

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from marine_workflow.app import AppContext, get_app_context
from marine_workflow.domain.errors import ErrorKind
from marine_workflow.domain.families import (
    CARGO_MANAGER_BOOKINGS,
    FAMILIES,
    SERVICE_REQUESTS,
    SURVEYOR_BOOKINGS,
    WorkflowFamily,
)
from marine_workflow.domain.identity import Identity, get_identity, reset_identity, set_identity
from marine_workflow.domain.operations import DecisionAction
from marine_workflow.utils.serialization import json_default
from marine_workflow.workflow.engine import WorkflowEngine
from marine_workflow.workflow.results import Result

logger = logging.getLogger(__name__)

_EXEMPT_PATHS = frozenset({"/health"})

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_REFERENCE: 400,
    ErrorKind.INVALID_ROLE: 400,
    ErrorKind.INACTIVE_TARGET: 400,
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.ALREADY_DECIDED: 409,
    ErrorKind.NOT_ACCEPTED: 409,
    ErrorKind.UNAVAILABLE: 503,
}

# Path segment under /api/owner-bookings/ for each family offering the owner view.
OWNER_VIEW_SEGMENTS: dict[str, WorkflowFamily] = {
    "surveyor": SURVEYOR_BOOKINGS,
    "cargo": CARGO_MANAGER_BOOKINGS,
}


class EnvelopeResponse(JSONResponse):
    """JSON response that also serializes datetimes and enums."""

    def render(self, content: Any) -> bytes:
        return json.dumps(
            content,
            ensure_ascii=False,
            allow_nan=False,
            separators=(",", ":"),
            default=json_default,
        ).encode("utf-8")


def _failure_response(kind: ErrorKind, message: str) -> Response:
    return EnvelopeResponse(
        Result.failure(kind, message).to_dict(),
        status_code=STATUS_BY_KIND[kind],
    )


def result_response(result: Result[Any], *, success_status: int = 200) -> Response:
    if result.ok:
        return EnvelopeResponse(result.to_dict(), status_code=success_status)
    kind = result.kind or ErrorKind.UNAVAILABLE
    return EnvelopeResponse(result.to_dict(), status_code=STATUS_BY_KIND[kind])


class CallerIdentityMiddleware(BaseHTTPMiddleware):
    """
    Reads the caller identity from trusted headers.

    An upstream authenticator is expected to have verified the caller and to
    set both headers; this middleware only parses them.
    """

    EXEMPT_PATHS = _EXEMPT_PATHS

    def __init__(
        self,
        app: Any,
        id_header: str = "x-caller-id",
        role_header: str = "x-caller-role",
        exempt_paths: tuple[str, ...] = (),
    ) -> None:
        super().__init__(app)
        self.id_header = id_header
        self.role_header = role_header
        self.exempt_paths = self.EXEMPT_PATHS | set(exempt_paths)

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        caller_id = request.headers.get(self.id_header, "").strip()
        role = request.headers.get(self.role_header, "").strip()
        if not caller_id or not role:
            return _failure_response(
                ErrorKind.UNAUTHENTICATED,
                f"Headers {self.id_header} and {self.role_header} are required",
            )
        try:
            identity = Identity(id=caller_id, role=role)
        except ValueError as exc:
            logger.info("Rejected caller %r: %s", caller_id, exc)
            return _failure_response(ErrorKind.UNAUTHENTICATED, str(exc))

        token = set_identity(identity)
        try:
            return await call_next(request)
        finally:
            reset_identity(token)


async def _read_json(request: Request, *, required: bool = True) -> Any:
    body = await request.body()
    if not body.strip():
        if required:
            raise ValueError("Request body must be a JSON object")
        return {}
    try:
        return json.loads(body)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Malformed JSON body: {exc.msg}") from exc


async def _call(func: Callable[..., Result[Any]], *args: Any) -> Result[Any]:
    return await asyncio.to_thread(func, *args)


def _family_routes(engine: WorkflowEngine) -> list[Route]:
    base = f"/api/{engine.family.route}"

    async def list_records(request: Request) -> Response:
        filters = {
            key: value
            for key, value in (
                ("status", request.query_params.get("status")),
                ("counterpart_id", request.query_params.get("counterpart_id")),
            )
            if value
        }
        return result_response(await _call(engine.list, get_identity(), filters))

    async def create_record(request: Request) -> Response:
        try:
            payload = await _read_json(request)
        except ValueError as exc:
            return _failure_response(ErrorKind.VALIDATION_ERROR, str(exc))
        result = await _call(engine.create, get_identity(), payload)
        return result_response(result, success_status=201)

    async def get_record(request: Request) -> Response:
        record_id = request.path_params["record_id"]
        return result_response(await _call(engine.get, get_identity(), record_id))

    async def update_record(request: Request) -> Response:
        try:
            payload = await _read_json(request)
        except ValueError as exc:
            return _failure_response(ErrorKind.VALIDATION_ERROR, str(exc))
        record_id = request.path_params["record_id"]
        return result_response(
            await _call(engine.update, get_identity(), record_id, payload)
        )

    def decision_endpoint(action: DecisionAction) -> Callable[[Request], Any]:
        async def decide_record(request: Request) -> Response:
            try:
                body = await _read_json(request, required=False)
            except ValueError as exc:
                return _failure_response(ErrorKind.VALIDATION_ERROR, str(exc))
            note = body.get("note") if isinstance(body, dict) else None
            if note is not None and not isinstance(note, str):
                return _failure_response(ErrorKind.VALIDATION_ERROR, "note must be a string")
            record_id = request.path_params["record_id"]
            return result_response(
                await _call(engine.decide, get_identity(), record_id, action, note)
            )

        return decide_record

    async def assign_record(request: Request) -> Response:
        try:
            payload = await _read_json(request)
        except ValueError as exc:
            return _failure_response(ErrorKind.VALIDATION_ERROR, str(exc))
        record_id = request.path_params["record_id"]
        return result_response(
            await _call(engine.assign, get_identity(), record_id, payload)
        )

    async def delete_record(request: Request) -> Response:
        record_id = request.path_params["record_id"]
        return result_response(await _call(engine.delete, get_identity(), record_id))

    # Booking decisions are also sent as PUT by the web UI.
    decision_methods = ["POST"] if engine.family is SERVICE_REQUESTS else ["POST", "PUT"]

    return [
        Route(base, endpoint=list_records, methods=["GET"]),
        Route(base, endpoint=create_record, methods=["POST"]),
        Route(f"{base}/{{record_id}}", endpoint=get_record, methods=["GET"]),
        Route(f"{base}/{{record_id}}", endpoint=update_record, methods=["PUT"]),
        Route(f"{base}/{{record_id}}", endpoint=delete_record, methods=["DELETE"]),
        Route(
            f"{base}/{{record_id}}/accept",
            endpoint=decision_endpoint(DecisionAction.ACCEPT),
            methods=decision_methods,
        ),
        Route(
            f"{base}/{{record_id}}/decline",
            endpoint=decision_endpoint(DecisionAction.DECLINE),
            methods=decision_methods,
        ),
        Route(f"{base}/{{record_id}}/assign", endpoint=assign_record, methods=["PUT"]),
    ]


def _owner_view_routes(context: AppContext) -> list[Route]:
    def resolve(request: Request) -> WorkflowEngine | None:
        family = OWNER_VIEW_SEGMENTS.get(request.path_params["kind"])
        return context.engine_for(family.key) if family is not None else None

    async def list_owner_bookings(request: Request) -> Response:
        engine = resolve(request)
        if engine is None:
            return _failure_response(ErrorKind.NOT_FOUND, "Unknown booking kind")
        return result_response(
            await _call(engine.list_for_vessel_owner, get_identity())
        )

    async def get_owner_booking(request: Request) -> Response:
        engine = resolve(request)
        if engine is None:
            return _failure_response(ErrorKind.NOT_FOUND, "Unknown booking kind")
        record_id = request.path_params["record_id"]
        return result_response(
            await _call(engine.get_for_vessel_owner, get_identity(), record_id)
        )

    return [
        Route("/api/owner-bookings/{kind}", endpoint=list_owner_bookings, methods=["GET"]),
        Route(
            "/api/owner-bookings/{kind}/{record_id}",
            endpoint=get_owner_booking,
            methods=["GET"],
        ),
    ]


def create_http_app(context: AppContext | None = None) -> Starlette:
    """Create the HTTP application; uses the process-wide context by default."""
    context = context or get_app_context()
    settings = context.settings

    async def health_handler(request: Request) -> Response:
        return JSONResponse({"status": "healthy"})

    routes = [Route("/health", endpoint=health_handler, methods=["GET"])]
    routes.extend(_owner_view_routes(context))
    for key in FAMILIES:
        routes.extend(_family_routes(context.engine_for(key)))

    middleware = [
        Middleware(
            CallerIdentityMiddleware,
            id_header=settings.server.identity_id_header,
            role_header=settings.server.identity_role_header,
        ),
    ]

    @asynccontextmanager
    async def lifespan(app: Starlette):
        logger.info(
            "Starting marine workflow HTTP server (storage=%s)", settings.storage.backend
        )
        try:
            yield
        finally:
            logger.info("Stopping marine workflow HTTP server...")

    app = Starlette(routes=routes, middleware=middleware, lifespan=lifespan)
    app.state.context = context
    return app
