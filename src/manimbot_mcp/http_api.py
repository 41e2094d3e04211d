"""JSON HTTP routes served alongside the MCP endpoint in http transport.

Callers identify themselves with the ``X-User-ID`` header carrying the
external ID they registered with.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable

from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from . import service
from .errors import (
    ChatNotFoundError,
    StorageError,
    UnauthorizedError,
    UserConflictError,
    WorkflowFailedError,
)
from .models.chat import CreateUserRequest, GenerateRequest
from .persistence import get_store

logger = logging.getLogger(__name__)

USER_HEADER = "X-User-ID"

Handler = Callable[[Request], Awaitable[Response]]


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status)


def _error_response(exc: Exception) -> JSONResponse:
    if isinstance(exc, UnauthorizedError):
        return _error(401, str(exc))
    if isinstance(exc, ChatNotFoundError):
        return _error(404, "chat not found")
    if isinstance(exc, WorkflowFailedError):
        return _error(500, str(exc))
    if isinstance(exc, StorageError):
        return _error(500, "failed to upload video")
    if isinstance(exc, UserConflictError):
        return _error(500, "failed to create user")
    logger.exception("Unhandled error in HTTP handler")
    return _error(500, "internal error")


async def _read_json(request: Request) -> dict:
    try:
        body = await request.json()
    except json.JSONDecodeError as exc:
        raise ValueError("malformed JSON body") from exc
    if not isinstance(body, dict):
        raise ValueError("JSON body must be an object")
    return body


async def health(request: Request) -> Response:
    return JSONResponse({"message": "manimbot is running"})


async def generate(request: Request) -> Response:
    try:
        payload = GenerateRequest.model_validate(await _read_json(request))
    except (ValueError, ValidationError):
        return _error(400, "invalid request")
    try:
        response = await service.generate_animation(
            get_store(),
            request.headers.get(USER_HEADER),
            payload.prompt,
            payload.chat_id,
        )
    except Exception as exc:
        return _error_response(exc)
    return JSONResponse(response.model_dump(mode="json"))


async def list_chats(request: Request) -> Response:
    try:
        chats = service.list_chats(get_store(), request.headers.get(USER_HEADER))
    except Exception as exc:
        return _error_response(exc)
    return JSONResponse([c.model_dump(mode="json") for c in chats])


async def chat_detail(request: Request) -> Response:
    chat_id = request.path_params["chat_id"]
    try:
        detail = service.get_chat_detail(get_store(), request.headers.get(USER_HEADER), chat_id)
    except Exception as exc:
        return _error_response(exc)
    return JSONResponse(detail.model_dump(mode="json"))


async def delete_chat(request: Request) -> Response:
    chat_id = request.path_params["chat_id"]
    try:
        service.delete_chat(get_store(), request.headers.get(USER_HEADER), chat_id)
    except Exception as exc:
        return _error_response(exc)
    return JSONResponse({"message": "chat deleted successfully"})


async def create_user(request: Request) -> Response:
    try:
        payload = CreateUserRequest.model_validate(await _read_json(request))
    except (ValueError, ValidationError):
        return _error(400, "invalid request")
    try:
        user = service.register_user(get_store(), payload.clerk_id, payload.email, payload.full_name)
    except Exception as exc:
        return _error_response(exc)
    return JSONResponse(user.model_dump(mode="json"))


# (path, methods, handler); registered on the FastMCP app as custom routes.
ENDPOINTS: list[tuple[str, list[str], Handler]] = [
    ("/", ["GET"], health),
    ("/api/generate", ["POST"], generate),
    ("/api/chats", ["GET"], list_chats),
    ("/api/chats/{chat_id}", ["GET"], chat_detail),
    ("/api/chats/{chat_id}", ["DELETE"], delete_chat),
    ("/api/users", ["POST"], create_user),
]


def build_app() -> Starlette:
    """Standalone ASGI app exposing only the JSON routes."""
    return Starlette(routes=[Route(path, handler, methods=methods) for path, methods, handler in ENDPOINTS])
