"""Main FastMCP server: mounts all sub-servers and the JSON routes."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastmcp import FastMCP

from . import tracing
from .client import GeminiClient
from .config import get_config
from .http_api import ENDPOINTS
from .persistence import close_store
from .tools.animation import animation_server
from .tools.chats import chats_server

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(server: FastMCP):
    """Startup/shutdown hook: tracing, shared Gemini clients and the chat store."""
    tracing.setup()
    yield {}
    close_store()
    closed = await GeminiClient.close_all()
    logger.info("Lifespan shutdown: closed %d client(s)", closed)
    tracing.shutdown()


app = FastMCP(
    "manimbot",
    instructions=(
        "Explanatory math animations: Gemini writes Manim scenes, the server "
        "renders, validates and publishes them, and keeps per-user chat history."
    ),
    lifespan=_lifespan,
)

app.mount(animation_server)
app.mount(chats_server)

for _path, _methods, _handler in ENDPOINTS:
    app.custom_route(_path, methods=_methods)(_handler)


def main() -> None:
    """Entry-point for ``manimbot-mcp`` console script."""
    cfg = get_config()
    if cfg.transport == "http":
        app.run(transport="http", host=cfg.http_host, port=cfg.http_port)
    else:
        app.run()


if __name__ == "__main__":
    main()
