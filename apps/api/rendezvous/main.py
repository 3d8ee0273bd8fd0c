"""FastAPI application for the two-party signaling server."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, Response
from fastapi.staticfiles import StaticFiles

from .core.config import Settings, get_settings
from .routers import meta, signaling
from .services.signaling import Hub

logger = logging.getLogger(__name__)

HTML_PAGE = """<!DOCTYPE html>
<html lang=\"en\">
<head>
    <meta charset=\"UTF-8\" />
    <title>Rendezvous Signaling</title>
</head>
<body>
    <h1>Rendezvous signaling server</h1>
    <p>Connect a WebSocket to <code>/ws</code> and send a <code>join</code> message with a room and session id.</p>
</body>
</html>
"""


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application with its own hub."""

    settings = settings or get_settings()
    hub = Hub(grace_period=settings.grace_period_seconds)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        await hub.shutdown()

    app = FastAPI(title="Rendezvous Signaling API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.hub = hub

    if settings.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_allow_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(meta.router, prefix="/api")
    app.include_router(signaling.router)

    if settings.static_dir:
        # Mounted last so the API and WebSocket routes take precedence.
        app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
    else:
        @app.get("/", response_class=HTMLResponse, tags=["meta"])
        async def index() -> HTMLResponse:
            """Serve a placeholder page when no asset directory is configured."""

            return HTMLResponse(content=HTML_PAGE)

        @app.head("/", tags=["meta"])
        async def index_head() -> Response:
            """Fast health checks issue HEAD /; answer with 200 to avoid noisy 405s."""

            return Response(status_code=200)

    return app


def serve() -> None:
    """Run the signaling server on the configured address."""

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    host, port = settings.listen_address()

    options: dict[str, str] = {}
    if settings.tls_enabled:
        options["ssl_certfile"] = settings.tls_cert
        options["ssl_keyfile"] = settings.tls_key
        logger.info("Signaling server listening with TLS on %s:%d", host, port)
    else:
        logger.info("Signaling server listening on %s:%d", host, port)

    uvicorn.run(create_app(settings), host=host, port=port, log_level=settings.log_level.lower(), **options)


app = create_app()


if __name__ == "__main__":
    serve()
