"""Standalone server: the documentation app plus a small demo API.

Run ``rest-api-builder`` (or ``python -m rest_api_builder.server``). The
documentation is mounted at the configured path, the demo routes give the
request tester something to call.
"""

import contextlib
import logging
import os
import sys
import time
from collections.abc import AsyncIterator
from datetime import datetime, timezone

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Mount, Route

from .config import BuilderConfig
from .http_server import PROCESS_STARTED, create_app

logging.basicConfig(stream=sys.stderr, level=logging.INFO, format='[%(levelname)s] %(message)s')

DEMO_USERS = [
    {"id": 1, "name": "John Doe", "email": "john@example.com"},
    {"id": 2, "name": "Jane Smith", "email": "jane@example.com"},
]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def demo_handler(request: Request) -> JSONResponse:
    """Greeting route for trying the tester"""
    return JSONResponse({
        "message": "Hello from demo API!",
        "timestamp": _now(),
        "path": request.url.path,
    })


async def list_users_handler(request: Request) -> JSONResponse:
    return JSONResponse({"users": DEMO_USERS, "total": len(DEMO_USERS), "page": 1})


async def create_user_handler(request: Request) -> JSONResponse:
    try:
        body = await request.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    return JSONResponse({
        "id": len(DEMO_USERS) + 1,
        "name": body.get("name"),
        "email": body.get("email"),
        "createdAt": _now(),
    }, status_code=201)


async def get_user_handler(request: Request) -> JSONResponse:
    user_id = request.path_params["id"]
    for user in DEMO_USERS:
        if user["id"] == user_id:
            return JSONResponse(user)
    return JSONResponse({"error": "User not found"}, status_code=404)


async def health_handler(request: Request) -> JSONResponse:
    return JSONResponse({
        "status": "healthy",
        "timestamp": _now(),
        "uptime": time.monotonic() - PROCESS_STARTED,
    })


def mount_path(config: BuilderConfig) -> str:
    """Normalized mount path, ``""`` for the site root"""
    stripped = (config.path or "").strip("/")
    return f"/{stripped}" if stripped else ""


def build_app(config: BuilderConfig, demo: bool = True) -> Starlette:
    """Host application with the documentation mounted at ``config.path``"""
    docs_path = mount_path(config)

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        logging.info("[RestApiBuilder] Available endpoints:")
        logging.info(f"[RestApiBuilder]   - GET {docs_path or '/'} (Documentation UI)")
        logging.info(f"[RestApiBuilder]   - GET {docs_path}/api/structure (Endpoint tree)")
        if demo:
            logging.info("[RestApiBuilder]   - GET /api/demo, /api/users (Demo API)")
        try:
            yield
        finally:
            logging.info("[RestApiBuilder] Server shutting down...")

    routes = []
    if demo:
        routes += [
            Route("/api/demo", demo_handler, methods=["GET"]),
            Route("/api/users", list_users_handler, methods=["GET"]),
            Route("/api/users", create_user_handler, methods=["POST"]),
            Route("/api/users/{id:int}", get_user_handler, methods=["GET"]),
            Route("/health", health_handler, methods=["GET"]),
        ]
    routes.append(Mount(docs_path, app=create_app(config)))

    return Starlette(routes=routes, lifespan=lifespan)


def main() -> None:
    """Main function to start the documentation server"""
    port = int(os.getenv("PORT", 3000))
    host = os.getenv("HOST", "0.0.0.0")
    demo = os.getenv("REST_API_BUILDER_DEMO", "1").lower() not in ("0", "false", "no", "off")

    config = BuilderConfig.from_env()
    app = build_app(config, demo=demo)
    logging.info(f"[RestApiBuilder] Documentation at http://{host}:{port}{mount_path(config) or '/'}")

    import uvicorn
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()

__all__ = [
    "build_app",
    "mount_path",
    "main",
]
