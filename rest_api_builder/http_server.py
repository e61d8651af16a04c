"""HTTP routes of the documentation app.

``create_app`` returns a Starlette application that can be mounted under
any path of a host application. All mutating routes go through the edit
access policy; store errors are turned into ``{"success": False,
"message": ...}`` responses and never escape the handler. Store and
structure calls run in Starlette's threadpool so a slow filesystem walk
does not hold up test requests in flight.
"""

import logging
import os
import time
from datetime import datetime, timezone
from typing import Optional

from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import FileResponse, JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from .access import request_can_edit
from .config import BuilderConfig
from .project import initialize_project
from .store import DocumentStore, StoreError, build_structure
from .tester import RequestTester

PROCESS_STARTED = time.monotonic()

DEFAULT_STATIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "static")
STATIC_EXTENSIONS = (".js", ".css", ".html", ".png", ".jpg", ".svg", ".ico")


class InvalidBody(Exception):
    """The request body is not a JSON object"""


async def _json_body(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError as e:
        raise InvalidBody("Request body must be valid JSON") from e
    if not isinstance(body, dict):
        raise InvalidBody("Request body must be a JSON object")
    return body


def _failure(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "message": message}, status_code=status_code)


def _store_failure(error: StoreError) -> JSONResponse:
    return _failure(str(error), error.status_code)


class RestApiBuilder:
    """Request handlers bound to one configuration, store and tester

    Args:
        config: Settings of this documentation instance
        store: Endpoint document store, defaults to one under ``config.data_dir``
        tester: Request tester used by ``/api/test-endpoint``
        static_dir: Directory holding the built UI
    """

    def __init__(
        self,
        config: BuilderConfig,
        store: Optional[DocumentStore] = None,
        tester: Optional[RequestTester] = None,
        static_dir: Optional[str] = None,
    ):
        self.config = config.load_runtime_overrides()
        self.store = store or DocumentStore(self.config.endpoints_dir)
        self.tester = tester or RequestTester()
        self.static_dir = os.path.abspath(static_dir or DEFAULT_STATIC_DIR)
        initialize_project(self.config, self.store)
        logging.info(f"[RestApiBuilder] Serving endpoints from {self.store.root}")

    def _forbidden(self, request: Request) -> Optional[JSONResponse]:
        if request_can_edit(request, self.config):
            return None
        logging.warning(f"[RestApiBuilder] Edit denied for host '{request.headers.get('host', '')}' on {request.method} {request.url.path}")
        return _failure("Edit access denied", 403)

    async def get_config(self, request: Request) -> JSONResponse:
        """Current configuration plus the caller's edit permission"""
        data = self.config.to_dict()
        data["canEdit"] = request_can_edit(request, self.config)
        data["mountPath"] = request.scope.get("root_path") or self.config.path
        return JSONResponse({"success": True, "data": data})

    async def update_config(self, request: Request) -> JSONResponse:
        """Apply and persist configuration changes (edit-gated)"""
        denied = self._forbidden(request)
        if denied:
            return denied
        try:
            body = await _json_body(request)
            updated = self.config.merged(body)
            await run_in_threadpool(updated.save_runtime_overrides)
        except InvalidBody as e:
            return _failure(str(e), 400)
        except StoreError as e:
            logging.error(f"[RestApiBuilder] Error saving config: {e}")
            return _failure("Failed to update config", 500)
        self.config = updated
        return JSONResponse({"success": True, "data": self.config.to_dict()})

    async def list_endpoints(self, request: Request) -> JSONResponse:
        """Flat list of every endpoint document"""
        try:
            endpoints = await run_in_threadpool(self.store.list_all)
        except StoreError as e:
            return _store_failure(e)
        return JSONResponse({"success": True, "data": endpoints})

    async def get_endpoint(self, request: Request) -> JSONResponse:
        """Single endpoint document by id"""
        try:
            endpoint = await run_in_threadpool(self.store.find_by_id, request.path_params["id"])
        except StoreError as e:
            return _store_failure(e)
        return JSONResponse({"success": True, "data": endpoint})

    async def create_endpoint(self, request: Request) -> JSONResponse:
        """Create an endpoint document from ``{folder?, filename, ...fields}`` (edit-gated)"""
        denied = self._forbidden(request)
        if denied:
            return denied
        try:
            body = await _json_body(request)
            folder = body.pop("folder", "") or ""
            filename = body.pop("filename", None)
            endpoint = await run_in_threadpool(self.store.create, folder, filename, body)
        except InvalidBody as e:
            return _failure(str(e), 400)
        except StoreError as e:
            logging.warning(f"[RestApiBuilder] Create endpoint failed: {e}")
            return _store_failure(e)
        return JSONResponse({"success": True, "data": endpoint}, status_code=201)

    async def update_endpoint(self, request: Request) -> JSONResponse:
        """Apply a partial document to an endpoint (edit-gated)"""
        denied = self._forbidden(request)
        if denied:
            return denied
        try:
            body = await _json_body(request)
            endpoint = await run_in_threadpool(self.store.update_by_id, request.path_params["id"], body)
        except InvalidBody as e:
            return _failure(str(e), 400)
        except StoreError as e:
            return _store_failure(e)
        return JSONResponse({"success": True, "data": endpoint})

    async def delete_endpoint(self, request: Request) -> JSONResponse:
        """Delete an endpoint document (edit-gated)"""
        denied = self._forbidden(request)
        if denied:
            return denied
        try:
            await run_in_threadpool(self.store.delete_by_id, request.path_params["id"])
        except StoreError as e:
            return _store_failure(e)
        return JSONResponse({"success": True, "message": "Endpoint deleted successfully"})

    async def create_folder(self, request: Request) -> JSONResponse:
        """Create a folder from ``{name, parent?}`` (edit-gated)"""
        denied = self._forbidden(request)
        if denied:
            return denied
        try:
            body = await _json_body(request)
            name = body.get("name")
            parent = body.get("parent") or ""
            path = await run_in_threadpool(self.store.create_folder, parent, name)
        except InvalidBody as e:
            return _failure(str(e), 400)
        except StoreError as e:
            return _store_failure(e)
        return JSONResponse(
            {"success": True, "data": {"name": name, "parent": parent, "path": path}},
            status_code=201,
        )

    async def get_structure(self, request: Request) -> JSONResponse:
        """Nested folder/endpoint tree"""
        structure = await run_in_threadpool(build_structure, self.store.root)
        return JSONResponse({"success": True, "data": structure})

    async def test_endpoint(self, request: Request) -> JSONResponse:
        """Forward a test request; always 200, outcome in ``success``"""
        try:
            body = await _json_body(request)
        except InvalidBody as e:
            return JSONResponse({"success": False, "message": "Request failed", "error": str(e)})
        result = await self.tester.send(
            body.get("url"),
            body.get("method"),
            headers=body.get("headers") or {},
            body=body.get("body"),
        )
        return JSONResponse(result)

    async def health(self, request: Request) -> JSONResponse:
        """Liveness probe"""
        return JSONResponse({
            "success": True,
            "message": "REST API Builder is running",
            "data": {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "uptime": time.monotonic() - PROCESS_STARTED,
                "config": {
                    "name": self.config.name,
                    "version": self.config.version,
                    "path": self.config.path,
                },
                "canEdit": request_can_edit(request, self.config),
            },
        })

    async def serve_ui(self, request: Request) -> Response:
        """Static UI files, falling back to ``index.html`` for client-side routes"""
        relative = request.path_params.get("path", "")
        candidate = os.path.normpath(os.path.join(self.static_dir, relative))
        inside = candidate.startswith(self.static_dir + os.sep)
        if relative and inside and os.path.isfile(candidate):
            return FileResponse(candidate)
        if relative.endswith(STATIC_EXTENSIONS):
            return PlainTextResponse("File not found", status_code=404)

        index = os.path.join(self.static_dir, "index.html")
        if not os.path.isfile(index):
            return PlainTextResponse("UI not built", status_code=404)
        return FileResponse(index)

    def routes(self) -> list:
        return [
            Route("/api/config", self.get_config, methods=["GET"]),
            Route("/api/config", self.update_config, methods=["PUT"]),
            Route("/api/endpoints", self.list_endpoints, methods=["GET"]),
            Route("/api/endpoints", self.create_endpoint, methods=["POST"]),
            Route("/api/endpoints/{id}", self.get_endpoint, methods=["GET"]),
            Route("/api/endpoints/{id}", self.update_endpoint, methods=["PUT"]),
            Route("/api/endpoints/{id}", self.delete_endpoint, methods=["DELETE"]),
            Route("/api/folders", self.create_folder, methods=["POST"]),
            Route("/api/structure", self.get_structure, methods=["GET"]),
            Route("/api/test-endpoint", self.test_endpoint, methods=["POST"]),
            Route("/health", self.health, methods=["GET"]),
            Route("/", self.serve_ui, methods=["GET"]),
            Route("/{path:path}", self.serve_ui, methods=["GET"]),
        ]


def create_app(
    config: Optional[BuilderConfig] = None,
    store: Optional[DocumentStore] = None,
    tester: Optional[RequestTester] = None,
    static_dir: Optional[str] = None,
    debug: bool = False,
) -> Starlette:
    """Create the documentation app

    Args:
        config: Settings, defaults to ``BuilderConfig()``
        store: Document store override
        tester: Request tester override
        static_dir: Directory holding the built UI
        debug: Starlette debug mode

    Returns:
        Starlette application to run directly or mount under ``config.path``
    """
    builder = RestApiBuilder(config or BuilderConfig(), store=store, tester=tester, static_dir=static_dir)
    app = Starlette(
        debug=debug,
        routes=builder.routes(),
        middleware=[
            Middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"]),
        ],
    )
    app.state.builder = builder
    return app


__all__ = [
    "RestApiBuilder",
    "create_app",
]
