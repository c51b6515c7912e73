"""FastAPI application factory and route setup for hostpages."""

import logging
import secrets
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse

from hostpages.auth import AccessPolicy
from hostpages.config import HostPagesConfig
from hostpages.errors import InternalError, RouterError
from hostpages.handler import RequestHandler
from hostpages.routing import RouteTable
from hostpages.storage import StorageBackend, create_storage_backend

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(config: HostPagesConfig, storage: StorageBackend | None = None) -> FastAPI:
    """Create and configure the hostpages FastAPI application.

    The route table and access policy are built here, once, from
    ``config``. The storage backend is either injected (tests, embedding)
    or created from ``config.storage``; the lifespan hook initializes it on
    startup and closes it on shutdown.

    Args:
        config: The loaded hostpages configuration.
        storage: Optional pre-built storage backend.

    Returns:
        A configured FastAPI application ready to run.
    """
    if storage is None:
        storage = create_storage_backend(config.storage)

    routes = RouteTable.from_config(config.routing)
    policy = AccessPolicy.from_config(config.auth, config.routing)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan hook: initialize and close the storage backend."""
        await storage.init()
        logger.info(
            "Storage backend initialized: %s (%d routes across %d hosts)",
            type(storage).__name__,
            len(routes),
            len(routes.hostnames),
        )

        yield

        await storage.close()
        logger.info("Storage backend closed")

    app = FastAPI(
        title="hostpages",
        version="0.1.0",
        lifespan=lifespan,
        openapi_url=None,
        docs_url=None,
        redoc_url=None,
    )
    app.state.config = config
    app.state.storage = storage
    app.state.handler = RequestHandler(routes, policy, storage)

    _register_exception_handlers(app)
    _register_middleware(app)
    _setup_routes(app)

    return app


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


def _error_response(exc: RouterError) -> Response:
    return PlainTextResponse(exc.message, status_code=exc.http_status, headers=exc.headers)


def _register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the FastAPI app."""

    @app.exception_handler(RouterError)
    async def router_error_handler(request: Request, exc: RouterError) -> Response:
        """Render RouterError exceptions as plain-text responses."""
        return _error_response(exc)

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> Response:
        """Catch unexpected exceptions and return InternalError."""
        logger.exception("Unhandled exception in request handler")
        return _error_response(InternalError())


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


def _register_middleware(app: FastAPI) -> None:
    """Register middleware on the FastAPI app."""

    @app.middleware("http")
    async def common_headers_middleware(request: Request, call_next) -> Response:
        """Add x-request-id and Server headers and log one line per request.

        Generates x-request-id (16-char uppercase hex) and stores it on
        request.state so exception handlers can use it.
        """
        request_id = secrets.token_hex(8).upper()
        request.state.request_id = request_id
        start = time.monotonic()

        response = await call_next(request)

        duration_ms = round((time.monotonic() - start) * 1000, 2)
        storage_key = getattr(request.state, "storage_key", None)

        response.headers["x-request-id"] = request_id
        response.headers["Server"] = "hostpages"

        logger.info(
            "%s %s%s -> %s %d %.2fms",
            request.method,
            request.url.hostname or "-",
            request.url.path,
            storage_key or "-",
            response.status_code,
            duration_ms,
            extra={
                "method": request.method,
                "host": request.url.hostname,
                "path": request.url.path,
                "key": storage_key,
                "status": response.status_code,
                "duration_ms": duration_ms,
                "request_id": request_id,
            },
        )

        return response


# ---------------------------------------------------------------------------
# Route handlers
# ---------------------------------------------------------------------------


def _setup_routes(app: FastAPI) -> None:
    """Register the catch-all route.

    Every method and every path goes to RequestHandler.handle(); the
    handler owns the 404/405 decisions, so the route is registered without
    a method list.
    """

    async def handle_request(request: Request) -> Response:
        handler: RequestHandler = request.app.state.handler
        return await handler.handle(request)

    app.add_route("/{path:path}", handle_request, include_in_schema=False)
