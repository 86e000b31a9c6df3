"""
Instance Store: HTTP API
========================

Endpoints:
- POST /               -> store a document, body = identifier
- GET  /{identifier}   -> stored JSON, cacheable for seven days

Any other method on either path is 405 with the permitted method in Allow.
Every response carries an open CORS allow-origin header.

Usage:
    uvicorn instance_store.api.server:app
"""
import logging
import threading
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, Response

from ..config import InstanceStoreConfig
from ..contracts import Error, ErrorCode, StoreError
from ..observability import configure_logging
from ..pipeline import InstanceStoreEngine
from ..responses import CORS_HEADERS


logger = logging.getLogger(__name__)

ROOT_OTHER_METHODS = ["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE"]
OBJECT_OTHER_METHODS = ["POST", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE"]


# =============================================================================
# INFRASTRUCTURE SETUP
# =============================================================================

_engine_lock = threading.Lock()


def get_engine(app: FastAPI) -> InstanceStoreEngine:
    """
    Return the process-wide engine, building it on first use.

    Normally the lifespan builds it before traffic arrives; the lock keeps
    concurrent first requests from building two engines otherwise.
    """
    engine = app.state.engine
    if engine is not None:
        return engine
    with _engine_lock:
        if app.state.engine is None:
            config = app.state.config or InstanceStoreConfig.from_env()
            app.state.engine = InstanceStoreEngine.from_config(config)
            logger.info("Engine initialized lazily (policy=%s)", config.id_policy.value)
    return app.state.engine


def _text_response(message: str, status_code: int, headers: Optional[dict] = None) -> Response:
    return PlainTextResponse(
        message,
        status_code=status_code,
        headers={**dict(CORS_HEADERS), **(headers or {})}
    )


def _error_response(error: Error, headers: Optional[dict] = None) -> Response:
    return _text_response(error.message, error.http_status, headers)


def _method_not_allowed(allowed: str) -> Response:
    error = Error.create(
        ErrorCode.METHOD_NOT_ALLOWED,
        f"Method not allowed. Allowed methods: {allowed}"
    )
    return _error_response(error, {"Allow": allowed})


def create_app(
    config: Optional[InstanceStoreConfig] = None,
    engine: Optional[InstanceStoreEngine] = None
) -> FastAPI:
    """
    Build the application.

    `config` defaults to the environment at startup; a prebuilt `engine`
    skips construction entirely (used by tests).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = app.state.config or InstanceStoreConfig.from_env()
        app.state.config = cfg
        configure_logging(cfg.log_level)

        engine = get_engine(app)
        logger.info(
            "Instance store ready (policy=%s, backend=%s)",
            engine.deriver.policy.value, engine.store.name
        )

        yield

        logger.info("Shutting down instance store: %s", engine.stats.snapshot())
        await engine.close()
        app.state.engine = None

    app = FastAPI(
        title="Instance Store",
        version="0.1.0",
        description="Content-addressed instance storage with edge caching",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None
    )
    app.state.config = config
    app.state.engine = engine

    # Browser preflight; simple responses set the header themselves
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        logger.error("Durable store failure on %s %s: %s", request.method, request.url.path, exc)
        return _error_response(Error.create(ErrorCode.BACKEND_UNAVAILABLE, "Service unavailable"))

    # =========================================================================
    # ENDPOINTS
    # =========================================================================

    @app.post("/")
    async def put_instance(request: Request, background_tasks: BackgroundTasks):
        """Store a document and return its identifier."""
        engine = get_engine(request.app)
        raw_body = await request.body()
        outcome = await engine.ingest(raw_body, str(request.base_url), background_tasks)
        return _text_response(outcome.body, outcome.status)

    @app.api_route("/", methods=ROOT_OTHER_METHODS)
    async def root_not_allowed():
        return _method_not_allowed("POST")

    @app.get("/{identifier:path}")
    async def get_instance(identifier: str, request: Request, background_tasks: BackgroundTasks):
        """Serve a stored document by identifier."""
        engine = get_engine(request.app)
        outcome = await engine.retrieve(identifier, str(request.base_url), background_tasks)
        cached = outcome.response
        return Response(
            content=cached.body,
            status_code=cached.status,
            headers=dict(cached.headers)
        )

    @app.api_route("/{identifier:path}", methods=OBJECT_OTHER_METHODS)
    async def object_not_allowed(identifier: str):
        return _method_not_allowed("GET")

    return app


app = create_app()
