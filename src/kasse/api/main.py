from __future__ import annotations

import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from kasse.api.error_handling import register_exception_handlers
from kasse.api.middleware.request_id import RequestIDMiddleware
from kasse.api.routes.cash import router as cash_router
from kasse.api.routes.checkouts import router as checkouts_router
from kasse.api.routes.health import router as health_router
from kasse.api.routes.metrics import router as metrics_router
from kasse.api.runtime import CheckoutRuntime, build_runtime
from kasse.api.ws.manager import ConnectionManager
from kasse.api.ws.routes import router as ws_router
from kasse.infrastructure.config import Settings
from kasse.infrastructure.messaging.redis_event_listener import start_redis_fanout
from kasse.infrastructure.observability.logging_config import configure_logging
from kasse.infrastructure.observability.otel import configure_otel

logger = logging.getLogger("kasse.api.access")

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "path", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)


def _cors_allow_origins() -> list[str]:
    env = os.getenv("APP_ENV", "dev").lower()

    # Dev/test: the terminal UI may be served from anywhere
    if env in {"dev", "test"}:
        return ["*"]

    raw_value = os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:3000")
    return [origin.strip() for origin in raw_value.split(",") if origin.strip()]


ACCESS_LOG_SKIP_PATHS = frozenset({"/health/live", "/metrics"})


def _route_path(request: Request) -> str:
    # Route template keeps checkout ids out of metric labels.
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class AccessLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        except Exception:
            logger.exception(
                "request_error",
                extra={"method": request.method, "path": request.url.path},
            )
            raise
        finally:
            elapsed = time.perf_counter() - started
            path = _route_path(request)
            REQUEST_COUNT.labels(method=request.method, path=path, status_code=str(status_code)).inc()
            REQUEST_LATENCY.labels(method=request.method, path=path).observe(elapsed)
            if request.url.path not in ACCESS_LOG_SKIP_PATHS:
                logger.info(
                    "request_complete",
                    extra={
                        "method": request.method,
                        "path": path,
                        "status_code": status_code,
                        "duration_ms": round(elapsed * 1000, 2),
                    },
                )


@asynccontextmanager
async def lifespan(app: FastAPI):
    runtime: CheckoutRuntime = app.state.runtime
    fanout_task = asyncio.create_task(start_redis_fanout(app.state, runtime.settings.redis_url))
    app.state.redis_fanout_task = fanout_task
    try:
        yield
    finally:
        fanout_task.cancel()
        with suppress(asyncio.CancelledError):
            await fanout_task
        close_publisher = getattr(runtime.publisher, "aclose", None)
        if close_publisher is not None:
            await close_publisher()
        if runtime.backend is not None:
            await runtime.backend.aclose()


def create_app(runtime: CheckoutRuntime | None = None) -> FastAPI:
    configure_logging()

    app = FastAPI(title="Kasse Checkout", version="0.1.0", lifespan=lifespan)
    app.state.ws_manager = ConnectionManager()
    app.state.runtime = runtime or build_runtime(Settings.from_env(), app.state.ws_manager)

    register_exception_handlers(app)
    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(cash_router)
    app.include_router(checkouts_router)
    app.include_router(ws_router)

    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_allow_origins(),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id"],
    )

    configure_otel(app)
    return app


app = create_app()
