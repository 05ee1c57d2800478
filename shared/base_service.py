"""
FastAPI service skeleton shared by laundromatzat backend services.

Subclasses call ``super().__init__(name, port)``, register their routes and
override ``start``/``stop``/``_check_dependencies`` as needed.
"""

import time
from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from shared.config import ServiceConfig, get_config
from shared.errors import ErrorResponse, PortfolioException
from shared.logging import clear_context, configure_logging, get_logger, get_request_id, set_request_id
from shared.metrics import get_metrics_collector

SERVICE_VERSION = "1.0.0"


def _route_label(request: Request) -> str:
    """Route template (``/api/links/{link_id}``) so ids do not explode label cardinality."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class BaseService:
    """Common app wiring: CORS, request ids, metrics, health and error handlers."""

    def __init__(self, service_name: str, port: int, config: Optional[ServiceConfig] = None):
        self.service_name = service_name
        self.port = port
        self.config = config or get_config(service_name, port)

        configure_logging(service_name, self.config.log_level, json_logs=self.config.log_json)
        self.logger = get_logger(service_name)
        self.metrics = get_metrics_collector(service_name)
        self._start_time = time.time()

        self.app = self._create_app()
        self._setup_middleware()
        self._setup_routes()
        self._setup_error_handlers()

    def _create_app(self) -> FastAPI:
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            await self.start()
            try:
                yield
            finally:
                await self.stop()

        local = self.config.env == "local"
        return FastAPI(
            title=f"{self.service_name.title()} Service",
            description=f"laundromatzat.com - {self.service_name.title()} Service",
            version=SERVICE_VERSION,
            docs_url="/docs" if local else None,
            redoc_url="/redoc" if local else None,
            lifespan=lifespan,
        )

    def _setup_middleware(self):
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=self.config.allowed_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
            expose_headers=["X-Request-ID"],
        )

        @self.app.middleware("http")
        async def request_context(request: Request, call_next):
            """Tag the request with an id, then time, count and log it."""
            started = time.perf_counter()
            request_id = set_request_id(request.headers.get("X-Request-ID"))

            try:
                response = await call_next(request)
            finally:
                clear_context()

            duration = time.perf_counter() - started
            endpoint = _route_label(request)
            self.metrics.record_http_request(request.method, endpoint, response.status_code, duration)
            self.logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2),
                request_id=request_id,
            )

            response.headers["X-Request-ID"] = request_id
            return response

    def _setup_routes(self):
        @self.app.get("/health")
        async def health_check():
            """Service and dependency health."""
            try:
                dependencies = await self._check_dependencies()
            except Exception as e:
                self.logger.error("Health check failed", error=str(e))
                self.metrics.record_health_check("error")
                return JSONResponse(
                    status_code=503,
                    content={"service": self.service_name, "status": "error", "error": str(e)},
                )

            status = "ok" if all(v == "ok" for v in dependencies.values()) else "degraded"
            self.metrics.record_health_check(status)
            return {
                "service": self.service_name,
                "status": status,
                "uptime_seconds": round(time.time() - self._start_time, 3),
                "dependencies": dependencies,
                "version": SERVICE_VERSION,
                "commit": self.config.git_sha,
            }

        @self.app.get("/metrics")
        async def metrics_endpoint():
            return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    def _setup_error_handlers(self):
        @self.app.exception_handler(PortfolioException)
        async def portfolio_exception_handler(request: Request, exc: PortfolioException):
            log = self.logger.warning if exc.status_code < 500 else self.logger.error
            log("Request failed", code=exc.code, message=exc.message, details=exc.details, path=request.url.path)
            self.metrics.record_error(exc.code)
            return JSONResponse(status_code=exc.status_code, content=exc.to_response().model_dump())

        @self.app.exception_handler(RequestValidationError)
        async def validation_exception_handler(request: Request, exc: RequestValidationError):
            self.metrics.record_error("VALIDATION_ERROR")
            body = ErrorResponse(
                request_id=get_request_id(),
                code="VALIDATION_ERROR",
                message="Request validation failed",
                details={"errors": [
                    {"loc": list(err.get("loc", ())), "msg": err.get("msg")}
                    for err in exc.errors()
                ]},
            )
            return JSONResponse(status_code=400, content=body.model_dump())

        @self.app.exception_handler(Exception)
        async def unhandled_exception_handler(request: Request, exc: Exception):
            self.logger.error("Unhandled exception", path=request.url.path, error=str(exc), exc_info=exc)
            self.metrics.record_error("INTERNAL_ERROR")
            body = ErrorResponse(request_id=get_request_id(), code="INTERNAL_ERROR", message="Internal server error")
            return JSONResponse(status_code=500, content=body.model_dump())

    async def start(self):
        """Start service components. Override in subclasses."""

    async def stop(self):
        """Stop service components. Override in subclasses."""

    async def _check_dependencies(self) -> Dict[str, str]:
        """Map of dependency name to ``ok``/``error``. Override in subclasses."""
        return {}

    def run(self):
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower(),
        )
