"""FastAPI application factory and setup."""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.responses import JSONResponse

from src.circulation.api.http.app_data import ApplicationDependencies
from src.circulation.api.http.errors import (
    LendingRejected,
    lending_rejected_handler,
    validation_error_handler,
)
from src.circulation.api.http.routers import (
    borrowers_router,
    copies_router,
    health_router,
    history_router,
)
from src.circulation.api.utils.app_startup import configure_logging
from src.circulation.core.services import DbManageService, DbSessionService
from src.circulation.runtime.config import ConfigData
from src.circulation.runtime.context import get_config


def build_dependencies(config: ConfigData) -> ApplicationDependencies:
    """Create the process-wide collaborators from configuration."""
    database_service = DbSessionService(config)
    if config.database.auto_create:
        DbManageService(database_service.engine).create_all()
    return ApplicationDependencies(database_service=database_service, lending=config.lending)


async def log_requests(request: Request, call_next):
    # Correlation id, echoed back in X-Request-ID and in error envelopes
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    base_ctx = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "client_ip": request.client.host if request.client else "unknown",
    }

    start = time.perf_counter()
    with logger.contextualize(**base_ctx):
        try:
            logger.info("request.start")
            response = await call_next(request)
        except Exception as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=500,
                duration_ms=round(duration_ms, 1),
                error_type=type(exc).__name__,
            ).exception("request.error")
            return JSONResponse(
                status_code=500,
                content={
                    "error": "InternalError",
                    "detail": "Internal Server Error",
                    "request_id": request_id,
                },
                headers={"X-Request-ID": request_id},
            )

        duration_ms = (time.perf_counter() - start) * 1000
        logger.bind(
            status_code=response.status_code,
            duration_ms=round(duration_ms, 1),
        ).info("request.end")
        response.headers.setdefault("X-Request-ID", request_id)
        return response


def create_app(
    config: ConfigData | None = None,
    dependencies: ApplicationDependencies | None = None,
) -> FastAPI:
    """Build the HTTP application.

    When ``dependencies`` is given it is used as is; otherwise they are built
    from ``config`` (the active context's by default) at startup.
    """
    main_config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(main_config)
        owned = getattr(app.state, "app_dependencies", None) is None
        if owned:
            app.state.app_dependencies = build_dependencies(main_config)
        logger.info("Starting up application in {} environment", main_config.app.environment)
        try:
            yield
        finally:
            logger.info("Shutting down application")
            if owned:
                app.state.app_dependencies.database_service.dispose()
                app.state.app_dependencies = None

    production = main_config.app.environment == "production"
    app = FastAPI(
        title="Circulation",
        lifespan=lifespan,
        docs_url=None if production else "/docs",
        redoc_url=None if production else "/redoc",
    )
    app.state.app_dependencies = dependencies

    cors = main_config.app.cors
    if production and "*" in cors.origins:
        raise RuntimeError(
            "CORS misconfigured: cannot use '*' with allow_credentials=True in production"
        )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors.origins,
        allow_credentials=cors.allow_credentials,
        allow_methods=cors.allow_methods,
        allow_headers=cors.allow_headers,
    )
    app.middleware("http")(log_requests)

    app.add_exception_handler(LendingRejected, lending_rejected_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(health_router)
    app.include_router(copies_router)
    app.include_router(borrowers_router)
    app.include_router(history_router)
    return app


app = create_app()

__all__ = ["app", "build_dependencies", "create_app"]


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=get_config().app.host,
        port=get_config().app.port,
        access_log=False,  # Requests are logged by the middleware
    )
