# backend/otohub/main.py
from contextlib import asynccontextmanager
from typing import Optional
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from otohub.api.v1.router import api_router, build_route_policies
from otohub.core.config import Settings, settings as default_settings
from otohub.core.errors import Conflict, OtohubError
from otohub.core.hooks import PostCommitHooks
from otohub.core.logging import logger, setup_logging
from otohub.db.database import Database
from otohub.middleware.rate_limit import CounterStore, RateLimiter, build_counter_store, rate_limit_middleware
from otohub.services.container import build_services
from otohub.services.plans import seed_default_plans


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    hooks: Optional[PostCommitHooks] = None,
    counter_store: Optional[CounterStore] = None,
) -> FastAPI:
    """
    Build the API application.

    The database handle, services and rate-limit store are constructed here
    and attached to ``app.state``; nothing is read from module globals at
    request time. Run with ``uvicorn --factory otohub.main:create_app``.
    """
    settings = settings or default_settings
    setup_logging(settings.LOG_LEVEL)
    database = database or Database.from_settings(settings)
    if counter_store is None:
        counter_store = build_counter_store(settings.REDIS_URL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info("Starting Otohub API")
        await database.create_all()
        await seed_default_plans(database)

        yield

        # Shutdown
        logger.info("Shutting down Otohub API")
        await counter_store.close()
        await database.dispose()

    app = FastAPI(
        title=f"{settings.PROJECT_NAME} API",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url=("/api/docs" if settings.ENVIRONMENT == "development" else None),
        redoc_url=("/api/redoc" if settings.ENVIRONMENT == "development" else None),
        lifespan=lifespan,
    )

    policies = build_route_policies(settings.API_V1_STR)
    app.state.settings = settings
    app.state.services = build_services(settings, database, policies, hooks=hooks)

    # CORS Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.RATE_LIMIT_ENABLED:
        limiter = RateLimiter(counter_store, limit=settings.RATE_LIMIT_PER_MINUTE, window=60)
        app.middleware("http")(rate_limit_middleware(limiter))

    # Request timing middleware
    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        request.state.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        start_time = time.time()
        response = await call_next(request)
        response.headers["X-Process-Time"] = str(time.time() - start_time)
        response.headers["X-Request-ID"] = request.state.request_id
        return response

    # Include routers
    app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
        }

    @app.exception_handler(OtohubError)
    async def otohub_exception_handler(request: Request, exc: OtohubError):
        """Render enforcement rejections with their stable error code"""
        context = getattr(request.state, "context", None)
        logger.warning(
            f"{request.method} {request.url.path} rejected: {exc.code}",
            extra={
                "request_id": getattr(request.state, "request_id", None),
                "tenant_id": getattr(context, "tenant_id", None),
            },
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(path=request.url.path, include_details=settings.ENVIRONMENT != "production"),
        )

    @app.exception_handler(IntegrityError)
    async def integrity_exception_handler(request: Request, exc: IntegrityError):
        logger.warning(f"Integrity error on {request.method} {request.url.path}")
        conflict = Conflict()
        return JSONResponse(status_code=conflict.status_code, content=conflict.to_dict(path=request.url.path))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler"""
        logger.exception("Unhandled exception while handling request", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"statusCode": 500, "error": "Internal Server Error", "message": "Internal server error", "code": "INTERNAL_ERROR"},
        )

    return app
