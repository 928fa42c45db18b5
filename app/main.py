"""TaskHub API - Main Application Module.

This module initializes the FastAPI application with configuration,
middleware, exception handlers, routing and lifecycle management for the
collaborative task management backend.
"""

import logging
import re
import sys
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

# Add the project root to Python path if running directly
if __name__ == "__main__":
    project_root = Path(__file__).parent.parent
    sys.path.insert(0, str(project_root))

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.logging import setup_logging
from app.database import AsyncSessionLocal, engine
from app.realtime.events import EventBus
from app.realtime.manager import ConnectionManager
from app.services.storage_service import PUBLIC_PREFIX, StorageService
from models import Base, ModelValidationError
from models.base import utcnow

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Manage application lifecycle events."""
    logger.info(f"🚀 Starting {settings.app_name}...")

    # Development mode: Auto-create tables if they don't exist
    # Other environments: Use Alembic migrations (alembic upgrade head)
    if settings.is_development:
        logger.info("📝 Development mode: Creating/updating database tables...")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("✅ Database tables created/verified")
    else:
        logger.info("🏭 Use 'alembic upgrade head' to manage the database schema")

    yield

    logger.info(f"🛑 Shutting down {settings.app_name}...")
    await engine.dispose()
    logger.info("✅ Database connections closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    setup_logging()

    app = FastAPI(
        title=settings.app_name,
        description="Collaborative task management: tasks, comments, teams, shared lists and analytics",
        version=settings.version,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # Realtime registry; the connection manager forwards every event to its rooms
    app.state.event_bus = EventBus()
    app.state.connections = ConnectionManager()
    app.state.connections.attach(app.state.event_bus)

    setup_middleware(app)
    setup_exception_handlers(app)
    setup_routers(app)

    upload_dir = StorageService().ensure_upload_dir()
    app.mount(PUBLIC_PREFIX, StaticFiles(directory=str(upload_dir)), name="uploads")

    return app


def setup_middleware(app: FastAPI):
    """Configure application middleware."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request ID middleware
    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def error_response(
    request: Request,
    status_code: int,
    message: str,
    error_code: str = "HTTP_ERROR",
    details=None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "error",
            "message": message,
            "error_code": error_code,
            "details": details,
            "timestamp": utcnow().isoformat(),
            "request_id": getattr(request.state, "request_id", None),
        },
    )


_DUPLICATE_PATTERNS = (
    re.compile(r"UNIQUE constraint failed: \w+\.(\w+)"),
    re.compile(r"Key \((\w+)\)="),
)


def duplicate_field(exc: IntegrityError) -> str:
    """Best guess at the column behind a unique violation."""
    text_ = str(exc.orig)
    for pattern in _DUPLICATE_PATTERNS:
        match = pattern.search(text_)
        if match:
            return match.group(1)
    return "a unique field"


def setup_exception_handlers(app: FastAPI):
    """Configure global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Custom exceptions carry a structured detail
        if isinstance(exc.detail, dict) and "message" in exc.detail:
            return error_response(
                request,
                exc.status_code,
                exc.detail["message"],
                exc.detail.get("error_code", "HTTP_ERROR"),
                exc.detail.get("details"),
            )
        if exc.status_code == 404:
            return error_response(request, 404, "Route not found", "ROUTE_NOT_FOUND")
        message = str(exc.detail) if exc.detail else "An error occurred"
        return error_response(request, exc.status_code, message)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()

        # A malformed id in the path means the item cannot exist
        for error in errors:
            loc = error.get("loc", ())
            if loc and loc[0] == "path" and error.get("type") == "uuid_parsing":
                return error_response(
                    request, 404, f"No item found with id: {error.get('input')}", "NOT_FOUND"
                )

        details = []
        for error in errors:
            field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            details.append(
                {"field": field, "message": str(error.get("msg", "Validation error"))}
            )
        message = "; ".join(
            f"{d['field']}: {d['message']}" if d["field"] else d["message"] for d in details
        )
        return error_response(
            request, 400, f"Invalid input data. {message}", "VALIDATION_ERROR", details
        )

    @app.exception_handler(ModelValidationError)
    async def model_validation_handler(request: Request, exc: ModelValidationError):
        return error_response(
            request, 400, exc.message, "VALIDATION_ERROR", {"field": exc.field}
        )

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        field = duplicate_field(exc)
        logger.warning(f"⚠️ Integrity error on {field}")
        return error_response(
            request, 400, f"Duplicate value entered for {field}", "DUPLICATE_VALUE"
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"❌ Unhandled error on {request.method} {request.url.path}")
        return error_response(
            request, 500, "Something went wrong, please try again later", "INTERNAL_ERROR"
        )


def setup_routers(app: FastAPI):
    """Configure application routers."""
    from app.domains.activity.controller import router as activity_router
    from app.domains.analytics.controller import router as analytics_router
    from app.domains.comment.controller import router as comment_router
    from app.domains.shared_list.controller import router as shared_list_router
    from app.domains.task.controller import router as task_router
    from app.domains.team.controller import router as team_router
    from app.domains.user.controller import router as user_router
    from app.realtime.controller import router as realtime_router

    @app.get("/health")
    async def health_check():
        """Report database reachability."""
        db_status = "healthy"
        try:
            async with AsyncSessionLocal() as db:
                await db.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"❌ Health check database probe failed: {str(e)}")
            db_status = "unhealthy"

        return JSONResponse(
            status_code=200 if db_status == "healthy" else 503,
            content={
                "status": "healthy" if db_status == "healthy" else "degraded",
                "version": settings.version,
                "environment": settings.environment.value,
                "timestamp": utcnow().isoformat(),
                "services": {"database": db_status},
            },
        )

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.version,
            "api_prefix": settings.api_prefix,
            "docs_url": "/docs" if settings.is_development else None,
        }

    for router in (
        user_router,
        task_router,
        comment_router,
        team_router,
        shared_list_router,
        activity_router,
        analytics_router,
    ):
        app.include_router(router, prefix=settings.api_prefix)
    app.include_router(realtime_router)


# Create the application instance
app = create_app()


def main():
    """Entry point for running the application directly."""
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.value.lower(),
    )


if __name__ == "__main__":
    main()
