"""LearnHub API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from learnhub.auth.router import router as auth_router
from learnhub.auth.service import AuthService
from learnhub.config import get_settings
from learnhub.core.context import get_request_id
from learnhub.core.database import init_async_cassandra, shutdown_async_cassandra
from learnhub.core.logging import configure_structlog, get_logger
from learnhub.core.middleware import RequestContextMiddleware
from learnhub.core.redis import init_redis, shutdown_redis
from learnhub.courses.router import router as courses_router
from learnhub.courses.service import CourseService
from learnhub.enrollments.router import router as enrollments_router
from learnhub.enrollments.service import EnrollmentService
from learnhub.health import router as health_router
from learnhub.resources.router import admin_router as resources_admin_router
from learnhub.resources.router import router as resources_router
from learnhub.resources.service import ResourceService
from learnhub.seed import seed_demo_data
from learnhub.stats.router import router as stats_router
from learnhub.stats.service import StatsService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


# Application state for dependency injection
class AppState:
    """Application state container."""

    cassandra_session: Any = None
    auth_service: AuthService | None = None
    course_service: CourseService | None = None
    resource_service: ResourceService | None = None
    enrollment_service: EnrollmentService | None = None
    stats_service: StatsService | None = None


app_state = AppState()


def get_auth_service() -> AuthService:
    """Get AuthService instance from app state."""
    if app_state.auth_service is None:
        msg = "AuthService not initialized"
        raise RuntimeError(msg)
    return app_state.auth_service


def get_course_service() -> CourseService:
    """Get CourseService instance from app state."""
    if app_state.course_service is None:
        msg = "CourseService not initialized"
        raise RuntimeError(msg)
    return app_state.course_service


def get_resource_service() -> ResourceService:
    """Get ResourceService instance from app state."""
    if app_state.resource_service is None:
        msg = "ResourceService not initialized"
        raise RuntimeError(msg)
    return app_state.resource_service


def get_enrollment_service() -> EnrollmentService:
    """Get EnrollmentService instance from app state."""
    if app_state.enrollment_service is None:
        msg = "EnrollmentService not initialized"
        raise RuntimeError(msg)
    return app_state.enrollment_service


def get_stats_service() -> StatsService:
    """Get StatsService instance from app state."""
    if app_state.stats_service is None:
        msg = "StatsService not initialized"
        raise RuntimeError(msg)
    return app_state.stats_service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Initialize Redis (non-critical - app works without it)
    redis_client = None
    try:
        redis_client = await init_redis()
        logger.info("redis_initialized")
    except Exception as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - admin statistics are not cached",
        )

    # Initialize Cassandra (async)
    try:
        app_state.cassandra_session = await init_async_cassandra()
        logger.info("cassandra_initialized")

        keyspace = settings.cassandra_keyspace
        session = app_state.cassandra_session

        app_state.auth_service = AuthService(session=session, keyspace=keyspace)
        app_state.course_service = CourseService(session=session, keyspace=keyspace)
        app_state.resource_service = ResourceService(
            session=session,
            keyspace=keyspace,
            course_service=app_state.course_service,
        )
        app_state.enrollment_service = EnrollmentService(
            session=session,
            keyspace=keyspace,
            course_service=app_state.course_service,
            auth_service=app_state.auth_service,
        )
        app_state.stats_service = StatsService(
            enrollment_service=app_state.enrollment_service,
            course_service=app_state.course_service,
            auth_service=app_state.auth_service,
            resource_service=app_state.resource_service,
            redis=redis_client,
        )
        logger.info("services_initialized")
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    if settings.should_seed_demo_data and app_state.cassandra_session is not None:
        try:
            await seed_demo_data(
                app_state.cassandra_session, settings.cassandra_keyspace, settings
            )
        except Exception as e:
            logger.exception("seed_failed", error=str(e))

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_redis()
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Stack traces are never rendered in responses; handlers below log them
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="LearnHub - courses, enrollments and progress tracking API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": str(exc.detail)
                if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
                "status_code": exc.status_code,
                "request_id": request_id,
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors (missing fields, malformed identifiers)."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": 422,
                "request_id": request_id,
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        Details are logged internally and never returned to the client.
        """
        request_id = _get_request_id_safe(request)

        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "request_id": request_id,
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(courses_router)
    app.include_router(resources_router)
    app.include_router(resources_admin_router)
    app.include_router(enrollments_router)
    app.include_router(stats_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "LearnHub API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


# Configure router dependencies before creating app
from learnhub.auth.router import set_auth_service_getter  # noqa: E402
from learnhub.courses.dependencies import set_course_service_getter  # noqa: E402
from learnhub.enrollments.dependencies import (  # noqa: E402
    set_enrollment_service_getter,
)
from learnhub.resources.dependencies import set_resource_service_getter  # noqa: E402
from learnhub.stats.dependencies import set_stats_service_getter  # noqa: E402


set_auth_service_getter(get_auth_service)
set_course_service_getter(get_course_service)
set_resource_service_getter(get_resource_service)
set_enrollment_service_getter(get_enrollment_service)
set_stats_service_getter(get_stats_service)


app = create_app()
