import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from taskvault.api.v1.auth_route import auth_router
from taskvault.api.v1.google_route import google_router
from taskvault.api.v1.task_route import tasks_router
from taskvault.core.config import Settings, load_settings
from taskvault.core.exceptions import TaskvaultError
from taskvault.core.rate_limit import InMemoryRateLimiter, register_rate_limit
from taskvault.db.session import create_session_factory, init_db
from taskvault.utils.expiry import get_expiry_description


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Validates configuration, opens the database and creates tables on
    startup; disposes the engine on shutdown. A missing signing secret
    stops the application from starting.
    """
    settings: Settings = app.state.settings
    settings.require_token_secret()

    missing = settings.missing_oauth_settings()
    if missing:
        logger.warning(f"Google sign-in disabled until configured: {', '.join(missing)}")
    logger.info(f"Auth tokens and cookies valid for {get_expiry_description(settings.auth_token_ttl)}")

    engine, session_factory = create_session_factory(settings.database_url)
    app.state.session_factory = session_factory
    await init_db(engine)
    yield
    await engine.dispose()


def register_exception_handlers(app: FastAPI) -> None:
    """Map error kinds to status codes and a stable JSON body."""

    @app.exception_handler(TaskvaultError)
    async def taskvault_error_handler(request: Request, exc: TaskvaultError):
        error = exc.error
        if exc.status_code >= 500:
            # Diagnostic detail stays in the logs
            logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.error}")
            error = "Internal server error"

        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.message, "error": error},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'] if part != 'body')}: {err['msg']}"
            for err in exc.errors()
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": "Invalid request data", "error": details},
        )

    @app.exception_handler(Exception)
    async def unknown_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "Unknown error has occurred", "error": "Internal server error"},
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Sets up CORS, per-IP rate limiting, error handling, health checks,
    and routing for authentication and tasks.

    Args:
        settings: Configuration to run with. Read from the environment
            when omitted.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    settings = settings or load_settings()

    app = FastAPI(
        title="Taskvault API",
        description="Task management with password and Google sign-in",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = settings

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_rate_limit(
        app,
        InMemoryRateLimiter(settings.rate_limit_max_requests, settings.rate_limit_window_seconds),
    )
    register_exception_handlers(app)

    # Include routers
    app.include_router(auth_router, prefix="/api/users", tags=["users"])
    app.include_router(tasks_router, prefix="/api/tasks", tags=["tasks"])
    app.include_router(google_router, prefix="/auth", tags=["google-auth"])

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """
        Health check endpoint for load balancers and monitoring.

        Returns:
            dict: Health status response.
        """
        return {"status": "healthy"}

    # Root endpoint
    @app.get("/")
    async def root():
        """
        Root endpoint providing basic API information.

        Returns:
            dict: Welcome message.
        """
        return {"message": "Taskvault API"}

    return app
