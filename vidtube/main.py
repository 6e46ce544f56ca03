"""FastAPI application initialization."""

from contextlib import asynccontextmanager
from uuid import uuid4

from dotenv import load_dotenv

# Load environment variables before anything else
load_dotenv()

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from vidtube.api.middleware import CorrelationIdMiddleware
from vidtube.api.responses import error_response
from vidtube.api.routes import router
from vidtube.api.users import router as users_router
from vidtube.api.videos import router as videos_router
from vidtube.config import get_settings
from vidtube.errors import ApiError
from vidtube.services.logging_service import configure_logging, get_logger

# Missing or invalid signing secrets stop the process here
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    configure_logging(settings.log_level)
    logger = get_logger("main")

    try:
        from vidtube.database import init_database, run_migrations

        await init_database()
        await run_migrations()
        logger.info("database_initialized")
    except Exception as e:
        logger.warning(
            "database_initialization_failed",
            error=str(e),
            note="Continuing without database - user endpoints will fail until it is reachable",
        )

    logger.info("application_started", log_level=settings.log_level)

    yield

    try:
        from vidtube.database import close_database

        await close_database()
    except Exception as e:
        logger.warning("database_close_failed", error=str(e))

    logger.info("application_shutdown")


app = FastAPI(
    title="VidTube API",
    description="Accounts, token sessions, channel profiles and watch history",
    version="0.1.0",
    lifespan=lifespan,
)


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", None) or str(uuid4())


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Render service errors as the error envelope."""
    correlation_id = _correlation_id(request)
    structlog.get_logger().info(
        "api_error",
        kind=exc.kind,
        status_code=exc.status_code,
        detail=exc.message,
        correlation_id=correlation_id,
    )
    headers = {"X-Correlation-Id": correlation_id}
    if exc.status_code == 401:
        headers["WWW-Authenticate"] = "Bearer"
    return error_response(exc.status_code, exc.message, exc.errors, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors as a 400 envelope listing each field."""
    correlation_id = _correlation_id(request)

    errors = [
        {
            "field": ".".join(str(loc) for loc in error.get("loc", ["unknown"])),
            "message": error.get("msg", "Validation failed"),
        }
        for error in exc.errors()
    ]
    message = (
        f"Field '{errors[0]['field']}': {errors[0]['message']}"
        if errors
        else "Request validation failed"
    )

    structlog.get_logger().warning(
        "validation_error",
        correlation_id=correlation_id,
        detail=message,
    )

    return error_response(
        400,
        message,
        errors,
        headers={"X-Correlation-Id": correlation_id},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Framework errors (unknown route, wrong method) in the same envelope."""
    return error_response(exc.status_code, str(exc.detail), headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected failures and return a generic 500. Never leak internals."""
    correlation_id = _correlation_id(request)
    structlog.get_logger().exception(
        "unhandled_exception",
        correlation_id=correlation_id,
        error_type=type(exc).__name__,
    )
    return error_response(
        500,
        "Internal server error",
        headers={"X-Correlation-Id": correlation_id},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Correlation ID middleware for request tracking and observability
app.add_middleware(CorrelationIdMiddleware)

app.include_router(users_router)
app.include_router(videos_router)
app.include_router(router)
