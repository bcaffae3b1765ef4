import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from sidebar.api import activity, favicons, sites
from sidebar.db.connection import dispose_engine, get_engine, get_session_factory
from sidebar.schemas.error import ErrorType, ValidationErrorDetail
from sidebar.services.favicon_cache import create_http_client
from sidebar.services.session import build_session
from sidebar.services.site_registry import SidebarError
from sidebar.settings import AppSettings, get_settings
from sidebar.store import close_redis, get_store_client
from sidebar.utils.error_responses import (
    build_error_response,
    build_sidebar_error_response,
    build_validation_error_response,
)
from sidebar.utils.request_context import get_request_id, resolve_request_id, set_request_id
from sidebar.warmup import warmup_all

settings = get_settings()

logging.basicConfig(
    level=settings.log_level_numeric,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Origins a browser extension page presents when calling the API.
EXTENSION_ORIGIN_REGEX = r"^(chrome|moz)-extension://[a-z0-9-]+$"


def validate_environment(active_settings: AppSettings | None = None) -> None:
    """Log warnings for optional configuration that was left unset."""

    warnings = (active_settings or get_settings()).optional_config_warnings()
    if warnings:
        logger.warning("=" * 60)
        logger.warning("Environment Configuration Warnings:")
        for warning in warnings:
            logger.warning("  - %s", warning)
        logger.warning("=" * 60)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the sidebar session on startup and release its resources on shutdown."""
    validate_environment()

    engine = get_engine()
    favicon_ok, _ = await warmup_all(engine)
    store = await get_store_client()
    http_client = create_http_client()

    session = build_session(
        get_settings(),
        store=store,
        session_factory=get_session_factory() if favicon_ok else None,
        http_client=http_client,
    )
    await session.start()
    app.state.sidebar_session = session
    logger.info("Sidebar ready with %d site(s)", len(session.registry.sites))

    try:
        yield
    finally:
        logger.info("Shutting down sidebar API")
        session.stop()
        await http_client.aclose()
        await close_redis()
        await dispose_engine()


app = FastAPI(
    title="Sidebar Sites API",
    version="0.1.0",
    description="Site registry, favicon cache and idle hibernation for a quick-launch sidebar.",
    lifespan=lifespan,
    redirect_slashes=False,
)


def _default_origins() -> list[str]:
    origins = []
    for host in ("localhost", "127.0.0.1"):
        origins.extend([f"http://{host}:{port}" for port in (3000, 5173, 8000)])
        origins.append(f"http://{host}")
    return origins


allow_origins = list(dict.fromkeys([*_default_origins(), *settings.cors_allow_origins]))
logger.debug("Configured CORS allow_origins: %s", ", ".join(allow_origins))

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_origin_regex=EXTENSION_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Tag each request with an id, reusing the client's X-Request-ID when well formed."""
    request_id = resolve_request_id(request.headers.get("X-Request-ID"))
    set_request_id(request_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


def _validation_details(errors: list[dict]) -> list[ValidationErrorDetail]:
    return [
        ValidationErrorDetail(
            field=".".join(str(loc) for loc in error["loc"]),
            message=error["msg"],
            value=error.get("input"),
        )
        for error in errors
    ]


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI request validation errors."""
    errors = _validation_details(list(exc.errors()))

    logger.warning(
        "Validation error for request %s to %s: %s errors",
        get_request_id(),
        request.url.path,
        len(errors),
    )

    error_response = build_validation_error_response(
        message="Request validation failed",
        detail=f"{len(errors)} validation error(s)",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        path=str(request.url.path),
        errors=errors,
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response.model_dump(mode="json"),
    )


@app.exception_handler(ValidationError)
async def pydantic_validation_exception_handler(request: Request, exc: ValidationError):
    """Handle Pydantic validation errors raised outside request parsing."""
    errors = _validation_details(list(exc.errors()))

    logger.warning(
        "Pydantic validation error for request %s to %s: %s errors",
        get_request_id(),
        request.url.path,
        len(errors),
    )

    error_response = build_validation_error_response(
        message="Data validation failed",
        detail=f"{len(errors)} validation error(s)",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        path=str(request.url.path),
        errors=errors,
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response.model_dump(mode="json"),
    )


@app.exception_handler(SidebarError)
async def sidebar_error_handler(request: Request, exc: SidebarError):
    """Map rejected sites and unreadable import files to HTTP 400."""
    error_response = build_sidebar_error_response(exc, path=str(request.url.path))
    logger.info(
        "%s for request %s to %s: %s",
        error_response.message,
        get_request_id(),
        request.url.path,
        exc,
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_response.model_dump(mode="json"),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    error_type = (
        ErrorType.NOT_FOUND
        if exc.status_code == status.HTTP_404_NOT_FOUND
        else ErrorType.HTTP_ERROR
    )
    error_response = build_error_response(
        error_type=error_type,
        message=str(exc.detail),
        detail=str(exc.detail),
        status_code=exc.status_code,
        path=str(request.url.path),
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response.model_dump(mode="json"),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle all other unhandled exceptions."""
    logger.exception(
        "Unhandled exception for request %s to %s: %s",
        get_request_id(),
        request.url.path,
        type(exc).__name__,
    )

    error_response = build_error_response(
        error_type=ErrorType.INTERNAL_ERROR,
        message="Internal server error",
        detail=f"An unexpected error occurred: {type(exc).__name__}",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        path=str(request.url.path),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response.model_dump(mode="json"),
    )


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, str]:
    """Simple health endpoint for readiness checks."""
    return {"status": "ok"}


app.include_router(sites.router, prefix="/sites", tags=["sites"])
app.include_router(favicons.router, prefix="/favicons", tags=["favicons"])
app.include_router(activity.router, prefix="/activity", tags=["activity"])
