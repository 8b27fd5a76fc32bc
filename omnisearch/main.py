"""FastAPI application entry point."""

import logging
import time
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Header, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from omnisearch.config import get_settings
from omnisearch.errors import InternalError, SearchError
from omnisearch.logging_config import (
    clear_request_id,
    generate_request_id,
    set_request_id,
    setup_logging,
)
from omnisearch.models.error import ErrorResponse
from omnisearch.models.search import SearchRequest
from omnisearch.monitoring import LoggingMonitoringSink, MonitoringSink
from omnisearch.services.health_service import HealthService
from omnisearch.services.search_service import SearchService

# Setup logging configuration
setup_logging()
logger = logging.getLogger(__name__)

# Load and validate configuration at startup
settings = get_settings()
started_at = time.time()

# Global service instances
search_service: SearchService | None = None
health_service: HealthService | None = None
monitoring: MonitoringSink = LoggingMonitoringSink()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - startup and shutdown."""
    global search_service, health_service

    logger.info("Starting Omnisearch...")
    logger.info(
        f"Configuration: adapter_timeout={settings.adapter_timeout_seconds}s, "
        f"search_deadline={settings.search_deadline_seconds}s, "
        f"ai={settings.llm_enabled}"
    )

    search_service = SearchService(settings=settings)
    health_service = HealthService(
        orchestrator=search_service.orchestrator,
        version=settings.api_version,
        start_time=started_at,
    )

    logger.info("Omnisearch started successfully")

    yield

    logger.info("Shutting down Omnisearch...")
    if search_service:
        await search_service.close()
    logger.info("Omnisearch shut down successfully")


app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description="Unified search across connected workplace integrations",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(
    request: Request,
    status_code: int,
    error: str,
    code: str | None = None,
    details=None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=error,
            code=code,
            details=details,
            timestamp=datetime.now(UTC),
            request_id=getattr(request.state, "request_id", None),
        ).to_json(),
        headers=headers,
    )


# Request ID and error handling middleware
@app.middleware("http")
async def request_middleware(request: Request, call_next):
    """Add request ID tracking and error handling."""
    request_id = generate_request_id()
    request.state.request_id = request_id
    set_request_id(request_id)

    try:
        logger.info(f"Request started: {request.method} {request.url.path}")
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        logger.info(
            f"Request completed: {request.method} {request.url.path} - Status: {response.status_code}"
        )
        return response
    except Exception as e:
        logger.error(
            f"Unhandled exception: {str(e)}",
            exc_info=True,
            extra={"path": request.url.path},
        )
        await monitoring.report_error(e, {"request_id": request_id, "path": request.url.path})
        error = InternalError(str(e))
        response = _error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            error.user_message(),
            error.code,
        )
        response.headers["X-Request-ID"] = request_id
        return response
    finally:
        clear_request_id()


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle schema validation errors, including malformed JSON."""
    details = [
        {
            "loc": [str(loc) for loc in error["loc"]],
            "msg": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    logger.warning(
        f"Validation error: {'; '.join(d['msg'] for d in details)}",
        extra={"path": request.url.path},
    )
    await monitoring.report_error(
        exc, {"request_id": getattr(request.state, "request_id", None), "path": request.url.path}
    )

    return _error_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        "Invalid request data",
        "VALIDATION_ERROR",
        details,
    )


@app.exception_handler(SearchError)
async def search_error_handler(request: Request, exc: SearchError):
    """Map pipeline errors to their status code and public message."""
    await monitoring.report_error(
        exc, {"request_id": getattr(request.state, "request_id", None), "path": request.url.path}
    )
    return _error_response(request, exc.status_code, exc.user_message(), exc.code)


# API Endpoints


@app.post("/search", summary="Search across connected integrations")
async def search(
    request: Request,
    body: SearchRequest,
    authorization: str | None = Header(None),
):
    """Run a unified search.

    Args:
        request: FastAPI request object
        body: Search request
        authorization: ``Bearer <session token>`` header

    Returns:
        SearchResponse serialized with camelCase keys
    """
    request_started = time.perf_counter()
    request_id = request.state.request_id

    if search_service is None:
        raise InternalError("Search service not initialized")

    try:
        response = await search_service.search(
            body,
            authorization=authorization,
            request_id=request_id,
            started_at=request_started,
        )
    except SearchError:
        raise
    except Exception as e:
        logger.error(f"✗ Search failed: {str(e)}", exc_info=True)
        raise InternalError(str(e)) from e

    return JSONResponse(content=response.to_json())


@app.api_route(
    "/search",
    methods=["GET", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
    include_in_schema=False,
)
async def search_method_not_allowed(request: Request):
    return _error_response(
        request,
        status.HTTP_405_METHOD_NOT_ALLOWED,
        f"Method {request.method} Not Allowed",
        headers={"Allow": "POST"},
    )


@app.get("/health")
async def health_check():
    """Health check endpoint.

    Returns:
        Health report; 503 when any check fails
    """
    if health_service is None:
        raise InternalError("Health service not initialized")

    report = await health_service.check()
    return JSONResponse(
        status_code=health_service.http_status(report),
        content=report.model_dump(mode="json", by_alias=True),
    )


@app.api_route(
    "/health",
    methods=["POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
    include_in_schema=False,
)
async def health_method_not_allowed(request: Request):
    return _error_response(
        request,
        status.HTTP_405_METHOD_NOT_ALLOWED,
        f"Method {request.method} Not Allowed",
        headers={"Allow": "GET"},
    )

