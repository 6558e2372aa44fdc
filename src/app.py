"""FastAPI application factory for the storefront operations API."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import InterfaceError, OperationalError

from src.config import settings
from src.database.engine import engine
from src.exceptions import AppException, StoreUnavailableException
from src.middleware.rate_limit import limiter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await engine.dispose()


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: list | None = None,
) -> JSONResponse:
    """The single error envelope every failure is reported in."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "details": details or [],
                "requestId": _request_id(request),
            }
        },
    )


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


async def handle_app_exception(request: Request, exc: AppException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s on %s: %s", exc.code, request.url.path, exc.message)
    return error_response(request, exc.status_code, exc.code, exc.message, exc.details)


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"field": ".".join(str(loc) for loc in err.get("loc", [])), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return error_response(request, 422, "VALIDATION_ERROR", "Validation failed", details)


async def handle_store_error(request: Request, exc: Exception) -> JSONResponse:
    # Reached when the failure happens outside the workflow store, e.g. on commit
    logger.warning("Store unavailable on %s: %s", request.url.path, exc.__class__.__name__)
    return error_response(
        request,
        StoreUnavailableException.status_code,
        StoreUnavailableException.code,
        "The data store is temporarily unavailable",
    )


async def handle_rate_limit(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return error_response(request, 429, "RATE_LIMITED", str(exc.detail))


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s", request.url.path)
    return error_response(request, 500, "INTERNAL_ERROR", "An unexpected error occurred.")


def create_app() -> FastAPI:
    application = FastAPI(
        title="Storefront Operations API",
        description="Order fulfilment and quote request workflows for an apparel customization storefront.",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    logging.getLogger("src").setLevel(settings.log_level.upper())
    application.state.limiter = limiter

    # Last added runs outermost: request IDs exist before CORS and routing
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    from src.middleware.request_id import RequestIdMiddleware

    application.add_middleware(RequestIdMiddleware)

    from src.api.v1 import v1_router

    application.include_router(v1_router)

    application.add_exception_handler(AppException, handle_app_exception)
    application.add_exception_handler(RequestValidationError, handle_request_validation)
    application.add_exception_handler(OperationalError, handle_store_error)
    application.add_exception_handler(InterfaceError, handle_store_error)
    application.add_exception_handler(RateLimitExceeded, handle_rate_limit)
    application.add_exception_handler(Exception, handle_unexpected)

    @application.get("/health")
    async def health_check() -> dict:
        return {"status": "ok"}

    return application


app = create_app()
