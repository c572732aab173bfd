"""FastAPI application for the SAAI conversational-commerce backend."""

import signal
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from saai.infra.config import config
from saai.infra.error_handler import error_type_for
from saai.infra.logging import app_logger
from saai.infra.middleware import RequestIDMiddleware, RequestLoggingMiddleware, setup_cors
from saai.infra.timeout import TimeoutMiddleware, REQUEST_TIMEOUT


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    from saai.api.dependencies import get_provider_router

    router = get_provider_router()
    app_logger.info(
        "Application starting up",
        extra={"env": config.APP_ENV, "provider_priority": router.get_provider_priority()},
    )

    yield

    app_logger.info("Application shutting down")


app = FastAPI(
    title="SAAI Hub API",
    description="""
    SAAI Hub is a multi-tenant conversational-commerce backend. A chat turn is
    answered by an LLM that either replies directly or runs a commerce action
    (search, cart, checkout, orders, outfit recommendation) and explains the result.

    Errors on `/chat` are always reported with HTTP 200 and `success: false`.
    """,
    version="1.0.0",
    lifespan=lifespan,
    tags_metadata=[
        {"name": "Chat", "description": "Conversational turns"},
        {"name": "Tenants", "description": "Tenant configuration and enabled actions"},
        {"name": "Cart", "description": "Debug cart endpoints"},
        {"name": "Logs", "description": "Recent chat turns for debugging"},
        {"name": "Health", "description": "Health check and monitoring endpoints"},
    ],
)

app.add_middleware(RequestIDMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(TimeoutMiddleware, timeout=REQUEST_TIMEOUT)
setup_cors(app)

from saai.api.routers import chat, health, logs, tenants  # noqa: E402

app.include_router(chat.router)
app.include_router(tenants.router)
app.include_router(health.router)
app.include_router(logs.router)


@app.get("/", tags=["Health"])
async def root():
    return {"service": "saai-hub", "status": "running", "docs": "/docs"}


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies get the same 200 envelope as missing fields."""
    return JSONResponse(
        status_code=200,
        content={
            "success": False,
            "error": "Bad Request",
            "message": str(exc.errors()),
            "type": "validation_error",
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions. Unknown routes answer 200 with type not_found."""
    if exc.status_code == 404 and exc.detail == "Not Found":
        return JSONResponse(
            status_code=200,
            content={
                "success": False,
                "type": "not_found",
                "message": f"Route {request.method} {request.url.path} not found",
            },
        )

    error_type = {400: "validation_error", 404: "not_found", 429: "rate_limit"}.get(exc.status_code, "error")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail, "type": error_type},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle all other exceptions."""
    error_id = str(uuid.uuid4())
    app_logger.error(f"Unhandled exception: {exc}", exc_info=True, extra={"error_id": error_id})
    return JSONResponse(
        status_code=200,
        content={
            "success": False,
            "error": f"Internal server error. Error ID: {error_id}",
            "message": str(exc) if config.DEBUG else "Something went wrong. Please try again.",
            "type": error_type_for(exc),
        },
    )


if __name__ == "__main__":
    import uvicorn

    # Setup signal handlers for graceful shutdown
    def signal_handler(sig, frame):
        app_logger.info("Shutting down gracefully...")
        # Uvicorn handles shutdown automatically

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=config.PORT,
        timeout_keep_alive=30,
        timeout_graceful_shutdown=30,
    )
