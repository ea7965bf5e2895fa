"""
FastAPI Server for the BLANG string editor
- Local sidecar API for a desktop frontend
- Session registry for open string tables
"""

import sys
import time
import uuid
from pathlib import Path
from typing import Callable, Optional

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
import uvicorn

# Add the backend directory to Python path for imports
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

# Configure Loguru logging
from config.logging_config import logger
from config.blang_settings import settings
from parsers.errors import FormatError, NotFoundError
from fastapi_core.session_registry import cleanup_all_sessions, get_session_stats
from fastapi_core.shared_services import DECRYPTOR_SERVICE, list_shared_services, register_shared_service
from fastapi_routers import blang

ALLOWED_ORIGINS = [
    "http://localhost:3000",      # Dev mode
    "http://127.0.0.1:3000",
    "tauri://localhost",          # Desktop shell
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"BLANG editor API starting, shared services: {list_shared_services()}")
    yield
    stats = get_session_stats()
    if stats['sessions_with_unsaved_changes']:
        logger.warning(f"Shutting down with {stats['sessions_with_unsaved_changes']} unsaved BLANG sessions")
    cleanup_all_sessions()
    logger.info("BLANG editor API shutting down...")


class RequestTrackingMiddleware(BaseHTTPMiddleware):
    """Tag each request with a short id and its duration"""

    async def dispatch(self, request: Request, call_next):
        request_id = uuid.uuid4().hex[:8]
        request.state.request_id = request_id

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        logger.debug(f"Request {request_id}: {request.method} {request.url.path} - {response.status_code} ({duration:.3f}s)")

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration:.3f}s"
        return response


def _error_response(request: Request, status_code: int, error: str, detail, **extra) -> JSONResponse:
    content = {"error": error, "detail": detail, **extra}
    request_id = getattr(request.state, 'request_id', None)
    if request_id:
        content["request_id"] = request_id
    return JSONResponse(status_code=status_code, content=content)


def _renderable_errors(errors):
    # Echoed input may hold text that cannot be encoded, such as lone surrogates
    return jsonable_encoder([{k: v for k, v in error.items() if k != "input"} for error in errors])


def _register_exception_handlers(app: FastAPI):

    @app.exception_handler(FormatError)
    def format_error_handler(request: Request, exc: FormatError):
        """Malformed BLANG, .resources or patch data"""
        logger.warning(f"Format error on {request.url.path}: {exc}")
        return _error_response(request, status.HTTP_400_BAD_REQUEST, "format_error", str(exc))

    @app.exception_handler(NotFoundError)
    def not_found_handler(request: Request, exc: NotFoundError):
        logger.warning(f"Not found on {request.url.path}: {exc}")
        return _error_response(request, status.HTTP_404_NOT_FOUND, "not_found", str(exc))

    @app.exception_handler(RequestValidationError)
    def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
        return _error_response(request, 422, "validation_error", "Invalid request data",
                               errors=_renderable_errors(exc.errors()))

    @app.exception_handler(StarletteHTTPException)
    def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.warning(f"HTTP {exc.status_code} on {request.url.path}: {exc.detail}")
        return _error_response(request, exc.status_code, "http_error", exc.detail)

    @app.exception_handler(Exception)
    def global_exception_handler(request: Request, exc: Exception):
        logger.opt(exception=exc).error(f"Unhandled exception on {request.url.path}: {exc}")
        return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR,
                               "internal_server_error", "An unexpected error occurred")


def create_app(decryptor: Optional[Callable[[bytes, str], bytes]] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        decryptor: Optional decrypt(data, key) callable used when opening
            encrypted tables; registered as a shared service
    """
    if decryptor is not None:
        register_shared_service(DECRYPTOR_SERVICE, decryptor)

    app = FastAPI(
        title="BLANG String Editor API",
        description="Edit localized BLANG string tables and produce JSON string patches",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan
    )

    app.add_middleware(RequestTrackingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)
    app.include_router(blang.router, prefix="/api")

    @app.get("/api/health")
    def health():
        return {"status": "healthy", "service": "blang-editor", "sessions": get_session_stats()['total_active_sessions']}

    return app


app = create_app()


def main():
    logger.info(f"Server configuration: {settings.api_host}:{settings.api_port}")
    try:
        uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level="warning")
    except Exception as e:
        logger.error(f"Failed to start FastAPI server: {e}")
        raise


if __name__ == "__main__":
    main()
