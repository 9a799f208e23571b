"""Error handling for the Scry Keys API.

Every ScryKeysError subclass renders as the same JSON envelope, driven by
its error_type and status_code. Server-side faults never leak their message.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException
from structlog import get_logger

from scry_keys.exceptions import AuthenticationError, ErrorType, ScryKeysError


logger = get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "An internal server error occurred"


def _get_client_ip(request: Request) -> str:
    """Get client IP from request."""
    return request.client.host if request.client else "unknown"


def build_error_response(
    status_code: int,
    error_type: str,
    message: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build standardized error response."""
    return JSONResponse(
        status_code=status_code,
        content={"error": {"type": error_type, "message": message}},
        headers=headers,
    )


def error_response_for(exc: ScryKeysError) -> JSONResponse:
    """Render a ScryKeysError, hiding details of infrastructure faults."""
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        return build_error_response(
            exc.status_code, ErrorType.INTERNAL_SERVER, INTERNAL_ERROR_MESSAGE
        )

    headers = None
    if isinstance(exc, AuthenticationError) and (
        exc.status_code == status.HTTP_401_UNAUTHORIZED
    ):
        headers = {"WWW-Authenticate": "ApiKey"}
    return build_error_response(
        exc.status_code, exc.error_type.value, exc.message, headers
    )


def setup_error_handlers(app: FastAPI) -> None:
    """Setup error handlers for the FastAPI application."""
    logger.debug("error_handlers_setup_start")

    @app.exception_handler(ScryKeysError)
    async def scry_keys_error_handler(
        request: Request, exc: ScryKeysError
    ) -> JSONResponse:
        """Handle all ScryKeysError subclasses using their built-in attributes."""
        log_kwargs = {
            "error_type": exc.error_type.value,
            "error_message": exc.message,
            "status_code": exc.status_code,
            "request_method": request.method,
            "request_url": str(request.url.path),
        }

        if exc.status_code in (401, 403):
            log_kwargs["client_ip"] = _get_client_ip(request)
            logger.warning(type(exc).__name__, **log_kwargs)
        else:
            logger.error(type(exc).__name__, **log_kwargs)

        return error_response_for(exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Handle FastAPI and Starlette HTTP exceptions."""
        log_kwargs = {
            "error_type": f"http_{exc.status_code}",
            "error_message": exc.detail,
            "status_code": exc.status_code,
            "request_method": request.method,
            "request_url": str(request.url.path),
        }

        if exc.status_code == 404:
            logger.debug("HTTP 404", **log_kwargs)
        else:
            logger.error("HTTP exception", **log_kwargs)

        return build_error_response(
            exc.status_code, "http_error", str(exc.detail), exc.headers
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle all other unhandled exceptions."""
        logger.error(
            "Unhandled exception",
            error_type="unhandled_exception",
            error_message=str(exc),
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_method=request.method,
            request_url=str(request.url.path),
            exc_info=True,
        )

        return build_error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ErrorType.INTERNAL_SERVER,
            INTERNAL_ERROR_MESSAGE,
        )

    logger.debug("error_handlers_setup_completed")
