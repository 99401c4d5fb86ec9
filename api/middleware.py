"""FastAPI middleware and exception mapping."""
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_504_GATEWAY_TIMEOUT,
)

from logging_config import get_logger, bind_context, clear_context
from exceptions import (
    ConflictError,
    DispatchError,
    MatchTimeout,
    NotFoundError,
    ValidationError,
)

logger = get_logger(__name__)


def status_code_for(error: DispatchError) -> int:
    """HTTP status for a dispatch error."""
    if isinstance(error, ValidationError):
        return HTTP_400_BAD_REQUEST
    if isinstance(error, NotFoundError):
        return HTTP_404_NOT_FOUND
    if isinstance(error, ConflictError):
        return HTTP_409_CONFLICT
    if isinstance(error, MatchTimeout):
        return HTTP_504_GATEWAY_TIMEOUT
    return HTTP_500_INTERNAL_SERVER_ERROR


def error_response(error: DispatchError) -> JSONResponse:
    """
    Convert a dispatch error into the JSON error body.

    Args:
        error: Raised exception

    Returns:
        JSON response with error, message and detail
    """
    status_code = status_code_for(error)
    detail = None

    if isinstance(error, ValidationError) and error.offending:
        detail = {"offending": error.offending}
    elif isinstance(error, ConflictError) and error.current_status:
        detail = {"currentStatus": error.current_status}

    if status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("Dispatch error", error=str(error), error_type=type(error).__name__)
    else:
        logger.warning("Request rejected", error=str(error), error_type=type(error).__name__)

    return JSONResponse(
        status_code=status_code,
        content={
            "error": type(error).__name__,
            "message": str(error),
            "detail": detail,
        },
    )


async def dispatch_error_handler(request: Request, exc: DispatchError) -> JSONResponse:
    """Exception handler for the dispatch taxonomy."""
    return error_response(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are validation failures (400), not 422."""
    errors = exc.errors()
    offending = [".".join(str(part) for part in error.get("loc", ()) if part != "body") for error in errors]
    logger.warning("Request body rejected", offending=offending)
    return JSONResponse(
        status_code=HTTP_400_BAD_REQUEST,
        content={
            "error": "ValidationError",
            "message": "; ".join(error.get("msg", "invalid") for error in errors),
            "detail": {"offending": offending},
        },
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log all API requests and responses.

    Adds request ID and caller identity to all logs and tracks request duration.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        """
        Process request and log details.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware/endpoint handler

        Returns:
            HTTP response
        """
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        bind_context(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            caller_id=request.headers.get("X-User-Id"),
        )

        logger.info(
            "Request started",
            query=str(request.query_params) if request.query_params else None,
        )

        start_time = time.time()

        try:
            response = await call_next(request)

            duration_ms = (time.time() - start_time) * 1000
            response.headers["X-Request-ID"] = request_id

            logger.info(
                "Request completed",
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )

            return response

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000

            logger.error(
                "Request failed",
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round(duration_ms, 2),
                exc_info=True,
            )

            raise

        finally:
            clear_context()


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Last-resort handler for exceptions the routes did not map.

    Dispatch errors are normally converted by ``dispatch_error_handler``;
    anything reaching this middleware becomes a 500.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        """
        Process request and handle errors.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware/endpoint handler

        Returns:
            HTTP response
        """
        try:
            return await call_next(request)

        except DispatchError as e:
            return error_response(e)

        except Exception as e:
            logger.error(
                "Unhandled exception",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )

            return JSONResponse(
                status_code=HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": "InternalServerError",
                    "message": "An unexpected error occurred.",
                    "detail": None,
                }
            )


def setup_middleware(app) -> None:
    """
    Add exception handlers and middleware to the FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(DispatchError, dispatch_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Last added is outermost
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    logger.info("Middleware configured")
