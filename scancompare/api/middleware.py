"""
API middleware for ScanCompare.

Provides:
- Rate limiting
- Request logging
- Error handling
"""

import time
from typing import Callable
from uuid import uuid4

from fastapi import FastAPI, Request, Response, HTTPException
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from scancompare.services.comparison_engine import ComparisonError, MissingAnalysisError
from scancompare.utils.logger import bind_request_context, get_logger

logger = get_logger("middleware")


# Rate limiter using client IP
limiter = Limiter(key_func=get_remote_address)


REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request/response logging.

    Binds a request id (taken from the X-Request-ID header or generated)
    into the structlog context, so comparison and store logs emitted
    while serving the request can be correlated. The id is echoed back
    in the response headers.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        start_time = time.time()
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex

        bind_request_context(
            request_id=request_id,
            method=request.method,
            path=request.url.path
        )
        logger.info("Request received", client_ip=get_remote_address(request))

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                error=str(e),
                process_time_ms=int((time.time() - start_time) * 1000)
            )
            raise

        process_time = time.time() - start_time
        logger.info(
            "Request completed",
            status_code=response.status_code,
            process_time_ms=int(process_time * 1000)
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.4f}"
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    Catches unhandled exceptions and returns safe error responses.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        try:
            return await call_next(request)

        except HTTPException:
            raise

        except ValueError as e:
            logger.warning("Validation error", error=str(e))
            return JSONResponse(
                status_code=400,
                content={
                    "error": "Validation Error",
                    "message": str(e),
                    "error_code": "VALIDATION_ERROR"
                }
            )

        except Exception as e:
            logger.error("Unhandled exception", error=str(e), exc_info=True)
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Internal Server Error",
                    "message": "An unexpected error occurred. Please try again.",
                    "error_code": "INTERNAL_ERROR"
                }
            )


def setup_rate_limiting(app: FastAPI) -> None:
    """Setup rate limiting on the application."""
    app.state.limiter = limiter

    @app.exception_handler(429)
    async def rate_limit_handler(request: Request, exc: Exception):
        logger.warning(
            "Rate limit exceeded",
            path=request.url.path,
            client_ip=get_remote_address(request),
            limit=str(getattr(exc, "detail", ""))
        )
        return JSONResponse(
            status_code=429,
            content={
                "error": "Rate Limit Exceeded",
                "message": "Too many requests. Please wait before trying again.",
                "error_code": "RATE_LIMIT_EXCEEDED"
            }
        )


def setup_exception_handlers(app: FastAPI) -> None:
    """Map comparison failures to structured error responses."""

    @app.exception_handler(ComparisonError)
    async def comparison_error_handler(request: Request, exc: ComparisonError):
        content = {
            "error": "Comparison Failed",
            "message": exc.message,
            "error_code": exc.error_code
        }
        if isinstance(exc, MissingAnalysisError):
            content["missing"] = exc.missing

        logger.warning(
            "Comparison request rejected",
            path=request.url.path,
            error_code=exc.error_code
        )
        return JSONResponse(status_code=422, content=content)
