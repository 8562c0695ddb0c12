"""
Error Handlers
Custom exceptions and exception handlers for FastAPI.

Every error response uses the same envelope as successful responses:
{"error": true, "message": str, "type": str, "details": ...}
"""

import logging
from typing import Any, Union

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..ml.errors import DependencyError, MissingReferenceError, QueryValidationError

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class RetrievalUnavailableError(APIError):
    """Raised when the retrieval backend cannot serve requests."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(
            message=message, status_code=status.HTTP_503_SERVICE_UNAVAILABLE, details=details
        )


class ResourceNotFoundError(APIError):
    """Exception raised when resource is not found."""

    def __init__(self, resource: str, resource_id: Union[int, str]):
        super().__init__(
            message=f"{resource} not found: {resource_id}",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id},
        )


class InvalidRequestError(APIError):
    """Exception raised for invalid requests."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


def error_response(status_code: int, message: str, error_type: str, details: Any = None):
    content = {"error": True, "message": message, "type": error_type}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _jsonable_errors(errors) -> list:
    """Convert validation error entries to JSON-serializable dicts."""
    return [
        {
            "loc": list(error.get("loc", [])),
            "msg": str(error.get("msg", "")),
            "type": error.get("type", ""),
        }
        for error in errors
    ]


def setup_error_handlers(app: FastAPI) -> None:
    """
    Set up custom error handlers for the FastAPI app.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        """Handle custom API errors."""
        logger.error(
            f"API error: {exc.message}",
            extra={
                "status_code": exc.status_code,
                "details": exc.details,
                "path": request.url.path,
            },
        )
        return error_response(exc.status_code, exc.message, exc.__class__.__name__, exc.details)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors."""
        logger.warning(f"Validation error: {exc}", extra={"path": request.url.path})

        return error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Request validation failed",
            "ValidationError",
            _jsonable_errors(exc.errors()),
        )

    @app.exception_handler(QueryValidationError)
    async def query_validation_error_handler(request: Request, exc: QueryValidationError):
        """Handle validation errors raised inside the retrieval pipeline."""
        logger.warning(f"Query validation error: {exc.message}", extra={"path": request.url.path})

        return error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            exc.message,
            "ValidationError",
            _jsonable_errors(exc.errors),
        )

    @app.exception_handler(DependencyError)
    async def dependency_error_handler(request: Request, exc: DependencyError):
        """Embedding or index failure: no partial data is returned."""
        logger.error(
            f"Dependency failure ({exc.dependency}): {exc.message}",
            extra={"path": request.url.path},
        )

        return error_response(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Retrieval failed",
            "DependencyError",
            {"dependency": exc.dependency},
        )

    @app.exception_handler(MissingReferenceError)
    async def missing_reference_handler(request: Request, exc: MissingReferenceError):
        """Handle lookups of unknown materials."""
        return error_response(
            status.HTTP_404_NOT_FOUND,
            exc.message,
            "ResourceNotFoundError",
            {"resource": "Material", "id": exc.material_id},
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        """Handle value errors."""
        logger.warning(f"Value error: {exc}", extra={"path": request.url.path})

        return error_response(status.HTTP_400_BAD_REQUEST, str(exc), "ValueError")

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.error(f"Unexpected error: {exc}", exc_info=True, extra={"path": request.url.path})

        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred",
            "InternalServerError",
        )
