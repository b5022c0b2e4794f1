"""
API errors shared by the backend modules.

Services raise an APIError subclass; the registered handler turns it into
a JSON body carrying the detail, a machine-readable error code and the path.
"""

from typing import Optional
import logging

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class APIError(HTTPException):
    """HTTP error with a stable error_code for API clients"""

    def __init__(self, status_code: int, detail: str, error_code: Optional[str] = None):
        super().__init__(status_code=status_code, detail=detail)
        self.error_code = error_code


class ValidationError(APIError):
    """Request parameters rejected before any work is done"""

    def __init__(self, detail: str = "Validation failed"):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail, "VALIDATION_ERROR")


async def handle_api_error(request: Request, exc: APIError) -> JSONResponse:
    logger.warning(f"{exc.error_code} at {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "error_code": exc.error_code,
            "path": str(request.url.path),
        },
    )


def register_exception_handlers(app):
    """Register the API error handler with the FastAPI app"""
    app.add_exception_handler(APIError, handle_api_error)
