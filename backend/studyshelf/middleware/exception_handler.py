"""Exception handler for structured error responses."""

import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from ..exceptions import ShelfException

logger = logging.getLogger(__name__)


async def shelf_exception_handler(request: Request, exc: ShelfException) -> JSONResponse:
    """
    Convert a ShelfException into its JSON error body and status code.

    Client errors (4xx) are logged at WARNING, server errors at ERROR.

    Args:
        request: FastAPI request object
        exc: ShelfException instance

    Returns:
        JSONResponse with error details
    """
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        level,
        f"ShelfException: {exc.error_code.value}",
        extra={
            "error_code": exc.error_code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
            "status_code": exc.status_code
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )
