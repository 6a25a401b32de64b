"""
Error taxonomy and FastAPI exception handlers

Application services raise SocialError subclasses; the handlers registered
here turn them into JSON responses with the matching status code.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SocialError(Exception):
    """Base class for every failure the core reports to a caller"""

    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind: str = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_response(self) -> dict:
        return {"detail": self.message, "error": self.kind}


class NotFound(SocialError):
    """Referenced entity does not exist"""

    http_status = status.HTTP_404_NOT_FOUND
    kind = "not_found"


class Forbidden(SocialError):
    """Caller is not the authorized party for the mutation"""

    http_status = status.HTTP_403_FORBIDDEN
    kind = "forbidden"


class Conflict(SocialError):
    """Uniqueness violation"""

    http_status = status.HTTP_409_CONFLICT
    kind = "conflict"


class ValidationError(SocialError):
    """Missing or malformed required field"""

    http_status = status.HTTP_400_BAD_REQUEST
    kind = "validation_error"


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app"""

    @app.exception_handler(SocialError)
    async def social_error_handler(request: Request, exc: SocialError):
        logger.warning(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "detail": "Invalid request data",
                "error": ValidationError.kind,
                "fields": [
                    {
                        "field": ".".join(str(loc) for loc in e["loc"]),
                        "message": e["msg"],
                    }
                    for e in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error", "error": "internal_error"},
        )
