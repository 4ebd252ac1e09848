"""Exception handlers that turn service-layer errors into JSON HTTP responses.

Routes let domain errors propagate; the status code for each error type lives
here, once. Responses keep FastAPI's ``{"detail": ...}`` shape.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.services.audio_rooms import (
    AlreadyJoinedError,
    NotParticipantError,
    RoomNotFoundError,
)
from app.services.profiles import PermissionDeniedError, ProfileNotFoundError
from app.services.provisioning import ConflictError, ProvisioningError, ValidationError

logger = logging.getLogger(__name__)

RETRY_HINT = "Username is being claimed by another signup; please try again."

ERROR_STATUS: dict[type[Exception], int] = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ConflictError: status.HTTP_409_CONFLICT,
    AlreadyJoinedError: status.HTTP_409_CONFLICT,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    ProfileNotFoundError: status.HTTP_404_NOT_FOUND,
    RoomNotFoundError: status.HTTP_404_NOT_FOUND,
    NotParticipantError: status.HTTP_404_NOT_FOUND,
}


def register_error_handlers(app: FastAPI) -> None:
    """Register handlers for every domain error on the FastAPI app."""
    for exc_class in ERROR_STATUS:
        app.add_exception_handler(exc_class, domain_error_handler)
    app.add_exception_handler(ProvisioningError, provisioning_error_handler)


async def domain_error_handler(request: Request, exc: Exception) -> JSONResponse:
    status_code = next(
        code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)
    )
    message = getattr(exc, "message", str(exc))
    logger.info(
        "Request rejected: %s",
        message,
        extra={"path": request.url.path, "error_type": type(exc).__name__},
    )
    return JSONResponse(status_code=status_code, content={"detail": message})


async def provisioning_error_handler(
    request: Request, exc: ProvisioningError
) -> JSONResponse:
    """Retries ran out on a username race: report a conflict the client can retry."""
    logger.error(
        "Signup failed after retries",
        extra={"path": request.url.path, "attempts": exc.attempts, "reason": exc.message},
    )
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT, content={"detail": RETRY_HINT}
    )
