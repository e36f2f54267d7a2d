# tripshare/api/errors.py
import logging

from fastapi import HTTPException, status

from tripshare.core.exceptions import (
    AlreadyInvitedError,
    AlreadyMemberError,
    DatabaseInteractionError,
    DeliveryFailedError,
    InvalidTokenError,
    InviteExpiredError,
    NotFoundError,
    PermissionDeniedError,
    TripShareError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_FOR_ERROR = {
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidTokenError: status.HTTP_404_NOT_FOUND,
    AlreadyInvitedError: status.HTTP_409_CONFLICT,
    AlreadyMemberError: status.HTTP_409_CONFLICT,
    InviteExpiredError: status.HTTP_410_GONE,
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def to_http_exception(exc: TripShareError) -> HTTPException:
    """Translate a domain error into the HTTPException an endpoint should raise."""
    if isinstance(exc, DatabaseInteractionError):
        logger.error("Database error: %s", exc, exc_info=exc)
        return HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "A database error occurred.")
    if isinstance(exc, DeliveryFailedError):
        # Delivery is handled inside the services; reaching here is a bug.
        logger.error("Unhandled delivery failure: %s", exc, exc_info=exc)
        return HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "An internal server error occurred.")
    for error_type, code in STATUS_FOR_ERROR.items():
        if isinstance(exc, error_type):
            return HTTPException(code, exc.message)
    logger.error("Unmapped domain error %s: %s", type(exc).__name__, exc, exc_info=exc)
    return HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "An internal server error occurred.")
