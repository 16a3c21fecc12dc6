"""Translation of engine errors into HTTP responses."""

import logging

from fastapi import HTTPException, status

from tripsync.app.engine.errors import (
    ConflictError,
    InputValidationError,
    ItineraryError,
    NotFoundError,
    TransactionTimeoutError,
)

logger = logging.getLogger(__name__)


def to_http_exception(error: ItineraryError) -> HTTPException:
    """Map an engine error to the matching HTTPException.

    Args:
        error: Error raised by a service

    Returns:
        HTTPException with status code and detail
    """
    if isinstance(error, InputValidationError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(error), "errors": error.errors},
        )
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    if isinstance(error, TransactionTimeoutError):
        return HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(error))

    logger.error(f"[api] Unmapped engine error: {type(error).__name__}: {error}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="internal error",
    )
