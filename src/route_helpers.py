# src/route_helpers.py
"""
Translation of service-layer errors into HTTP responses.
Keeps status codes consistent across all routes.
"""

from typing import Dict, Type

from fastapi import HTTPException, status

from src.errors import (
    FunnelLockedError,
    InvalidStatusTransitionError,
    NotFoundError,
    PropertyUnavailableError,
    PurchaseNotDeletableError,
    TerangaError,
    ValidationFailedError,
)


STATUS_BY_ERROR: Dict[Type[TerangaError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    FunnelLockedError: status.HTTP_403_FORBIDDEN,
    InvalidStatusTransitionError: status.HTTP_409_CONFLICT,
    PurchaseNotDeletableError: status.HTTP_409_CONFLICT,
    PropertyUnavailableError: status.HTTP_409_CONFLICT,
    ValidationFailedError: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def to_http_exception(err: TerangaError) -> HTTPException:
    """
    Map a domain error to an HTTPException.

    Locked funnel steps carry where the client should go instead.
    Unknown TerangaError subclasses become 400.
    """
    code = status.HTTP_400_BAD_REQUEST
    for err_type, mapped in STATUS_BY_ERROR.items():
        if isinstance(err, err_type):
            code = mapped
            break

    if isinstance(err, FunnelLockedError):
        return HTTPException(status_code=code, detail={"message": str(err), "redirect_to": err.redirect_to})
    return HTTPException(status_code=code, detail=str(err))
