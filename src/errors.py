# src/errors.py
"""Domain exceptions raised by the service layer.

Routes translate these into HTTP responses (see src/route_helpers.py).
"""


class TerangaError(Exception):
    """Base exception for all service-layer errors."""


class NotFoundError(TerangaError):
    """Raised when a property, developer, purchase or profile does not exist
    (or is not visible to the caller)."""


class ValidationFailedError(TerangaError):
    """Raised when submitted data is incomplete or malformed."""


class FunnelLockedError(TerangaError):
    """Raised when a funnel step is submitted out of order or after KYC has started."""

    def __init__(self, message: str, redirect_to: str = "/profile"):
        super().__init__(message)
        self.redirect_to = redirect_to


class InvalidStatusTransitionError(TerangaError):
    """Raised when an invalid purchase status transition is attempted."""


class PurchaseNotDeletableError(TerangaError):
    """Raised when deleting a purchase that is past the pre-commitment stage."""


class PropertyUnavailableError(TerangaError):
    """Raised when acquiring a property that is no longer available."""
