"""
Error taxonomy shared by the crud, service and API layers.

Every error is scoped to the single operation that raised it; routers map
them onto HTTP status codes (see ``tripshare/api/errors.py``).
"""
from __future__ import annotations


class TripShareError(Exception):
    """Base class; ``str(exc)`` is a stable, user-facing message."""

    default_message = "Request could not be completed."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class PermissionDeniedError(TripShareError):
    """Authorization failed. Raised before any state is touched."""

    default_message = "You do not have permission to perform this action."


class NotFoundError(TripShareError):
    """Referenced trip / place / access record is absent."""

    default_message = "Resource not found."


class InvalidTokenError(TripShareError):
    """Invite token does not resolve to an invite."""

    default_message = "Invalid invitation link."


class InviteExpiredError(TripShareError):
    """Invite token is past its ``expires_at``."""

    default_message = "This invitation has expired."


class AlreadyInvitedError(TripShareError):
    """A pending invitation already exists for this trip and email."""

    default_message = "This email already has a pending invitation."


class AlreadyMemberError(TripShareError):
    """The email already has accepted access to the trip."""

    default_message = "This user is already a collaborator on this trip."


class ValidationError(TripShareError):
    """Malformed input (bad email, empty title, dayNumber < 1, ...)."""

    default_message = "Invalid input."


class DeliveryFailedError(TripShareError):
    """Notification could not be delivered. Never fatal to the caller."""

    default_message = "Email could not be delivered."


class DatabaseInteractionError(TripShareError):
    """Any unexpected storage-layer failure."""

    default_message = "A database error occurred."
