"""Error taxonomy for the metering and invoicing engine."""

from __future__ import annotations

from uuid import UUID


class BillingError(Exception):
    """Base class for business-rule violations."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BillingError):
    """Malformed or out-of-range input."""


class NotFoundError(BillingError):
    """A referenced record does not exist."""


class ConflictError(BillingError):
    """A record for the same room and period already exists."""

    def __init__(self, message: str, existing_id: UUID | None = None):
        super().__init__(message)
        self.existing_id = existing_id


class StateError(BillingError):
    """The requested mutation is not allowed in the record's current state."""


class SignatureError(BillingError):
    """A payment gateway callback failed the authenticity check."""


class PermissionDeniedError(BillingError):
    """The acting user has no authority over the target building."""
