"""Ledger error taxonomy."""

from fastapi import status


class LedgerError(Exception):
    """Base ledger error."""

    def __init__(self, message: str, code: str, http_status: int = 400):
        """Initialize error."""
        self.message = message
        self.code = code
        self.http_status = http_status
        super().__init__(message)


class ValidationError(LedgerError):
    """Input rejected before any store interaction."""

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message, "validation_error", status.HTTP_400_BAD_REQUEST)


class StalePriceError(ValidationError):
    """Inventory item missing or unavailable when the charge is committed."""

    def __init__(self, message: str = "Inventory item is no longer available"):
        super().__init__(message)
        self.code = "stale_price"
        self.http_status = 422


class MemberNotFoundError(LedgerError):
    """Member does not exist in the directory."""

    def __init__(self, member_id: int):
        super().__init__(f"Member {member_id} not found", "member_not_found", status.HTTP_404_NOT_FOUND)
        self.member_id = member_id


class ImmutableRecordError(LedgerError):
    """Attempt to change financial history."""

    def __init__(self, message: str = "Charges and payments cannot be modified"):
        super().__init__(message, "immutable_record", status.HTTP_409_CONFLICT)


class StoreError(LedgerError):
    """Record store rejected the write or could not be reached.

    Recoverable: nothing was written, the caller may retry with the same input.
    """

    def __init__(self, message: str = "Record store unavailable"):
        super().__init__(message, "store_unavailable", status.HTTP_503_SERVICE_UNAVAILABLE)


class SubscriptionError(LedgerError):
    """Subscription lifecycle misuse (e.g. cancelled twice)."""

    def __init__(self, message: str = "Subscription already cancelled"):
        super().__init__(message, "subscription_error", status.HTTP_500_INTERNAL_SERVER_ERROR)


__all__ = [
    "LedgerError",
    "ValidationError",
    "StalePriceError",
    "MemberNotFoundError",
    "ImmutableRecordError",
    "StoreError",
    "SubscriptionError",
]
