class BillingError(Exception):
    """Base class for errors raised by the billing core."""
    pass


class BillingValidationError(BillingError):
    """Raised when input is rejected before anything is written."""
    pass


class RecordNotFoundError(BillingError):
    """Raised when a referenced record does not exist (or is soft-deleted)."""
    pass
