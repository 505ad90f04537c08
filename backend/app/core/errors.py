"""Domain errors raised by the billing services.

Routers never build HTTP errors for these by hand; ``main.py`` maps each
kind to a status code.
"""


class BillingError(Exception):
    """Base class for billing pipeline failures."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(BillingError):
    """A referenced customer, entry, charge, invoice or template does not exist."""

    status_code = 404


class InvalidStateError(BillingError):
    """The invoice (or billed item) is not in the status the operation requires."""

    status_code = 409


class ValidationError(BillingError):
    """Malformed or out-of-range input, rejected before any write."""

    status_code = 422


class ConflictError(BillingError):
    """Requested entries/charges are not all unbilled and owned by the customer."""

    status_code = 409


class ExternalServiceError(BillingError):
    """Mail transport or PDF renderer failure."""

    status_code = 502
