# storefront/services/exceptions.py


class ServiceError(Exception):
    """Base class for service-layer errors.

    ``detail`` is what the caller sees; ``status_code`` is the HTTP status
    the API layer renders it with.
    """

    status_code: int = 400

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class ValidationError(ServiceError):
    """Missing or malformed caller input."""

    status_code = 400


class AuthenticationError(ServiceError):
    """Missing, invalid or expired session."""

    status_code = 401


class AuthorizationError(ServiceError):
    """Authenticated, but the role is not allowed to perform the operation."""

    status_code = 401


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    """State conflict, e.g. a checkout for the same key is already running."""

    status_code = 409


class ChargeDeclined(ServiceError):
    """The gateway rejected the payment; the user may retry with other details."""

    status_code = 402


class OperationError(ServiceError):
    """Persistence failure. The detail shown to callers is always generic."""

    status_code = 500
    GENERIC_DETAIL = "Something went wrong"

    def __init__(self, detail: str = GENERIC_DETAIL):
        super().__init__(detail)


class GatewayAuthError(ServiceError):
    """Payment processor credentials are missing or rejected."""

    status_code = 500

    def __init__(self, detail: str = "Payment service is unavailable"):
        super().__init__(detail)


class GatewayUnavailableError(ServiceError):
    """The processor could not be reached; no charge was made."""

    status_code = 503

    def __init__(self, detail: str = "Payment service is temporarily unavailable. Please try again."):
        super().__init__(detail)


class ChargeOutcomeUnknown(ServiceError):
    """The gateway did not answer in time; the charge may or may not exist."""

    status_code = 502

    def __init__(
        self,
        detail: str = "Payment result could not be confirmed. Please contact support before retrying.",
    ):
        super().__init__(detail)


class PostPaymentInconsistency(ServiceError):
    """The charge succeeded but the order could not be recorded."""

    status_code = 500

    def __init__(self, transaction_id: str | None = None):
        self.transaction_id = transaction_id
        detail = "Your payment was received but the order could not be recorded. Please contact support and do not retry."
        if transaction_id:
            detail = f"{detail} Reference: {transaction_id}"
        super().__init__(detail)
