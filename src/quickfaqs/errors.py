from __future__ import annotations


class QuickFAQsError(Exception):
    """
    Base class for errors surfaced at an operation boundary.

    `status_code` is the HTTP status the API layer maps the error to.
    """

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(QuickFAQsError):
    """Malformed or unknown input; user-correctable."""

    status_code = 400


class AuthenticationError(QuickFAQsError):
    """Webhook signature or payload could not be verified."""

    status_code = 400


class UnauthorizedError(QuickFAQsError):
    """Missing or invalid bearer identity on an API call."""

    status_code = 401


class QuotaExceededError(QuickFAQsError):
    status_code = 403

    def __init__(
        self,
        message: str = "No FAQ credits remaining. Please upgrade your subscription.",
    ) -> None:
        super().__init__(message)


class AccountNotFoundError(QuickFAQsError):
    status_code = 404

    def __init__(self, account_id: str) -> None:
        super().__init__(f"account {account_id} not found")
        self.account_id = account_id


class StoreWriteError(QuickFAQsError):
    """Durable write failed; callers must not acknowledge the operation."""

    status_code = 500


class PaymentProviderError(QuickFAQsError):
    """Payment provider unreachable, timed out or rejected the request. Retryable."""

    status_code = 502


class TextGenerationError(QuickFAQsError):
    status_code = 502
