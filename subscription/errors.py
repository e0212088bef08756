"""
Error types for the billing client.

Transport failures are classified exactly once, in the API client, into an
ErrorKind. Call sites match on the kind instead of poking at HTTP statuses.
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Closed set of failure categories produced at the transport boundary"""
    NETWORK = "network"
    NOT_FOUND = "not_found"
    SERVER_DISABLED = "server_disabled"
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    UNKNOWN = "unknown"

    @classmethod
    def from_status(cls, status: Optional[int]) -> 'ErrorKind':
        if status is None:
            return cls.NETWORK
        if status == 404:
            return cls.NOT_FOUND
        if status == 503:
            return cls.SERVER_DISABLED
        if status in (400, 409, 422):
            return cls.VALIDATION
        if status in (401, 403):
            return cls.UNAUTHORIZED
        return cls.UNKNOWN


class SubscriptionError(Exception):
    """Base class for billing client errors"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ApiError(SubscriptionError):
    """Raised by the API client for transport failures and non-2xx responses"""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        status: Optional[int] = None,
        payload: Any = None,
    ):
        self.kind = kind
        self.status = status
        self.payload = payload
        super().__init__(message)

    @classmethod
    def from_response(cls, status: int, payload: Any) -> 'ApiError':
        return cls(
            kind=ErrorKind.from_status(status),
            message=extract_error_message(payload) or f"Request failed with status {status}",
            status=status,
            payload=payload,
        )

    @classmethod
    def unsuccessful(cls, envelope_message: Optional[str], fallback: str) -> 'ApiError':
        """A 2xx response whose envelope reported success=false"""
        payload = {'message': envelope_message} if envelope_message else None
        return cls(ErrorKind.UNKNOWN, envelope_message or fallback, payload=payload)

    @property
    def server_message(self) -> Optional[str]:
        """Message supplied by the backend, if any"""
        return extract_error_message(self.payload)

    def __repr__(self) -> str:
        return f"ApiError(kind={self.kind.value!r}, status={self.status!r}, message={self.message!r})"


class PlanNotFoundError(SubscriptionError):
    """The selected plan is missing from the loaded catalog"""

    def __init__(self, plan_id: str):
        self.plan_id = plan_id
        super().__init__("Selected plan not found. Please try again.")


class CurrencyMismatchError(SubscriptionError):
    """Catalog prices are in a different currency than the resolved one"""

    def __init__(self, plan_currency: str, expected_currency: str):
        self.plan_currency = plan_currency
        self.expected_currency = expected_currency
        super().__init__(
            "Plan prices are out of date for your currency. Please refresh and try again."
        )


class CurrencyPersistenceError(SubscriptionError):
    """The currency preference could not be saved on this device"""


class FeatureGateError(SubscriptionError):
    """Raised when a feature is not available on the current plan"""

    def __init__(self, feature: str, required_tier: str, message: str):
        self.feature = feature
        self.required_tier = required_tier
        super().__init__(message)


def extract_error_message(payload: Any) -> Optional[str]:
    """Pull the server-supplied message out of an error body: message, error, or a plain string"""
    if isinstance(payload, dict):
        message = payload.get('message') or payload.get('error')
        if isinstance(message, str) and message:
            return message
        return None
    if isinstance(payload, str) and payload.strip():
        return payload.strip()
    return None


PAYMENT_DISABLED_MESSAGE = "Payment system is currently disabled. Please contact support for assistance."
PAYMENT_FALLBACK_MESSAGE = "Failed to initiate payment"


def payment_error_message(error: BaseException) -> str:
    """Map a failure while starting a payment to the message shown to the user"""
    if isinstance(error, ApiError):
        if error.kind == ErrorKind.SERVER_DISABLED:
            return PAYMENT_DISABLED_MESSAGE
        return error.server_message or PAYMENT_FALLBACK_MESSAGE
    if isinstance(error, SubscriptionError):
        return error.message
    return PAYMENT_FALLBACK_MESSAGE
