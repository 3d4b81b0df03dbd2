"""
Payment-specific exceptions.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentNotFoundError - Payment lookup failures
    ├── PaymentValidationError - Malformed payment input
    ├── DuplicatePaymentError - Processor payment already recorded
    └── PaymentProcessingError - Processor-side failures
        ├── ProcessorNotConfiguredError - No processor credentials
        └── StripeError - Base for all Stripe errors
            ├── StripeCardDeclinedError - Card declined (permanent)
            ├── StripeInvalidRequestError - Invalid request params (permanent)
            ├── StripeRateLimitError - Rate limited (transient, retry)
            ├── StripeAPIUnavailableError - API unavailable (transient, retry)
            └── StripeTimeoutError - Request timeout (transient, retry)

    LockAcquisitionError - Distributed lock timeout (inherits ConflictError)
    RefundConflictError - Concurrent refund won the race (inherits ConflictError)

Usage:
    from payments.exceptions import StripeError

    try:
        StripeAdapter.refund_payment(...)
    except StripeError as e:
        if e.is_retryable:
            schedule_retry(e)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all payment operations.
    """

    default_error_code: str = "PAYMENT_ERROR"


class PaymentNotFoundError(PaymentError):
    """
    Raised when a payment cannot be found.

    Example:
        payment = Payment.objects.filter(id=payment_id).first()
        if not payment:
            raise PaymentNotFoundError(
                "Payment not found",
                details={"payment_id": str(payment_id)},
            )
    """

    default_error_code: str = "PAYMENT_NOT_FOUND"


class PaymentValidationError(PaymentError):
    """
    Raised when payment input is malformed.

    Use for:
    - Non-positive payment amount
    - Negative tip
    - Unknown payment method
    """

    default_error_code: str = "PAYMENT_VALIDATION_ERROR"


class DuplicatePaymentError(PaymentError):
    """Raised when a processor payment id has already been recorded."""

    default_error_code: str = "DUPLICATE_PAYMENT"


class PaymentProcessingError(PaymentError):
    """
    Raised when the external processor cannot complete an operation.
    """

    default_error_code: str = "PAYMENT_PROCESSING_ERROR"


class ProcessorNotConfiguredError(PaymentProcessingError):
    """
    Raised when no processor credentials are configured.

    Payment links check for this before any lookup or processor call.
    """

    default_error_code: str = "PROCESSOR_NOT_CONFIGURED"


# =============================================================================
# Stripe-Specific Exceptions
# =============================================================================


class StripeError(PaymentProcessingError):
    """
    Base exception for all Stripe-related errors.

    Provides common attributes for Stripe error handling:
    - stripe_code: Stripe's internal error code
    - decline_code: Card decline code (if applicable)
    - is_retryable: Whether the operation can be retried

    Use is_retryable to determine retry behavior:
    - True: Transient error, safe to retry with the same idempotency key
    - False: Permanent error, do not retry
    """

    default_error_code: str = "STRIPE_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class StripeCardDeclinedError(StripeError):
    """Card was declined by the issuing bank."""

    default_error_code: str = "CARD_DECLINED"
    is_retryable: bool = False


class StripeInvalidRequestError(StripeError):
    """
    Stripe rejected the request parameters.

    For refunds this covers "charge already refunded" and amounts larger
    than what Stripe still holds, which means local and remote state have
    drifted and need reconciliation.
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"
    is_retryable: bool = False


# -----------------------------------------------------------------------------
# Transient Errors (retry with the same idempotency key)
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    """Too many requests to Stripe."""

    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """Stripe API returned a server error or could not be reached."""

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True


class StripeTimeoutError(StripeError):
    """
    Stripe request exceeded STRIPE_API_TIMEOUT_SECONDS.

    The request may still have succeeded remotely. Retrying with the same
    idempotency key returns the original result instead of acting twice.
    """

    default_error_code: str = "STRIPE_TIMEOUT"
    is_retryable: bool = True


# =============================================================================
# Concurrency Control Exceptions
# =============================================================================


class LockAcquisitionError(ConflictError):
    """
    Raised when a distributed lock cannot be acquired in time.

    Example:
        raise LockAcquisitionError(
            "Could not acquire lock for refund:payment:123 within 10s",
            details={"key": "refund:payment:123", "timeout": 10},
        )
    """

    default_error_code: str = "LOCK_ACQUISITION_FAILED"


class RefundConflictError(ConflictError):
    """
    Raised when the conditional refund update matches no row.

    Another refund consumed the refundable amount between validation and
    the local write.
    """

    default_error_code: str = "REFUND_CONFLICT"
