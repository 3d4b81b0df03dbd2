"""
Stripe API adapter for payment operations.

This module provides the StripeAdapter class which encapsulates all
Stripe API interactions. All Stripe calls go through this adapter to
ensure consistent error handling, timeouts, idempotency, and observability.

Features:
- Explicit timeout on every API call (STRIPE_API_TIMEOUT_SECONDS)
- Automatic error translation to domain exceptions
- Structured logging with timing metrics
- Deterministic idempotency keys for safe retries

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key (empty = not configured)
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)
- STRIPE_MAX_RETRIES: SDK network retries (default: 0)
- STRIPE_CHECKOUT_SUCCESS_URL: Redirect after hosted checkout

Usage:
    from payments.adapters import IdempotencyKeyGenerator, StripeAdapter

    result = StripeAdapter.refund_payment(
        idempotency_key=IdempotencyKeyGenerator.generate("refund", payment.id, "0-5000"),
        payment_id="pi_xxx",
        amount_cents=5000,
        currency="usd",
    )
"""

from __future__ import annotations

import hashlib
import logging
import time
import uuid
from typing import Any

import stripe
from django.conf import settings

from payments.adapters.base import (
    ProcessorPayment,
    ProcessorPaymentLink,
    ProcessorRefund,
)
from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
)
from payments.state_machines import PaymentLinkType

# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe API calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    Keys are deterministic: the same operation on the same entity for the
    same logical attempt always yields the same key, so a retry after a
    timeout is deduplicated by Stripe instead of refunding twice. Callers
    choose an ``attempt`` that changes only when the logical request does
    (for refunds: the refunded total the request was computed from, plus
    the requested amount).

    Example:
        key = IdempotencyKeyGenerator.generate(
            operation="refund",
            entity_id=payment.id,
            attempt="0-5000",
        )
        # "refund:550e8400-...:0-5000:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str,
        attempt: int | str = 1,
    ) -> str:
        """
        Generate an idempotency key.

        Args:
            operation: The Stripe operation (refund, payment_link, ...)
            entity_id: The domain entity ID (payment id, booking id)
            attempt: Logical attempt discriminator

        Returns:
            Formatted idempotency key string
        """
        entity_str = str(entity_id)
        # SECRET_KEY salt keeps keys unguessable across environments
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]

        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    All methods are classmethods - no instance state is maintained. The
    class itself satisfies payments.adapters.base.PaymentProcessor.

    Mapping to the processor capability surface:
        get_payment          -> PaymentIntent.retrieve + checkout.Session.list
        refund_payment       -> Refund.create
        create_payment_link  -> checkout.Session.create (mode=payment)
        verify_webhook       -> Webhook.construct_event
    """

    # =========================================================================
    # Configuration
    # =========================================================================

    @staticmethod
    def _configure_stripe() -> None:
        """Configure Stripe client with API key, timeout and retries."""
        stripe.api_key = settings.STRIPE_SECRET_KEY
        stripe.max_network_retries = settings.STRIPE_MAX_RETRIES
        stripe.default_http_client = stripe.RequestsClient(
            timeout=settings.STRIPE_API_TIMEOUT_SECONDS
        )

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def is_configured(cls) -> bool:
        return bool(settings.STRIPE_SECRET_KEY)

    # =========================================================================
    # Core Operations
    # =========================================================================

    @classmethod
    def get_payment(cls, payment_id: str) -> ProcessorPayment:
        """
        Fetch receipt URL and checkout reference for a PaymentIntent.

        Args:
            payment_id: Stripe PaymentIntent ID (pi_xxx)

        Returns:
            ProcessorPayment with whatever enrichment Stripe has

        Raises:
            StripeInvalidRequestError: PaymentIntent not found
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "get_payment",
            "payment_intent_id": payment_id,
        }

        start_time = time.time()
        logger.debug("Starting Stripe operation", extra=log_context)

        try:
            intent = stripe.PaymentIntent.retrieve(payment_id, expand=["latest_charge"])
            charge = intent.latest_charge
            receipt_url = None
            if charge is not None and not isinstance(charge, str):
                receipt_url = charge.receipt_url

            sessions = stripe.checkout.Session.list(payment_intent=payment_id, limit=1)
            order_id = sessions.data[0].id if sessions.data else None

            duration_ms = (time.time() - start_time) * 1000
            logger.debug(
                "Stripe operation completed",
                extra={**log_context, "duration_ms": duration_ms},
            )

            return ProcessorPayment(
                id=intent.id,
                receipt_url=receipt_url,
                order_id=order_id,
            )

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    @classmethod
    def refund_payment(
        cls,
        idempotency_key: str,
        payment_id: str,
        amount_cents: int,
        currency: str,
        reason: str | None = None,
    ) -> ProcessorRefund:
        """
        Refund part or all of a PaymentIntent.

        Stripe only accepts a fixed set of refund reasons, so the free-text
        reason travels in metadata.

        Args:
            idempotency_key: Deterministic key for this logical refund
            payment_id: Stripe PaymentIntent ID (pi_xxx)
            amount_cents: Exact amount to refund
            currency: ISO 4217 currency code (lowercase)
            reason: Optional free-text reason

        Returns:
            ProcessorRefund with refund details

        Raises:
            StripeInvalidRequestError: Refund not possible
            StripeTimeoutError / StripeAPIUnavailableError: Retry with same key
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "refund_payment",
            "payment_intent_id": payment_id,
            "amount_cents": amount_cents,
            "idempotency_key": idempotency_key,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            refund = stripe.Refund.create(
                idempotency_key=idempotency_key,
                payment_intent=payment_id,
                amount=amount_cents,
                currency=currency,
                reason="requested_by_customer",
                metadata={"reason": reason or ""},
            )

            duration_ms = (time.time() - start_time) * 1000
            logger.info(
                "Stripe operation completed",
                extra={
                    **log_context,
                    "refund_id": refund.id,
                    "status": refund.status,
                    "duration_ms": duration_ms,
                },
            )

            return ProcessorRefund(
                id=refund.id,
                status=refund.status,
                amount_cents=refund.amount,
                payment_id=payment_id,
                raw_response=refund.to_dict(),
            )

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    @classmethod
    def create_payment_link(
        cls,
        booking_id: str,
        service_name: str,
        amount_cents: int,
        link_type: str,
        currency: str,
        idempotency_key: str,
    ) -> ProcessorPaymentLink:
        """
        Create a hosted Checkout Session for a booking.

        The session id is the order reference stored on the booking; the
        booking id travels as client_reference_id so the completion webhook
        can find it even if the reference was never stored.

        Returns:
            ProcessorPaymentLink with the checkout URL and session id
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "create_payment_link",
            "booking_id": booking_id,
            "amount_cents": amount_cents,
            "link_type": link_type,
            "idempotency_key": idempotency_key,
        }

        label = service_name
        if link_type == PaymentLinkType.DEPOSIT:
            label = f"Deposit: {service_name}"

        metadata = {"booking_id": booking_id, "link_type": link_type}

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            session = stripe.checkout.Session.create(
                idempotency_key=idempotency_key,
                mode="payment",
                line_items=[
                    {
                        "price_data": {
                            "currency": currency,
                            "unit_amount": amount_cents,
                            "product_data": {"name": label},
                        },
                        "quantity": 1,
                    }
                ],
                client_reference_id=booking_id,
                metadata=metadata,
                payment_intent_data={"metadata": metadata},
                success_url=settings.STRIPE_CHECKOUT_SUCCESS_URL,
            )

            duration_ms = (time.time() - start_time) * 1000
            logger.info(
                "Stripe operation completed",
                extra={
                    **log_context,
                    "checkout_session_id": session.id,
                    "duration_ms": duration_ms,
                },
            )

            return ProcessorPaymentLink(url=session.url, order_id=session.id)

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

    @classmethod
    def verify_webhook(cls, payload: bytes, signature: str) -> dict[str, Any]:
        """
        Verify and parse a Stripe webhook event.

        Args:
            payload: Raw webhook payload bytes
            signature: Stripe-Signature header value

        Returns:
            Parsed event data dict

        Raises:
            StripeInvalidRequestError: Invalid signature or payload
        """
        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                settings.STRIPE_WEBHOOK_SECRET,
            )
            return event.to_dict()
        except stripe.SignatureVerificationError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook signature",
                stripe_code="signature_verification_failed",
                details={"error": str(e)},
            ) from e
        except ValueError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook payload",
                stripe_code="invalid_payload",
                details={"error": str(e)},
            ) from e

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to domain exceptions.

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInvalidRequestError: Invalid request parameters or auth
            StripeRateLimitError: Rate limited
            StripeTimeoutError: Request exceeded the configured timeout
            StripeAPIUnavailableError: API unavailable or unknown failure
        """
        logger = cls.get_logger()

        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.CardError):
            decline_code = getattr(error, "decline_code", None)
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": decline_code},
            )
            raise StripeCardDeclinedError(
                str(error.user_message or error),
                stripe_code=error.code,
                decline_code=decline_code,
            ) from error

        elif isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            raise StripeInvalidRequestError(
                str(error.user_message or error),
                stripe_code=error.code,
            ) from error

        elif isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            ) from error

        elif isinstance(error, stripe.APIConnectionError):
            # The request may have reached Stripe; retries must reuse the key
            if "timed out" in str(error).lower() or "timeout" in str(error).lower():
                logger.error("Stripe request timed out", extra=log_context)
                raise StripeTimeoutError(
                    "Stripe request timed out. Please retry.",
                    stripe_code="timeout",
                ) from error

            logger.error(
                "Connection error to Stripe",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            ) from error

        elif isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise StripeInvalidRequestError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            ) from error

        elif isinstance(error, stripe.APIError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise StripeAPIUnavailableError(
                "Stripe service error. Please retry.",
                stripe_code="api_error",
            ) from error

        else:
            logger.error(
                f"Unexpected error from Stripe: {type(error).__name__}",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                f"Unexpected Stripe error: {error}",
                stripe_code="unknown_error",
            ) from error
