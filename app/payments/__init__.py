"""
Payments app - the reconciliation engine.

This app handles:
- Recording payments against bookings
- Full and partial refunds through the external processor
- Hosted payment links for deposits and balances
- The append-only sync log of every processor interaction
- Inbound processor webhooks

Related apps:
    - bookings: Bookings being paid and their balances
    - giftcards / promotions: Discounts applied to bookings

Usage:
    from payments.services import RefundService

    result = RefundService.process_refund(payment.id, 5000, reason="No-show")
"""
