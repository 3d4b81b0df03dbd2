"""
Webhook handling for payment events from Stripe.

Events are verified and stored by payments.services.WebhookService, then
processed asynchronously by payments.tasks.process_webhook_event, which
dispatches through the handler registry in this package.
"""

from payments.webhooks.handlers import dispatch_webhook, register_handler

__all__ = [
    "dispatch_webhook",
    "register_handler",
]
