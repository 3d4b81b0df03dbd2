"""
Celery configuration for the studio payments backend.

Background work in this project is limited to the processor side:
- Processing inbound Stripe webhook events
- Retrying refunds that failed on a transient processor error
- Periodic webhook maintenance, scheduled through django-celery-beat

Tasks are auto-discovered from all installed Django apps.

Usage:
    from payments.tasks import process_webhook_event

    process_webhook_event.delay(str(webhook_event.id))
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
