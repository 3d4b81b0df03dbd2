"""
Django settings for the studio payments backend.

This is the single settings file for all environments. Configuration is driven
by environment variables using django-environ, following the 12-factor app
methodology.

Environment files:
    - .env.development: Development settings (DEBUG=True, test Stripe keys)
    - .env.production: Production settings (DEBUG=False, live Stripe keys)

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/topics/settings/
"""

import os
from pathlib import Path

import environ

# =============================================================================
# Path Configuration
# =============================================================================
BASE_DIR = Path(__file__).resolve().parent.parent

# =============================================================================
# Environment Configuration
# =============================================================================
env = environ.Env(
    DEBUG=(bool, False),
    ALLOWED_HOSTS=(list, []),
    LOG_LEVEL=(str, "INFO"),
    CELERY_TASK_ALWAYS_EAGER=(bool, False),
    PROMOTIONS_APPLY_REVALIDATES=(bool, False),
)

# In Docker, env vars are passed directly; .env files are for local dev
env_file = os.environ.get("ENV_FILE", BASE_DIR.parent / ".env.development")
if Path(env_file).exists():
    environ.Env.read_env(env_file)

# =============================================================================
# Core Settings
# =============================================================================
# SECURITY WARNING: keep the secret key used in production secret!
# Also salts processor idempotency keys, so rotating it changes them.
SECRET_KEY = env("SECRET_KEY")

DEBUG = env("DEBUG")

ALLOWED_HOSTS = env("ALLOWED_HOSTS")

# =============================================================================
# Application Definition
# =============================================================================
INSTALLED_APPS = [
    # Django core apps
    "django.contrib.contenttypes",
    "django.contrib.auth",
    # Third-party apps
    "django_celery_beat",
    # Local apps
    "core",
    "bookings",
    "giftcards",
    "promotions",
    "payments",
]

# =============================================================================
# Database Configuration
# =============================================================================
DATABASES = {
    "default": env.db(
        "DATABASE_URL",
        default="postgres://postgres:postgres@db:5432/studio_dev",
    ),
}

if DATABASES["default"]["ENGINE"] == "django.db.backends.postgresql":
    DATABASES["default"].setdefault("OPTIONS", {})["connect_timeout"] = 10

# =============================================================================
# Cache Configuration
# =============================================================================
# rediscache:// resolves to django_redis; tests use locmemcache://
CACHES = {
    "default": env.cache("CACHE_URL", default="rediscache://redis:6379/0"),
}

if CACHES["default"]["BACKEND"] == "django_redis.cache.RedisCache":
    CACHES["default"].setdefault("OPTIONS", {}).update(
        {
            "CLIENT_CLASS": "django_redis.client.DefaultClient",
            # Gracefully handle Redis connection failures
            "IGNORE_EXCEPTIONS": True,
        }
    )

# Seconds a computed booking balance stays cached
BOOKING_BALANCE_CACHE_SECONDS = env.int("BOOKING_BALANCE_CACHE_SECONDS", default=300)

# =============================================================================
# Celery Configuration
# =============================================================================
CELERY_BROKER_URL = env("CELERY_BROKER_URL", default="redis://redis:6379/1")
CELERY_RESULT_BACKEND = env("CELERY_RESULT_BACKEND", default="redis://redis:6379/1")
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = "UTC"
CELERY_TASK_TRACK_STARTED = True
CELERY_TASK_TIME_LIMIT = 5 * 60  # 5 minutes
CELERY_TASK_ALWAYS_EAGER = env("CELERY_TASK_ALWAYS_EAGER")
CELERY_BEAT_SCHEDULER = "django_celery_beat.schedulers:DatabaseScheduler"

# =============================================================================
# Stripe Configuration
# =============================================================================
# An empty secret key means the processor integration is not configured:
# payment links fail fast and recorded payments skip enrichment.
STRIPE_SECRET_KEY = env("STRIPE_SECRET_KEY", default="")

# Webhook signing secret from: https://dashboard.stripe.com/webhooks
STRIPE_WEBHOOK_SECRET = env("STRIPE_WEBHOOK_SECRET", default="")

# Explicit deadline for every outbound Stripe call
STRIPE_API_TIMEOUT_SECONDS = env.int("STRIPE_API_TIMEOUT_SECONDS", default=10)

# SDK-level network retries; 0 keeps one sync log entry per attempt
STRIPE_MAX_RETRIES = env.int("STRIPE_MAX_RETRIES", default=0)

# Where hosted checkout redirects after a successful payment
STRIPE_CHECKOUT_SUCCESS_URL = env(
    "STRIPE_CHECKOUT_SUCCESS_URL",
    default="https://studio.example.com/booking/paid",
)

# =============================================================================
# Payments Configuration
# =============================================================================
# Single studio currency; amounts are always integer minor units
PAYMENTS_CURRENCY = env("PAYMENTS_CURRENCY", default="usd")

# Distributed lock around refund execution (seconds)
PAYMENTS_LOCK_TTL_SECONDS = env.int("PAYMENTS_LOCK_TTL_SECONDS", default=60)
PAYMENTS_LOCK_TIMEOUT_SECONDS = env.float("PAYMENTS_LOCK_TIMEOUT_SECONDS", default=10.0)

# =============================================================================
# Gift Cards & Promotions
# =============================================================================
GIFT_CARD_CODE_PREFIX = env("GIFT_CARD_CODE_PREFIX", default="TC-GC")

# When True, applying a promo code re-runs the full eligibility chain
# (active, window, usage cap, scope) instead of checking existence only.
PROMOTIONS_APPLY_REVALIDATES = env("PROMOTIONS_APPLY_REVALIDATES")

# =============================================================================
# Internationalization
# =============================================================================
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# =============================================================================
# Default Primary Key Field Type
# =============================================================================
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# =============================================================================
# Logging Configuration
# =============================================================================
LOG_LEVEL = env("LOG_LEVEL")

# Log file name determined by service (web, celery-worker)
LOG_FILE_NAME = env("LOG_FILE_NAME", default="django.log")
LOG_DIR = BASE_DIR / "logs"

LOG_DIR.mkdir(parents=True, exist_ok=True)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {module} {process:d} {thread:d} {message}",
            "style": "{",
        },
        "file": {
            "format": "[{asctime}] {levelname} {name} {module}:{lineno} - {message}",
            "style": "{",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
        "file": {
            # Max 10MB per file, keeps 5 backups
            "level": "DEBUG",
            "class": "logging.handlers.RotatingFileHandler",
            "filename": LOG_DIR / LOG_FILE_NAME,
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 5,
            "formatter": "file",
            "encoding": "utf-8",
        },
    },
    "root": {
        "handlers": ["console", "file"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django": {
            "handlers": ["console", "file"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "celery": {
            "handlers": ["console", "file"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "payments": {
            "handlers": ["console", "file"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
    },
}
