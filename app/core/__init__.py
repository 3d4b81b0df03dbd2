"""
Core Application - Infrastructure & Base Classes

Shared foundation for the domain apps (bookings, payments, giftcards,
promotions). No business rules live here.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - AppendOnlyMixin: Reject updates and deletes of persisted rows

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ValidationError: Input validation failures
    - NotFoundError: Resource not found
    - PermissionDeniedError: Caller may not act on the record
    - ConflictError: State conflicts (duplicates, concurrent updates)

Values (import from core.money / core.actors):
    - Money: Integer minor-unit amount
    - Actor: Identity threaded through mutating operations

Note:
    Django models and model mixins are NOT imported here to avoid
    AppRegistryNotReady errors. Import them directly from their modules.
"""

# Services (no Django model dependencies)
from .services import BaseService, ServiceResult

# Exceptions (no Django dependencies)
from .exceptions import (
    BaseApplicationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

# Values
from .actors import Actor
from .money import Money

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Exceptions
    "BaseApplicationError",
    "ValidationError",
    "NotFoundError",
    "PermissionDeniedError",
    "ConflictError",
    # Values
    "Actor",
    "Money",
]
