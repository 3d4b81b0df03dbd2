"""
Distributed locking for refund execution.

Refunds call the processor outside any database transaction, so a row lock
cannot cover the whole operation. A Redis lock (via django-redis) serializes
refunds per payment across web workers and Celery workers; the conditional
UPDATE in RefundService remains the final guard if the lock is lost.

Usage:
    from payments.locks import refund_lock

    with refund_lock(payment.id):
        RefundService._execute_refund(...)
"""

from __future__ import annotations

import time
import uuid as uuid_module
from typing import TYPE_CHECKING

from django.conf import settings

from django_redis import get_redis_connection

from payments.exceptions import LockAcquisitionError

if TYPE_CHECKING:
    from typing import Any

    from redis import Redis


class DistributedLock:
    """
    Redis-based distributed lock with TTL.

    Features:
        - Automatic TTL so a crashed worker cannot hold the lock forever
        - Token-based ownership so only the holder can release
        - Blocking and non-blocking acquisition modes

    Example:
        lock = DistributedLock("refund:payment:123", ttl=60, timeout=5.0)
        try:
            with lock:
                do_refund()
        except LockAcquisitionError:
            return ServiceResult.failure("Refund already in progress")

    Args:
        key: Lock identifier (prefixed with "lock:")
        ttl: Lock TTL in seconds; must exceed the processor timeout
        blocking: If True, acquire() waits until the lock is available
        timeout: Maximum wait time in seconds (only if blocking=True)
    """

    # Atomic check-and-delete so we never release someone else's lock
    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    def __init__(
        self,
        key: str,
        ttl: int = 30,
        blocking: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.key = f"lock:{key}"
        self.ttl = ttl
        self.blocking = blocking
        self.timeout = timeout
        self._token: str | None = None
        self._redis: Redis | None = None

    def _get_redis(self) -> Redis:
        if self._redis is None:
            self._redis = get_redis_connection("default")
        return self._redis

    def acquire(self) -> bool:
        """
        Acquire the lock.

        Raises:
            LockAcquisitionError: If the lock could not be acquired
        """
        self._token = str(uuid_module.uuid4())
        redis = self._get_redis()

        if self.blocking:
            end_time = time.monotonic() + self.timeout
            while time.monotonic() < end_time:
                if self._try_acquire(redis):
                    return True
                time.sleep(0.05)

            self._token = None
            raise LockAcquisitionError(
                f"Failed to acquire lock '{self.key}' within {self.timeout}s",
                details={"key": self.key, "timeout": self.timeout},
            )

        if not self._try_acquire(redis):
            self._token = None
            raise LockAcquisitionError(
                f"Lock '{self.key}' is already held",
                details={"key": self.key},
            )
        return True

    def _try_acquire(self, redis: Redis) -> bool:
        return bool(redis.set(self.key, self._token, nx=True, ex=self.ttl))

    def release(self) -> bool:
        """
        Release the lock if we hold it.

        Returns:
            True if the lock was released, False if we didn't hold it
        """
        if self._token is None:
            return False

        redis = self._get_redis()
        result = redis.eval(self.RELEASE_SCRIPT, 1, self.key, self._token)
        self._token = None
        return bool(result)

    @property
    def is_held(self) -> bool:
        return self._token is not None

    def __enter__(self) -> DistributedLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> bool:
        self.release()
        return False


def refund_lock(payment_id: Any) -> DistributedLock:
    """Build the per-payment refund lock from settings."""
    return DistributedLock(
        f"refund:payment:{payment_id}",
        ttl=settings.PAYMENTS_LOCK_TTL_SECONDS,
        timeout=settings.PAYMENTS_LOCK_TIMEOUT_SECONDS,
    )


__all__ = [
    "DistributedLock",
    "refund_lock",
]
