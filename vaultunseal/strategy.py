"""Strategies for submitting unseal keys to a Vault server."""

import threading
import time
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from .errors import (
    RetriesExhaustedError,
    UnsealCancelledError,
    UnsealError,
    ValidationError,
    VaultError,
    is_retryable_error,
)

_UNKNOWN = "unknown"


@dataclass
class SealStatus:
    """Seal state reported by a Vault server."""

    sealed: bool
    threshold: int = 0
    shares: int = 0
    progress: int = 0


class KeyValidator(Protocol):
    def validate_keys(self, keys: Sequence[str], threshold: int) -> None: ...


class ClientMetrics(Protocol):
    def record_unseal_attempt(self, endpoint: str, success: bool, duration: float) -> None: ...


class VaultClient(Protocol):
    def get_seal_status(self, cancel: Optional[threading.Event] = None) -> SealStatus: ...

    def unseal(self, keys: Sequence[str], threshold: int,
               cancel: Optional[threading.Event] = None) -> SealStatus: ...


class UnsealStrategy(Protocol):
    def unseal(self, client: VaultClient, keys: Sequence[str], threshold: int,
               cancel: Optional[threading.Event] = None) -> Optional[SealStatus]: ...


class RetryPolicy(Protocol):
    @property
    def max_attempts(self) -> int: ...

    def should_retry(self, err: BaseException, attempt: int) -> bool: ...

    def next_delay(self, attempt: int) -> float: ...


def _wait(seconds: float, cancel: Optional[threading.Event]) -> bool:
    """Sleep; return True if cancelled meanwhile."""
    if cancel is None:
        time.sleep(max(seconds, 0))
        return False
    return cancel.wait(seconds)


class DefaultUnsealStrategy:
    """Validate keys, then submit them one at a time until Vault unseals."""

    def __init__(self, validator: KeyValidator, metrics: Optional[ClientMetrics] = None,
                 key_delay: float = 0.1) -> None:
        self.validator = validator
        self.metrics = metrics
        self.key_delay = key_delay

    def unseal(self, client, keys, threshold, cancel=None):
        start = time.monotonic()
        try:
            self.validator.validate_keys(keys, threshold)
        except Exception as exc:
            raise ValidationError(exc) from exc

        try:
            status = client.get_seal_status(cancel)
        except Exception as exc:
            raise VaultError("get-seal-status", _UNKNOWN, exc, retryable=True) from exc

        if not status.sealed:
            self._record(True, start)
            return status

        try:
            last = self._submit_keys(client, list(keys[:threshold]), cancel)
        except Exception:
            self._record(False, start)
            raise
        self._record(last is not None and not last.sealed, start)
        return last

    def _record(self, success: bool, start: float) -> None:
        if self.metrics is not None:
            self.metrics.record_unseal_attempt(_UNKNOWN, success, time.monotonic() - start)

    def _submit_keys(self, client, keys, cancel):
        last = None
        for index, key in enumerate(keys):
            if cancel is not None and cancel.is_set():
                raise UnsealCancelledError("cancelled during unseal operation")
            try:
                last = self._submit_single_key(client, key, index + 1, cancel)
            except Exception as exc:
                raise UnsealError(_UNKNOWN, index, exc) from exc
            if not last.sealed:
                break
            _wait(self.key_delay, cancel)
        return last

    @staticmethod
    def _submit_single_key(client, key, index, cancel):
        submit = getattr(client, "submit_single_key", None)
        if callable(submit):
            return submit(key, index, cancel)
        return client.unseal([key], getattr(client, "unseal_threshold", 3), cancel)


class ParallelUnsealStrategy:
    """Bounded-concurrency wrapper; a single instance goes to the base strategy."""

    def __init__(self, base_strategy: UnsealStrategy, max_concurrency: int = 0) -> None:
        self.base_strategy = base_strategy
        self.max_concurrency = max_concurrency if max_concurrency > 0 else 5

    def unseal(self, client, keys, threshold, cancel=None):
        return self.base_strategy.unseal(client, keys, threshold, cancel)


class RetryUnsealStrategy:
    """Run another strategy again after retryable failures."""

    def __init__(self, base_strategy: UnsealStrategy, retry_policy: RetryPolicy) -> None:
        self.base_strategy = base_strategy
        self.retry_policy = retry_policy

    def unseal(self, client, keys, threshold, cancel=None):
        max_attempts = self.retry_policy.max_attempts
        last_error = None
        for attempt in range(max_attempts):
            if cancel is not None and cancel.is_set():
                raise UnsealCancelledError(f"cancelled during retry attempt {attempt}")
            try:
                return self.base_strategy.unseal(client, keys, threshold, cancel)
            except Exception as exc:
                if not is_retryable_error(exc):
                    raise
                last_error = exc
            if attempt >= max_attempts - 1 or not self.retry_policy.should_retry(last_error, attempt):
                break
            if _wait(self.retry_policy.next_delay(attempt), cancel):
                raise UnsealCancelledError("cancelled during retry delay")
        raise RetriesExhaustedError(max_attempts, last_error) from last_error


class DefaultRetryPolicy:
    """Exponential backoff with a cap, retrying only retryable errors."""

    def __init__(self, max_attempts: int = 3, base_delay: float = 1.0,
                 max_delay: float = 10.0) -> None:
        self._max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def should_retry(self, err, attempt):
        return attempt < self._max_attempts - 1 and is_retryable_error(err)

    def next_delay(self, attempt):
        attempt = min(max(attempt, 0), 30)
        return min(self.base_delay * (1 << attempt), self.max_delay)