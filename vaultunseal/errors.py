"""Exception types raised while unsealing and the rules for retrying them."""

from typing import Optional


class VaultError(Exception):
    """A failed call to a Vault server, flagged as retryable or not."""

    def __init__(
        self,
        operation: str,
        endpoint: str,
        cause: Optional[BaseException] = None,
        retryable: bool = False,
    ) -> None:
        self.operation = operation
        self.endpoint = endpoint
        self.cause = cause
        self.retryable = retryable
        super().__init__(f"vault {operation} failed for {endpoint}: {cause}")


class UnsealError(Exception):
    """Submitting one unseal key failed."""

    def __init__(self, endpoint: str, key_index: int, cause: BaseException) -> None:
        self.endpoint = endpoint
        self.key_index = key_index
        self.cause = cause
        super().__init__(
            f"failed to submit unseal key at index {key_index} to {endpoint}: {cause}"
        )


class ValidationError(Exception):
    """The unseal keys or threshold were rejected before contacting Vault."""

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(f"validation failed: {cause}")


class UnsealCancelledError(Exception):
    """The operation was cancelled before it could finish."""


class RetriesExhaustedError(Exception):
    """Every allowed attempt failed."""

    def __init__(self, attempts: int, last_error: Optional[BaseException]) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"failed after {attempts} attempts: {last_error}")


_NEVER_RETRYABLE = (ValidationError, UnsealCancelledError, RetriesExhaustedError)


def is_retryable_error(err: Optional[BaseException]) -> bool:
    """Tell whether trying the same operation again may succeed."""
    if err is None or isinstance(err, _NEVER_RETRYABLE):
        return False
    if isinstance(err, VaultError):
        return err.retryable
    if isinstance(err, UnsealError):
        cause = err.cause
        if isinstance(cause, (VaultError, *_NEVER_RETRYABLE)):
            return is_retryable_error(cause)
        return True
    return isinstance(err, (ConnectionError, TimeoutError))