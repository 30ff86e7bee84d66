# vaultunseal

This package provides strategies for unsealing a Vault server from a set of
unseal keys. It has two modules: `vaultunseal.strategy` and
`vaultunseal.errors`.

## Strategies (`vaultunseal.strategy`)

- `DefaultUnsealStrategy(validator, metrics=None, key_delay=0.1)`
  1. Passes the keys and the threshold to `validator.validate_keys`.
  2. Asks the client for its seal status. If the server is already unsealed,
     it returns that status.
  3. Otherwise it submits keys one at a time, using at most the first
     `threshold` keys. It stops as soon as the server reports it is unsealed
     and waits `key_delay` seconds between submissions.
  4. It returns the last `SealStatus` it received. When no key was submitted,
     it returns `None`.

  If `metrics` is given, the strategy calls
  `metrics.record_unseal_attempt(endpoint, success, duration)` once per call.
  `duration` is in seconds.

  A client that has a `submit_single_key(key, index, cancel)` method gets each
  key that way. Any other client gets `unseal([key], threshold, cancel)`. In
  that case the threshold is the client's `unseal_threshold` attribute, or 3
  if the client has none.
- `ParallelUnsealStrategy(base_strategy, max_concurrency=0)` wraps another
  strategy. It keeps a concurrency limit, which is 5 when the value given is
  zero or negative. For a single client it hands the call to the wrapped
  strategy.
- `RetryUnsealStrategy(base_strategy, retry_policy)` runs the wrapped strategy
  up to `retry_policy.max_attempts` times. Between attempts it sleeps for
  `retry_policy.next_delay(attempt)` seconds. A failure that is not retryable
  is raised at once. When every attempt has failed, it raises
  `RetriesExhaustedError`.
- `DefaultRetryPolicy(max_attempts=3, base_delay=1.0, max_delay=10.0)` uses
  exponential backoff: `base_delay * 2**attempt`, capped at `max_delay`, with
  the attempt number clamped to the range 0 to 30. `should_retry(err, attempt)`
  is true only for a retryable error when the attempt is not the last one.

The module also defines the protocols that your own objects must follow:
`VaultClient`, `KeyValidator`, `ClientMetrics`, `UnsealStrategy` and
`RetryPolicy`. It also defines the `SealStatus` dataclass, with the fields
`sealed`, `threshold`, `shares` and `progress`.

## Errors (`vaultunseal.errors`)

- `ValidationError` is raised when the validator rejects the keys or the
  threshold.
- `VaultError` is raised when reading the seal status fails. That case is
  marked retryable.
- `UnsealError` is raised when submitting a key fails. It carries the key's
  `key_index` and the underlying `cause`.
- `UnsealCancelledError` is raised when the `cancel` event is set.
- `RetriesExhaustedError` is raised when all retry attempts have failed. It
  carries `attempts` and `last_error`.

`is_retryable_error(err)` returns true in these cases:

- a `VaultError` flagged as retryable;
- an `UnsealError`, unless its cause is not retryable;
- `ConnectionError` and `TimeoutError`.

It returns false for `None`, `ValidationError`, `UnsealCancelledError` and
`RetriesExhaustedError`.

## Usage

```python
import threading

from vaultunseal.strategy import (
    DefaultRetryPolicy,
    DefaultUnsealStrategy,
    RetryUnsealStrategy,
)

base = DefaultUnsealStrategy(validator, metrics=None)
strategy = RetryUnsealStrategy(base, DefaultRetryPolicy())

cancel = threading.Event()
status = strategy.unseal(client, keys, 3, cancel)
if status is not None:
    print("sealed:", status.sealed)
```

To cancel, set the `cancel` event from another thread. It is checked before
each key submission, before each retry attempt and during retry delays.

## What this package does not do

The package does not include these parts; you supply them:

- an HTTP client that talks to a real Vault server;
- a key validator;
- a metrics backend.

It has no command-line program and no long-running service.

## Tests

The tests use pytest, which is included in the `test` extra.