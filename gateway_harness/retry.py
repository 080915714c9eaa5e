"""
Bounded retries for transient gateway failures.

A RetryPolicy is plain data; retry_call is the control flow. Only statuses
listed in the policy and transport-level errors are retried. When status
retries run out the last response is returned unchanged and the caller
asserts on it.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Iterable, Tuple, Type, TypeVar

from gateway_harness.errors import TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FixedDelay:
    seconds: float

    def __call__(self, attempt: int) -> float:
        return self.seconds


@dataclass(frozen=True)
class ExponentialDelay:
    base: float
    multiplier: float = 2.0

    def __call__(self, attempt: int) -> float:
        # attempt 1 -> base, attempt 2 -> base * multiplier, ...
        return self.base * self.multiplier ** (attempt - 1)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    retryable_status_codes: FrozenSet[int] = field(default_factory=lambda: frozenset({405, 503}))
    delay: Callable[[int], float] = FixedDelay(0.5)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        object.__setattr__(self, "retryable_status_codes", frozenset(self.retryable_status_codes))

    def is_retryable_status(self, status_code: int) -> bool:
        return status_code in self.retryable_status_codes


def policy(max_attempts: int, codes: Iterable[int], delay: Callable[[int], float]) -> RetryPolicy:
    return RetryPolicy(max_attempts=max_attempts, retryable_status_codes=frozenset(codes), delay=delay)


# 405 while gateway routes are still loading, 503 while a circuit breaker is open
GATEWAY_POST_POLICY = policy(3, {405, 503}, FixedDelay(0.5))
PAYMENT_LOOKUP_POLICY = policy(5, {503}, ExponentialDelay(1.0, 2.0))
NO_RETRY = policy(1, (), FixedDelay(0))


def retry_call(
    operation: Callable[[], T],
    retry_policy: RetryPolicy,
    should_retry: Callable[[T], bool],
    retry_on: Tuple[Type[BaseException], ...] = (TransportError,),
    sleep: Callable[[float], None] = time.sleep,
    label: str = "operation",
) -> T:
    """Run operation until it yields a result should_retry rejects, or attempts run out.

    Exceptions listed in retry_on are retried the same way; the last one is
    re-raised once the budget is spent. Any other exception propagates at once.
    """
    attempt = 1
    while True:
        try:
            result = operation()
        except retry_on as e:
            if attempt >= retry_policy.max_attempts:
                raise
            logger.warning("%s failed (attempt %d/%d): %s", label, attempt, retry_policy.max_attempts, e)
        else:
            if attempt >= retry_policy.max_attempts or not should_retry(result):
                return result
            logger.info("%s transient result (attempt %d/%d), retrying", label, attempt, retry_policy.max_attempts)
        pause = retry_policy.delay(attempt)
        if pause > 0:
            sleep(pause)
        attempt += 1


def execute_with_retry(transport, spec, retry_policy: RetryPolicy, sleep: Callable[[float], None] = time.sleep):
    """Send spec through transport, retrying transient statuses and transport errors."""
    label = f"{spec.method} {spec.endpoint}"
    try:
        return retry_call(
            lambda: transport.execute(spec),
            retry_policy,
            lambda response: retry_policy.is_retryable_status(response.status_code),
            sleep=sleep,
            label=label,
        )
    except TransportError as e:
        raise TransportError(f"{label} failed after {retry_policy.max_attempts} attempt(s): {e}") from e
