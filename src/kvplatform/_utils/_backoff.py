import random
from typing import Optional

from tenacity import RetryCallState
from tenacity.wait import wait_base

from .constants import EXP_BACKOFF_MAX_REPEATS, EXP_BACKOFF_MILLIS


def compute_delay(
    attempt: int,
    base_delay_millis: float = EXP_BACKOFF_MILLIS,
    max_retries: Optional[int] = EXP_BACKOFF_MAX_REPEATS,
) -> float:
    """Compute the delay in milliseconds to wait after a failed attempt.

    Uses exponential backoff with "full jitter": the delay is drawn uniformly
    from ``[0, base_delay_millis * 2 ** (attempt - 1)]``. The upper bound is
    capped at ``base_delay_millis * 2 ** max_retries``.

    Args:
        attempt: The 1-based number of the attempt that just failed.
        base_delay_millis: Delay bound for the first retry.
        max_retries: Retry ceiling used to cap the bound. ``None`` disables the cap.

    Returns:
        float: Milliseconds to wait before the next attempt.
    """
    if attempt < 1:
        raise ValueError("Attempt must be greater than zero.")
    if base_delay_millis < 0:
        raise ValueError("Base delay cannot be negative.")

    upper = base_delay_millis * 2 ** (attempt - 1)
    if max_retries is not None:
        upper = min(upper, base_delay_millis * 2**max_retries)

    return random.uniform(0, upper)


class wait_jittered_exponential(wait_base):
    """Tenacity wait strategy backed by :func:`compute_delay`."""

    def __init__(
        self,
        base_delay_millis: float = EXP_BACKOFF_MILLIS,
        max_retries: Optional[int] = EXP_BACKOFF_MAX_REPEATS,
    ) -> None:
        self.base_delay_millis = base_delay_millis
        self.max_retries = max_retries

    def __call__(self, retry_state: RetryCallState) -> float:
        delay_millis = compute_delay(
            retry_state.attempt_number, self.base_delay_millis, self.max_retries
        )
        return delay_millis / 1000
