import threading
from typing import List


class Statistics:
    """Counters shared by every call made through one client instance.

    Attributes:
        calls: Number of logical calls (one per ``HttpClient.call``).
        requests: Number of requests sent, retries included.
        rate_limit_errors: How many times the rate-limit status was received,
            indexed by attempt (index 0 is the first attempt of a call).
    """

    def __init__(self) -> None:
        self.calls = 0
        self.requests = 0
        self.rate_limit_errors: List[int] = []
        self._lock = threading.Lock()

    def add_call(self) -> None:
        with self._lock:
            self.calls += 1

    def add_request(self) -> None:
        with self._lock:
            self.requests += 1

    def add_rate_limit_error(self, attempt: int) -> None:
        """Record a rate-limit response received on ``attempt`` (1-based)."""
        if attempt < 1:
            raise ValueError("Attempt must be greater than zero.")
        with self._lock:
            missing = attempt - len(self.rate_limit_errors)
            if missing > 0:
                self.rate_limit_errors.extend([0] * missing)
            self.rate_limit_errors[attempt - 1] += 1

    def __repr__(self) -> str:
        return (
            f"Statistics(calls={self.calls}, requests={self.requests}, "
            f"rate_limit_errors={self.rate_limit_errors})"
        )
