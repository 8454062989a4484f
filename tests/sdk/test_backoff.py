from unittest.mock import Mock, patch

import pytest

from kvplatform._utils import compute_delay, wait_jittered_exponential


class TestComputeDelay:
    @pytest.mark.parametrize("attempt", [1, 2, 3, 5, 8])
    def test_delay_within_bounds(self, attempt: int):
        upper = 500 * 2 ** (attempt - 1)
        for _ in range(50):
            assert 0 <= compute_delay(attempt, 500) <= upper

    def test_delay_uses_full_window(self):
        with patch("random.uniform", side_effect=lambda low, high: high):
            assert compute_delay(1, 500) == 500
            assert compute_delay(4, 500) == 4000

    def test_delay_is_capped(self):
        with patch("random.uniform", side_effect=lambda low, high: high):
            assert compute_delay(10, 500, max_retries=2) == 2000
            assert compute_delay(10, 500, max_retries=None) == 500 * 2**9

    def test_default_worst_case(self):
        with patch("random.uniform", side_effect=lambda low, high: high):
            assert compute_delay(20) == 128_000

    def test_zero_base_delay(self):
        assert compute_delay(3, 0) == 0

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            compute_delay(0, 500)
        with pytest.raises(ValueError):
            compute_delay(1, -1)


class TestWaitJitteredExponential:
    def test_returns_seconds(self):
        wait = wait_jittered_exponential(base_delay_millis=1000, max_retries=8)
        retry_state = Mock(attempt_number=3)

        with patch("random.uniform", side_effect=lambda low, high: high):
            assert wait(retry_state) == 4.0
