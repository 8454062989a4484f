import pytest

from kvplatform._utils import ResponseClass, classify_status


class TestClassifyStatus:
    @pytest.mark.parametrize("status_code", [100, 200, 201, 204, 299])
    def test_success_below_300(self, status_code: int):
        assert classify_status(status_code) is ResponseClass.SUCCESS
        assert classify_status(status_code, [200, 403]) is ResponseClass.SUCCESS

    @pytest.mark.parametrize("status_code", [300, 301, 400, 401, 403, 404, 499])
    def test_terminal_client_errors(self, status_code: int):
        assert classify_status(status_code) is ResponseClass.TERMINAL

    @pytest.mark.parametrize("status_code", [500, 502, 503, 504, 599])
    def test_server_errors_are_retryable(self, status_code: int):
        assert classify_status(status_code) is ResponseClass.RETRYABLE
        assert classify_status(status_code, []) is ResponseClass.RETRYABLE

    def test_rate_limit_is_retryable(self):
        assert classify_status(429) is ResponseClass.RETRYABLE

    def test_rate_limit_is_retryable_with_custom_codes(self):
        assert classify_status(429, [403]) is ResponseClass.RETRYABLE

    def test_custom_retry_codes(self):
        assert classify_status(403, [403]) is ResponseClass.RETRYABLE
        assert classify_status(404, [403]) is ResponseClass.TERMINAL
