import asyncio
import logging
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from pytest_httpx import HTTPXMock

from kvplatform._config import Config
from kvplatform._services import HttpClient
from kvplatform._utils import CallOptions, RequestSpec
from kvplatform._utils.constants import HEADER_USER_AGENT
from kvplatform.models.errors import (
    ErrorReason,
    RetriesExhaustedError,
    TerminalRequestError,
)

ENDPOINT = "/v2/key-value-stores"


@pytest.fixture
def spec() -> RequestSpec:
    return RequestSpec(method="GET", url=ENDPOINT)


@pytest.fixture
def url(base_url: str) -> str:
    return f"{base_url}{ENDPOINT}"


class TestHttpClient:
    class TestCallAsync:
        @pytest.mark.anyio
        async def test_success_on_first_attempt(
            self,
            httpx_mock: HTTPXMock,
            http_client: HttpClient,
            spec: RequestSpec,
            url: str,
            token: str,
        ):
            httpx_mock.add_response(url=url, status_code=200, json={"data": {}})

            response = await http_client.call_async(spec)

            assert response.status_code == 200
            assert http_client.stats.calls == 1
            assert http_client.stats.requests == 1
            assert http_client.stats.rate_limit_errors == []

            sent_request = httpx_mock.get_request()
            assert sent_request is not None
            assert sent_request.headers["Authorization"] == f"Bearer {token}"
            assert sent_request.headers[HEADER_USER_AGENT].startswith(
                "KvPlatformClient/"
            )

        @pytest.mark.anyio
        async def test_rate_limited_then_success(
            self,
            httpx_mock: HTTPXMock,
            http_client: HttpClient,
            spec: RequestSpec,
            url: str,
        ):
            for _ in range(3):
                httpx_mock.add_response(url=url, status_code=429)
            httpx_mock.add_response(url=url, status_code=200, json={"data": {}})

            with (
                patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep,
                patch("random.uniform", side_effect=lambda low, high: high),
            ):
                response = await http_client.call_async(spec)

            assert response.status_code == 200
            assert http_client.stats.calls == 1
            assert http_client.stats.requests == 4
            assert http_client.stats.rate_limit_errors == [1, 1, 1]
            assert [c.args[0] for c in mock_sleep.call_args_list] == [0.5, 1.0, 2.0]

        @pytest.mark.anyio
        async def test_terminal_error_is_not_retried(
            self,
            httpx_mock: HTTPXMock,
            http_client: HttpClient,
            spec: RequestSpec,
            url: str,
        ):
            httpx_mock.add_response(
                url=url,
                status_code=404,
                json={"error": {"type": "not-found", "message": "Not found"}},
            )

            with pytest.raises(TerminalRequestError) as exc_info:
                await http_client.call_async(spec)

            error = exc_info.value
            assert error.status_code == 404
            assert error.message == "Not found"
            assert error.error_type == "not-found"
            assert error.attempt == 1
            assert error.reason is ErrorReason.TERMINAL
            assert http_client.stats.requests == 1
            assert len(httpx_mock.get_requests()) == 1

        @pytest.mark.anyio
        async def test_retries_exhausted(
            self,
            httpx_mock: HTTPXMock,
            http_client: HttpClient,
            spec: RequestSpec,
            url: str,
        ):
            for _ in range(3):
                httpx_mock.add_response(
                    url=url,
                    status_code=503,
                    json={"error": {"message": "Service unavailable"}},
                )

            with (
                patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep,
                pytest.raises(RetriesExhaustedError) as exc_info,
            ):
                await http_client.call_async(spec, CallOptions(max_retries=2))

            error = exc_info.value
            assert error.status_code == 503
            assert error.attempt == 3
            assert error.message == "Service unavailable"
            assert error.reason is ErrorReason.EXHAUSTED
            assert error.last_error.reason is ErrorReason.RETRYABLE
            assert http_client.stats.requests == 3
            assert mock_sleep.call_count == 2

        @pytest.mark.anyio
        async def test_custom_retry_status_does_not_count_as_rate_limit(
            self,
            httpx_mock: HTTPXMock,
            http_client: HttpClient,
            spec: RequestSpec,
            url: str,
        ):
            httpx_mock.add_response(url=url, status_code=403)
            httpx_mock.add_response(url=url, status_code=403)
            httpx_mock.add_response(url=url, status_code=200, json={"data": {}})

            with patch("asyncio.sleep", new_callable=AsyncMock):
                response = await http_client.call_async(
                    spec, CallOptions(retry_on_status_codes=[403])
                )

            assert response.status_code == 200
            assert http_client.stats.requests == 3
            assert http_client.stats.rate_limit_errors == []

        @pytest.mark.anyio
        async def test_network_error_is_retried(
            self,
            httpx_mock: HTTPXMock,
            http_client: HttpClient,
            spec: RequestSpec,
            url: str,
        ):
            httpx_mock.add_exception(httpx.ConnectError("Connection reset"), url=url)
            httpx_mock.add_response(url=url, status_code=200, json={"data": {}})

            with patch("asyncio.sleep", new_callable=AsyncMock):
                response = await http_client.call_async(spec)

            assert response.status_code == 200
            assert http_client.stats.requests == 2

        @pytest.mark.anyio
        async def test_network_errors_exhaust_retries(
            self,
            httpx_mock: HTTPXMock,
            http_client: HttpClient,
            spec: RequestSpec,
            url: str,
        ):
            httpx_mock.add_exception(httpx.ReadTimeout("Timed out"), url=url)
            httpx_mock.add_exception(httpx.ReadTimeout("Timed out"), url=url)

            with (
                patch("asyncio.sleep", new_callable=AsyncMock),
                pytest.raises(RetriesExhaustedError) as exc_info,
            ):
                await http_client.call_async(spec, CallOptions(max_retries=1))

            assert exc_info.value.status_code is None
            assert exc_info.value.attempt == 2

        @pytest.mark.anyio
        async def test_programmer_error_is_not_retried(
            self,
            httpx_mock: HTTPXMock,
            http_client: HttpClient,
            spec: RequestSpec,
            url: str,
        ):
            httpx_mock.add_exception(
                httpx.UnsupportedProtocol("Request URL has an unsupported protocol"),
                url=url,
            )

            with pytest.raises(httpx.UnsupportedProtocol):
                await http_client.call_async(spec)

            assert http_client.stats.requests == 1

        @pytest.mark.anyio
        async def test_stream_error_body_is_read(
            self,
            httpx_mock: HTTPXMock,
            http_client: HttpClient,
            url: str,
        ):
            httpx_mock.add_response(
                url=url,
                status_code=400,
                json={"error": {"message": "Invalid input"}},
            )

            with pytest.raises(TerminalRequestError) as exc_info:
                await http_client.call_async(
                    RequestSpec(method="GET", url=ENDPOINT, stream=True)
                )

            assert exc_info.value.message == "Invalid input"

        @pytest.mark.anyio
        async def test_stream_success_is_not_read(
            self,
            httpx_mock: HTTPXMock,
            http_client: HttpClient,
            url: str,
        ):
            httpx_mock.add_response(url=url, status_code=200, content=b"chunk")

            response = await http_client.call_async(
                RequestSpec(method="GET", url=ENDPOINT, stream=True)
            )

            assert await response.aread() == b"chunk"

        @pytest.mark.anyio
        async def test_concurrent_calls_share_stats(
            self,
            httpx_mock: HTTPXMock,
            http_client: HttpClient,
            spec: RequestSpec,
            url: str,
        ):
            for _ in range(5):
                httpx_mock.add_response(url=url, status_code=200, json={"data": {}})

            responses = await asyncio.gather(
                *(http_client.call_async(spec) for _ in range(5))
            )

            assert all(r.status_code == 200 for r in responses)
            assert http_client.stats.calls == 5
            assert http_client.stats.requests == 5

        @pytest.mark.anyio
        async def test_query_params_and_json_body(
            self,
            httpx_mock: HTTPXMock,
            http_client: HttpClient,
            base_url: str,
        ):
            httpx_mock.add_response(
                url=f"{base_url}{ENDPOINT}?desc=1&unnamed=0",
                method="POST",
                status_code=201,
                json={"data": {}},
            )

            await http_client.call_async(
                RequestSpec(
                    method="POST",
                    url=ENDPOINT,
                    params={"desc": True, "unnamed": False, "offset": None},
                    json={"name": "store"},
                )
            )

            sent_request = httpx_mock.get_request()
            assert sent_request is not None
            assert sent_request.headers["Content-Type"] == (
                "application/json; charset=utf-8"
            )
            assert sent_request.content == b'{"name": "store"}'

    class TestCall:
        def test_success_on_first_attempt(
            self,
            httpx_mock: HTTPXMock,
            http_client: HttpClient,
            spec: RequestSpec,
            url: str,
        ):
            httpx_mock.add_response(url=url, status_code=200, json={"data": {}})

            response = http_client.call(spec)

            assert response.status_code == 200
            assert http_client.stats.calls == 1
            assert http_client.stats.requests == 1

        def test_rate_limited_then_success(
            self,
            httpx_mock: HTTPXMock,
            http_client: HttpClient,
            spec: RequestSpec,
            url: str,
        ):
            for _ in range(3):
                httpx_mock.add_response(url=url, status_code=429)
            httpx_mock.add_response(url=url, status_code=200, json={"data": {}})

            with patch("time.sleep") as mock_sleep:
                response = http_client.call(spec)

            assert response.status_code == 200
            assert http_client.stats.requests == 4
            assert http_client.stats.rate_limit_errors == [1, 1, 1]
            assert mock_sleep.call_count == 3
            for attempt, call in enumerate(mock_sleep.call_args_list, start=1):
                assert 0 <= call.args[0] <= 0.5 * 2 ** (attempt - 1)

        def test_terminal_error_is_not_retried(
            self,
            httpx_mock: HTTPXMock,
            http_client: HttpClient,
            spec: RequestSpec,
            url: str,
        ):
            httpx_mock.add_response(url=url, status_code=404)

            with pytest.raises(TerminalRequestError) as exc_info:
                http_client.call(spec)

            assert exc_info.value.attempt == 1
            assert http_client.stats.requests == 1

        def test_retries_exhausted(
            self,
            httpx_mock: HTTPXMock,
            http_client: HttpClient,
            spec: RequestSpec,
            url: str,
        ):
            for _ in range(3):
                httpx_mock.add_response(url=url, status_code=503)

            with (
                patch("time.sleep"),
                pytest.raises(RetriesExhaustedError) as exc_info,
            ):
                http_client.call(spec, CallOptions(max_retries=2))

            assert exc_info.value.attempt == 3
            assert http_client.stats.requests == 3

        def test_no_retries(
            self,
            httpx_mock: HTTPXMock,
            http_client: HttpClient,
            spec: RequestSpec,
            url: str,
        ):
            httpx_mock.add_response(url=url, status_code=500)

            with (
                patch("time.sleep") as mock_sleep,
                pytest.raises(RetriesExhaustedError) as exc_info,
            ):
                http_client.call(spec, CallOptions(max_retries=0))

            assert exc_info.value.attempt == 1
            mock_sleep.assert_not_called()

        def test_stats_after_several_calls(
            self,
            httpx_mock: HTTPXMock,
            http_client: HttpClient,
            spec: RequestSpec,
            url: str,
        ):
            for _ in range(3):
                httpx_mock.add_response(url=url, status_code=500)
                httpx_mock.add_response(url=url, status_code=200, json={"data": {}})

            with patch("time.sleep"):
                for _ in range(3):
                    http_client.call(spec)

            assert http_client.stats.calls == 3
            assert http_client.stats.requests == 6

        def test_retry_is_logged(
            self,
            httpx_mock: HTTPXMock,
            http_client: HttpClient,
            spec: RequestSpec,
            url: str,
            caplog: pytest.LogCaptureFixture,
        ):
            httpx_mock.add_response(url=url, status_code=429)
            httpx_mock.add_response(url=url, status_code=200, json={"data": {}})

            with (
                patch("time.sleep"),
                caplog.at_level(logging.WARNING, logger="kvplatform"),
            ):
                http_client.call(spec)

            assert any("Retrying after" in r.getMessage() for r in caplog.records)

    class TestCallOptions:
        @pytest.fixture
        def configured_client(self, config: Config) -> HttpClient:
            return HttpClient(
                config=config.model_copy(
                    update={"max_retries": 1, "backoff_base_millis": 100}
                )
            )

        def test_defaults_come_from_config(self, configured_client: HttpClient):
            options = configured_client._resolve_options(None)

            assert options.max_retries == 1
            assert options.backoff_base_millis == 100
            assert options.retry_on_status_codes == [429]

        def test_partial_options_keep_client_defaults(
            self, configured_client: HttpClient
        ):
            options = configured_client._resolve_options(
                CallOptions(retry_on_status_codes=[403])
            )

            assert options.max_retries == 1
            assert options.backoff_base_millis == 100
            assert options.retry_on_status_codes == [403]

        def test_explicit_options_win(self, configured_client: HttpClient):
            options = configured_client._resolve_options(CallOptions(max_retries=5))

            assert options.max_retries == 5
            assert options.backoff_base_millis == 100

        def test_partial_options_respect_client_retry_ceiling(
            self,
            httpx_mock: HTTPXMock,
            configured_client: HttpClient,
            spec: RequestSpec,
            url: str,
        ):
            httpx_mock.add_response(url=url, status_code=503)
            httpx_mock.add_response(url=url, status_code=503)

            with (
                patch("time.sleep"),
                pytest.raises(RetriesExhaustedError) as exc_info,
            ):
                configured_client.call(spec, CallOptions(retry_on_status_codes=[403]))

            assert exc_info.value.attempt == 2
            assert configured_client.stats.requests == 2

        @pytest.mark.anyio
        async def test_partial_options_respect_client_retry_ceiling_async(
            self,
            httpx_mock: HTTPXMock,
            configured_client: HttpClient,
            spec: RequestSpec,
            url: str,
        ):
            httpx_mock.add_response(url=url, status_code=503)
            httpx_mock.add_response(url=url, status_code=503)

            with (
                patch("asyncio.sleep", new_callable=AsyncMock),
                pytest.raises(RetriesExhaustedError),
            ):
                await configured_client.call_async(
                    spec, CallOptions(retry_on_status_codes=[403])
                )

            assert configured_client.stats.requests == 2

    class TestMalformedUrl:
        def test_invalid_url_is_raised_before_sending(self, http_client: HttpClient):
            spec = RequestSpec(method="GET", url="/v2/key\x00-value-stores")

            with pytest.raises(httpx.InvalidURL):
                http_client.call(spec)

            assert http_client.stats.calls == 1
            assert http_client.stats.requests == 0

        @pytest.mark.anyio
        async def test_invalid_url_is_raised_before_sending_async(
            self, http_client: HttpClient
        ):
            spec = RequestSpec(method="GET", url="/v2/key\x00-value-stores")

            with pytest.raises(httpx.InvalidURL):
                await http_client.call_async(spec)

            assert http_client.stats.requests == 0
