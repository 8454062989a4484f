import asyncio
import time
from dataclasses import dataclass
from logging import getLogger
from typing import Any, Dict, Optional, Union

from httpx import (
    AsyncClient,
    Client,
    Headers,
    LocalProtocolError,
    Request,
    Response,
    TransportError,
    UnsupportedProtocol,
)
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_result,
    stop_after_attempt,
)

from .._config import Config
from .._utils import (
    CallOptions,
    RequestSpec,
    ResponseClass,
    Statistics,
    classify_status,
    user_agent_value,
    wait_jittered_exponential,
)
from .._utils._payload import prepare_body
from .._utils._ssl_context import get_httpx_client_kwargs
from .._utils.constants import HEADER_USER_AGENT, RATE_LIMIT_EXCEEDED_STATUS_CODE
from ..models.errors import (
    ApiError,
    RetriesExhaustedError,
    RetryableRequestError,
    TerminalRequestError,
)


@dataclass(frozen=True)
class AttemptOutcome:
    """Result of a single request attempt: a response or a classified error."""

    kind: ResponseClass
    response: Optional[Response] = None
    error: Optional[ApiError] = None


def is_retryable_outcome(outcome: AttemptOutcome) -> bool:
    return outcome.kind is ResponseClass.RETRYABLE


class HttpClient:
    """Sends requests to the API, retrying transient failures.

    Every response goes through :func:`classify_status`. Successful responses are
    returned, terminal ones raise :class:`TerminalRequestError` right away and
    retryable ones are retried with exponential backoff until ``max_retries`` is
    reached, after which :class:`RetriesExhaustedError` is raised. Network errors
    are retried the same way; malformed requests are not.
    """

    def __init__(self, config: Config, stats: Optional[Statistics] = None) -> None:
        self._logger = getLogger("kvplatform")
        self._config = config
        self.stats = stats if stats is not None else Statistics()
        self.default_options = CallOptions(
            max_retries=config.max_retries,
            backoff_base_millis=config.backoff_base_millis,
        )

        client_kwargs = {
            **get_httpx_client_kwargs(config.timeout_secs),
            "base_url": config.base_url,
            "headers": Headers(self.default_headers),
        }

        self._client = Client(**client_kwargs)
        self._client_async = AsyncClient(**client_kwargs)

        self._logger.debug(f"HEADERS: {self.default_headers}")

    @property
    def default_headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json, */*",
            "Authorization": f"Bearer {self._config.token}",
            HEADER_USER_AGENT: user_agent_value(),
        }

    def call(
        self, spec: RequestSpec, options: Optional[CallOptions] = None
    ) -> Response:
        """Send the request described by ``spec``, retrying transient failures.

        Args:
            spec: The request to send.
            options: Retry policy for this call. Defaults to the client's policy.

        Returns:
            Response: The first successful (status < 300) response.

        Raises:
            TerminalRequestError: The API rejected the request (3xx/4xx).
            RetriesExhaustedError: All attempts failed with retryable errors.
        """
        options = self._resolve_options(options)
        self.stats.add_call()
        self._logger.debug(f"Request: {spec.method} {spec.url}")

        content, headers = prepare_body(spec.content, spec.json, spec.headers)
        outcome: Optional[AttemptOutcome] = None
        try:
            for attempt in Retrying(
                stop=stop_after_attempt(options.max_retries + 1),
                wait=wait_jittered_exponential(
                    options.backoff_base_millis, options.max_retries
                ),
                retry=retry_if_result(is_retryable_outcome),
                before_sleep=self._log_retry,
                sleep=time.sleep,
            ):
                with attempt:
                    request = self._build_request(self._client, spec, content, headers)
                    outcome = self._attempt(
                        request, spec, options, attempt.retry_state.attempt_number
                    )
                if not attempt.retry_state.outcome.failed:  # type: ignore[union-attr]
                    attempt.retry_state.set_result(outcome)
        except RetryError as e:
            exhausted = self._exhausted(e)
            raise exhausted from exhausted.last_error

        return self._finish(outcome)

    async def call_async(
        self, spec: RequestSpec, options: Optional[CallOptions] = None
    ) -> Response:
        """Asynchronously send the request described by ``spec``.

        Backoff delays suspend only the calling task, so concurrent calls on the
        same client are not blocked.

        Args:
            spec: The request to send.
            options: Retry policy for this call. Defaults to the client's policy.

        Returns:
            Response: The first successful (status < 300) response.

        Raises:
            TerminalRequestError: The API rejected the request (3xx/4xx).
            RetriesExhaustedError: All attempts failed with retryable errors.
        """
        options = self._resolve_options(options)
        self.stats.add_call()
        self._logger.debug(f"Request: {spec.method} {spec.url}")

        content, headers = prepare_body(spec.content, spec.json, spec.headers)
        outcome: Optional[AttemptOutcome] = None
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(options.max_retries + 1),
                wait=wait_jittered_exponential(
                    options.backoff_base_millis, options.max_retries
                ),
                retry=retry_if_result(is_retryable_outcome),
                before_sleep=self._log_retry,
                sleep=asyncio.sleep,
            ):
                with attempt:
                    request = self._build_request(
                        self._client_async, spec, content, headers
                    )
                    outcome = await self._attempt_async(
                        request, spec, options, attempt.retry_state.attempt_number
                    )
                if not attempt.retry_state.outcome.failed:  # type: ignore[union-attr]
                    attempt.retry_state.set_result(outcome)
        except RetryError as e:
            exhausted = self._exhausted(e)
            raise exhausted from exhausted.last_error

        return self._finish(outcome)

    def _attempt(
        self, request: Request, spec: RequestSpec, options: CallOptions, attempt: int
    ) -> AttemptOutcome:
        self.stats.add_request()
        try:
            response = self._client.send(request, stream=spec.stream)
            kind = self._classify(response, options, attempt)
            if kind is not ResponseClass.SUCCESS and spec.stream:
                response.read()
        except (UnsupportedProtocol, LocalProtocolError):
            raise
        except TransportError as e:
            return self._network_error_outcome(e, attempt)

        return self._outcome(kind, response, attempt)

    async def _attempt_async(
        self, request: Request, spec: RequestSpec, options: CallOptions, attempt: int
    ) -> AttemptOutcome:
        self.stats.add_request()
        try:
            response = await self._client_async.send(request, stream=spec.stream)
            kind = self._classify(response, options, attempt)
            if kind is not ResponseClass.SUCCESS and spec.stream:
                await response.aread()
        except (UnsupportedProtocol, LocalProtocolError):
            raise
        except TransportError as e:
            return self._network_error_outcome(e, attempt)

        return self._outcome(kind, response, attempt)

    def _classify(
        self, response: Response, options: CallOptions, attempt: int
    ) -> ResponseClass:
        if response.status_code == RATE_LIMIT_EXCEEDED_STATUS_CODE:
            self.stats.add_rate_limit_error(attempt)
        return classify_status(response.status_code, options.retry_on_status_codes)

    def _outcome(
        self, kind: ResponseClass, response: Response, attempt: int
    ) -> AttemptOutcome:
        if kind is ResponseClass.SUCCESS:
            return AttemptOutcome(kind, response=response)
        if kind is ResponseClass.TERMINAL:
            error: ApiError = TerminalRequestError.from_response(response, attempt)
        else:
            error = RetryableRequestError.from_response(response, attempt)
        return AttemptOutcome(kind, response=response, error=error)

    def _network_error_outcome(
        self, error: TransportError, attempt: int
    ) -> AttemptOutcome:
        self._logger.debug(f"Network error on attempt {attempt}: {error!r}")
        return AttemptOutcome(
            ResponseClass.RETRYABLE,
            error=RetryableRequestError.from_transport_error(error, attempt),
        )

    def _resolve_options(self, options: Optional[CallOptions]) -> CallOptions:
        """Layer the fields set on ``options`` over the client defaults."""
        if options is None:
            return self.default_options
        return self.default_options.model_copy(
            update=options.model_dump(exclude_unset=True)
        )

    def _build_request(
        self,
        client: Union[Client, AsyncClient],
        spec: RequestSpec,
        content: Optional[bytes],
        headers: Dict[str, str],
    ) -> Request:
        request = client.build_request(**self._request_kwargs(spec, content, headers))
        if not spec.authenticated:
            # signed URLs carry their own credentials
            request.headers.pop("Authorization", None)
        return request

    def _request_kwargs(
        self, spec: RequestSpec, content: Optional[bytes], headers: Dict[str, str]
    ) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "method": spec.method,
            "url": spec.url,
            "params": spec.query_params,
            "headers": headers,
            "content": content,
        }
        if spec.timeout is not None:
            kwargs["timeout"] = spec.timeout
        return kwargs

    def _log_retry(self, retry_state: RetryCallState) -> None:
        outcome: AttemptOutcome = retry_state.outcome.result()  # type: ignore[union-attr]
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        self._logger.warning(
            f"{outcome.error}. Retrying after {delay:.2f}s "
            f"(attempt {retry_state.attempt_number + 1})"
        )

    def _exhausted(self, error: RetryError) -> RetriesExhaustedError:
        outcome: AttemptOutcome = error.last_attempt.result()
        last_error = outcome.error
        assert isinstance(last_error, RetryableRequestError)
        self._logger.warning(f"Giving up after {last_error.attempt} attempts")
        return RetriesExhaustedError(last_error)

    def _finish(self, outcome: Optional[AttemptOutcome]) -> Response:
        assert outcome is not None
        if outcome.kind is ResponseClass.SUCCESS:
            assert outcome.response is not None
            return outcome.response
        assert outcome.error is not None
        raise outcome.error

    def close(self) -> None:
        self._client.close()

    async def aclose(self) -> None:
        await self._client_async.aclose()
