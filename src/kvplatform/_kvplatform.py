from logging import getLogger
from os import environ as env
from typing import Optional

from dotenv import load_dotenv

from ._config import Config
from ._services import HttpClient, KeyValueStoreService, KeyValueStoresService
from ._utils import Statistics, setup_logging
from ._utils.constants import (
    DEFAULT_TIMEOUT_SECS,
    ENV_BASE_URL,
    ENV_TOKEN,
    EXP_BACKOFF_MAX_REPEATS,
    EXP_BACKOFF_MILLIS,
)
from .models.errors import BaseUrlMissingError, TokenMissingError

load_dotenv()


class KvPlatform:
    """Client for the platform API.

    All services created by one client share its HTTP connection pools and its
    request statistics.
    """

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        max_retries: int = EXP_BACKOFF_MAX_REPEATS,
        backoff_base_millis: int = EXP_BACKOFF_MILLIS,
        timeout_secs: float = DEFAULT_TIMEOUT_SECS,
        debug: bool = False,
    ) -> None:
        """Initialize the client.

        Args:
            base_url (Optional[str]): The API base URL. If not provided, it will be
                read from the `KVPLATFORM_URL` environment variable.
            token (Optional[str]): The API token. If not provided, it will be read
                from the `KVPLATFORM_TOKEN` environment variable.
            max_retries (int): Default retry ceiling for every call.
            backoff_base_millis (int): Default base delay of the exponential backoff.
            timeout_secs (float): Timeout of a single request.
            debug (bool): Enable debug logging if set to True. Defaults to False.

        Raises:
            BaseUrlMissingError: If no base URL is configured.
            TokenMissingError: If no token is configured.
        """
        base_url_value = base_url or env.get(ENV_BASE_URL)
        token_value = token or env.get(ENV_TOKEN)
        if not base_url_value:
            raise BaseUrlMissingError()
        if not token_value:
            raise TokenMissingError()

        self._config = Config(
            base_url=base_url_value,
            token=token_value,
            max_retries=max_retries,
            backoff_base_millis=backoff_base_millis,
            timeout_secs=timeout_secs,
            debug=debug,
        )

        setup_logging(self._config.debug)
        getLogger("kvplatform").debug(
            f"CONFIG: {self._config.model_dump(exclude={'token'})}"
        )

        self._http_client = HttpClient(self._config)

    @property
    def stats(self) -> Statistics:
        return self._http_client.stats

    @property
    def http_client(self) -> HttpClient:
        return self._http_client

    @property
    def key_value_stores(self) -> KeyValueStoresService:
        return KeyValueStoresService(self._http_client)

    def key_value_store(self, store_id: str) -> KeyValueStoreService:
        """Service for the store with the given id or ``username/store-name``."""
        return KeyValueStoreService(self._http_client, store_id)

    def close(self) -> None:
        self._http_client.close()

    async def aclose(self) -> None:
        await self._http_client.aclose()

    def __enter__(self) -> "KvPlatform":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    async def __aenter__(self) -> "KvPlatform":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()
