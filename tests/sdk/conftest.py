import pytest

from kvplatform._config import Config
from kvplatform._services import HttpClient


@pytest.fixture
def base_url() -> str:
    return "https://api.kvplatform.test"


@pytest.fixture
def token() -> str:
    return "secret-token"


@pytest.fixture
def config(base_url: str, token: str) -> Config:
    return Config(base_url=base_url, token=token)


@pytest.fixture
def http_client(config: Config) -> HttpClient:
    return HttpClient(config=config)
