import pytest


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clean environment variables before each test."""
    monkeypatch.delenv("KVPLATFORM_URL", raising=False)
    monkeypatch.delenv("KVPLATFORM_TOKEN", raising=False)


@pytest.fixture
def anyio_backend() -> str:
    """Run anyio-marked tests on asyncio only (the tests use asyncio APIs)."""
    return "asyncio"
