from pydantic import BaseModel, Field, HttpUrl, field_validator

from ._utils.constants import (
    DEFAULT_TIMEOUT_SECS,
    EXP_BACKOFF_MAX_REPEATS,
    EXP_BACKOFF_MILLIS,
)


class Config(BaseModel):
    base_url: str
    token: str
    max_retries: int = Field(default=EXP_BACKOFF_MAX_REPEATS, ge=0)
    backoff_base_millis: int = Field(default=EXP_BACKOFF_MILLIS, ge=0)
    timeout_secs: float = Field(default=DEFAULT_TIMEOUT_SECS, gt=0)
    debug: bool = False

    @field_validator("base_url", mode="before")
    @classmethod
    def validate_url(cls, value: str) -> str:
        url_value = HttpUrl(url=value)
        assert url_value.scheme in ("http", "https"), "Invalid URL"
        return value.rstrip("/")
