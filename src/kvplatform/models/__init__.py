from .errors import (
    ApiError,
    BaseUrlMissingError,
    ErrorReason,
    RetriesExhaustedError,
    RetryableRequestError,
    TerminalRequestError,
    TokenMissingError,
)
from .key_value_stores import (
    KeyValueStore,
    KeyValueStoreKey,
    KeyValueStoreKeys,
    KeyValueStoreListPage,
    KeyValueStoreRecord,
)

__all__ = [
    "ApiError",
    "BaseUrlMissingError",
    "ErrorReason",
    "KeyValueStore",
    "KeyValueStoreKey",
    "KeyValueStoreKeys",
    "KeyValueStoreListPage",
    "KeyValueStoreRecord",
    "RetriesExhaustedError",
    "RetryableRequestError",
    "TerminalRequestError",
    "TokenMissingError",
]
