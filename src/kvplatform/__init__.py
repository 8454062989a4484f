from ._config import Config
from ._kvplatform import KvPlatform
from ._services import HttpClient, KeyValueStoreService, KeyValueStoresService
from ._utils import CallOptions, RequestSpec, Statistics
from .models import (
    ApiError,
    ErrorReason,
    RetriesExhaustedError,
    RetryableRequestError,
    TerminalRequestError,
)

__all__ = [
    "ApiError",
    "CallOptions",
    "Config",
    "ErrorReason",
    "HttpClient",
    "KeyValueStoreService",
    "KeyValueStoresService",
    "KvPlatform",
    "RequestSpec",
    "RetriesExhaustedError",
    "RetryableRequestError",
    "Statistics",
    "TerminalRequestError",
]
