from ._http_client import AttemptOutcome, HttpClient
from .key_value_stores_service import KeyValueStoreService, KeyValueStoresService

__all__ = [
    "AttemptOutcome",
    "HttpClient",
    "KeyValueStoreService",
    "KeyValueStoresService",
]
