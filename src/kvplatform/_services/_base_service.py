from logging import getLogger
from typing import Any, Dict, Optional
from urllib.parse import quote

from .._utils.constants import (
    NOT_FOUND_STATUS_CODE,
    RECORD_NOT_FOUND_TYPE,
    RECORD_OR_TOKEN_NOT_FOUND_TYPE,
)
from ..models.errors import ApiError
from ._http_client import HttpClient

API_VERSION = "v2"


def is_not_found_error(error: ApiError) -> bool:
    return error.status_code == NOT_FOUND_STATUS_CODE and error.error_type in (
        RECORD_NOT_FOUND_TYPE,
        RECORD_OR_TOKEN_NOT_FOUND_TYPE,
    )


def catch_not_found_or_raise(error: ApiError) -> None:
    """Swallow "record not found" errors, re-raise anything else."""
    if not is_not_found_error(error):
        raise error


class BaseService:
    """Shared plumbing of the resource services: URLs, params and the HTTP client."""

    def __init__(
        self,
        http_client: HttpClient,
        resource_path: str,
        *,
        resource_id: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._logger = getLogger("kvplatform")
        self._http = http_client
        self._resource_path = resource_path
        self._resource_id = resource_id
        self._base_params = params or {}

    @property
    def _base_path(self) -> str:
        path = f"/{API_VERSION}/{self._resource_path}"
        if self._resource_id is not None:
            # "username/store-name" identifiers are addressed as "username~store-name".
            path += f"/{quote(self._resource_id.replace('/', '~'), safe='~')}"
        return path

    def _url(self, path: Optional[str] = None) -> str:
        return f"{self._base_path}/{path}" if path else self._base_path

    def _params(self, **params: Any) -> Dict[str, Any]:
        return {**self._base_params, **params}
