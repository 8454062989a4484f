import json
from typing import Any, Dict, Optional, Tuple, Union
from urllib.parse import quote

from httpx import Response

from .._utils import RequestSpec
from .._utils._payload import parse_response_body, pluck_data
from .._utils.constants import (
    HEADER_CONTENT_TYPE,
    JSON_CONTENT_TYPE,
    OCTET_STREAM_CONTENT_TYPE,
    SIGNED_URL_UPLOAD_MIN_BYTES,
)
from ..models import (
    KeyValueStore,
    KeyValueStoreKeys,
    KeyValueStoreListPage,
    KeyValueStoreRecord,
    TerminalRequestError,
)
from ._base_service import BaseService, catch_not_found_or_raise
from ._http_client import HttpClient

RESOURCE_PATH = "key-value-stores"


class KeyValueStoresService(BaseService):
    """Service for the key-value store collection.

    Examples:
        ```python
        from kvplatform import KvPlatform

        client = KvPlatform()

        store = client.key_value_stores.get_or_create(name="my-store")
        ```
    """

    def __init__(self, http_client: HttpClient) -> None:
        super().__init__(http_client, RESOURCE_PATH)

    def list(
        self,
        *,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
        desc: Optional[bool] = None,
        unnamed: Optional[bool] = None,
    ) -> KeyValueStoreListPage:
        """List the key-value stores of the account.

        Args:
            offset (Optional[int]): Number of stores to skip.
            limit (Optional[int]): Maximum number of stores to return.
            desc (Optional[bool]): Sort by creation date, newest first.
            unnamed (Optional[bool]): Include unnamed stores.

        Returns:
            KeyValueStoreListPage: One page of stores.
        """
        spec = self._list_spec(offset=offset, limit=limit, desc=desc, unnamed=unnamed)
        response = self._http.call(spec)
        return KeyValueStoreListPage.model_validate(pluck_data(response.json()))

    async def list_async(
        self,
        *,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
        desc: Optional[bool] = None,
        unnamed: Optional[bool] = None,
    ) -> KeyValueStoreListPage:
        """Asynchronously list the key-value stores of the account."""
        spec = self._list_spec(offset=offset, limit=limit, desc=desc, unnamed=unnamed)
        response = await self._http.call_async(spec)
        return KeyValueStoreListPage.model_validate(pluck_data(response.json()))

    def create(self, resource: Optional[Dict[str, Any]] = None) -> KeyValueStore:
        """Create a key-value store from the given fields."""
        response = self._http.call(self._create_spec(resource))
        return KeyValueStore.model_validate(pluck_data(response.json()))

    async def create_async(
        self, resource: Optional[Dict[str, Any]] = None
    ) -> KeyValueStore:
        response = await self._http.call_async(self._create_spec(resource))
        return KeyValueStore.model_validate(pluck_data(response.json()))

    def get_or_create(self, name: str = "") -> KeyValueStore:
        """Retrieve the store named ``name``, creating it if it does not exist.

        An empty name creates a new unnamed store.

        Args:
            name (str): The name of the store.

        Returns:
            KeyValueStore: The existing or newly created store.
        """
        response = self._http.call(self._get_or_create_spec(name))
        return KeyValueStore.model_validate(pluck_data(response.json()))

    async def get_or_create_async(self, name: str = "") -> KeyValueStore:
        response = await self._http.call_async(self._get_or_create_spec(name))
        return KeyValueStore.model_validate(pluck_data(response.json()))

    def _list_spec(self, **options: Any) -> RequestSpec:
        return RequestSpec(method="GET", url=self._url(), params=self._params(**options))

    def _create_spec(self, resource: Optional[Dict[str, Any]]) -> RequestSpec:
        if resource is not None and not isinstance(resource, dict):
            raise TypeError("Resource must be a dict.")
        return RequestSpec(
            method="POST",
            url=self._url(),
            params=self._params(),
            json=resource,
        )

    def _get_or_create_spec(self, name: str) -> RequestSpec:
        # name= with no value creates an unnamed store
        if not isinstance(name, str):
            raise TypeError("Name must be a string.")
        return RequestSpec(
            method="POST",
            url=self._url(),
            params=self._params(name=name),
        )


class KeyValueStoreService(BaseService):
    """Service for a single key-value store and its records.

    Records are addressed by key. Values are stored with a content type; JSON
    values are serialized automatically.
    """

    def __init__(self, http_client: HttpClient, store_id: str) -> None:
        if not store_id:
            raise ValueError("Store id cannot be empty.")
        super().__init__(http_client, RESOURCE_PATH, resource_id=store_id)

    def get(self) -> Optional[KeyValueStore]:
        """Retrieve the store.

        Returns:
            Optional[KeyValueStore]: The store, or ``None`` if it does not exist.
        """
        try:
            response = self._http.call(self._get_spec())
        except TerminalRequestError as e:
            catch_not_found_or_raise(e)
            return None
        return KeyValueStore.model_validate(pluck_data(response.json()))

    async def get_async(self) -> Optional[KeyValueStore]:
        try:
            response = await self._http.call_async(self._get_spec())
        except TerminalRequestError as e:
            catch_not_found_or_raise(e)
            return None
        return KeyValueStore.model_validate(pluck_data(response.json()))

    def update(self, **fields: Any) -> KeyValueStore:
        """Update the store with the given fields, e.g. ``name``."""
        response = self._http.call(self._update_spec(fields))
        return KeyValueStore.model_validate(pluck_data(response.json()))

    async def update_async(self, **fields: Any) -> KeyValueStore:
        response = await self._http.call_async(self._update_spec(fields))
        return KeyValueStore.model_validate(pluck_data(response.json()))

    def delete(self) -> None:
        """Delete the store. Deleting a missing store is a no-op."""
        try:
            self._http.call(self._delete_spec())
        except TerminalRequestError as e:
            catch_not_found_or_raise(e)

    async def delete_async(self) -> None:
        try:
            await self._http.call_async(self._delete_spec())
        except TerminalRequestError as e:
            catch_not_found_or_raise(e)

    def list_keys(
        self,
        *,
        limit: Optional[int] = None,
        exclusive_start_key: Optional[str] = None,
        desc: Optional[bool] = None,
    ) -> KeyValueStoreKeys:
        """List the keys of the store.

        Args:
            limit (Optional[int]): Maximum number of keys to return.
            exclusive_start_key (Optional[str]): List keys after this one.
            desc (Optional[bool]): Reverse the order of the keys.

        Returns:
            KeyValueStoreKeys: A page of keys. Use ``next_exclusive_start_key``
            to fetch the next page while ``is_truncated`` is set.
        """
        spec = self._list_keys_spec(limit, exclusive_start_key, desc)
        response = self._http.call(spec)
        return KeyValueStoreKeys.model_validate(pluck_data(response.json()))

    async def list_keys_async(
        self,
        *,
        limit: Optional[int] = None,
        exclusive_start_key: Optional[str] = None,
        desc: Optional[bool] = None,
    ) -> KeyValueStoreKeys:
        spec = self._list_keys_spec(limit, exclusive_start_key, desc)
        response = await self._http.call_async(spec)
        return KeyValueStoreKeys.model_validate(pluck_data(response.json()))

    def get_record(
        self,
        key: str,
        *,
        force_buffer: bool = False,
        stream: bool = False,
        disable_redirect: Optional[bool] = None,
    ) -> Optional[KeyValueStoreRecord]:
        """Retrieve a record.

        Args:
            key (str): The record key.
            force_buffer (bool): Return the value as raw bytes.
            stream (bool): Return the open ``httpx.Response`` as the value
                without reading the body. The caller must close it.
            disable_redirect (Optional[bool]): Ask the API to serve the record
                directly instead of redirecting to storage.

        Returns:
            Optional[KeyValueStoreRecord]: The record, or ``None`` if it does not exist.
        """
        spec = self._get_record_spec(key, force_buffer, stream, disable_redirect)
        try:
            response = self._http.call(spec)
        except TerminalRequestError as e:
            catch_not_found_or_raise(e)
            return None
        return self._to_record(key, response, force_buffer, stream)

    async def get_record_async(
        self,
        key: str,
        *,
        force_buffer: bool = False,
        stream: bool = False,
        disable_redirect: Optional[bool] = None,
    ) -> Optional[KeyValueStoreRecord]:
        spec = self._get_record_spec(key, force_buffer, stream, disable_redirect)
        try:
            response = await self._http.call_async(spec)
        except TerminalRequestError as e:
            catch_not_found_or_raise(e)
            return None
        return self._to_record(key, response, force_buffer, stream)

    def set_record(
        self, key: str, value: Any, content_type: Optional[str] = None
    ) -> None:
        """Store ``value`` under ``key``.

        Values other than bytes default to JSON. Large values are uploaded to a
        signed URL.

        Args:
            key (str): The record key.
            value (Any): The value to store.
            content_type (Optional[str]): Content type of the value.

        Raises:
            ValueError: If the value cannot be serialized to JSON.
        """
        body, content_type = self._record_body(value, content_type)
        signed_url = None
        if self._should_use_direct_upload(body):
            response = self._http.call(self._direct_upload_url_spec(key))
            signed_url = pluck_data(response.json())["signedUrl"]

        self._http.call(self._set_record_spec(key, body, content_type, signed_url))

    async def set_record_async(
        self, key: str, value: Any, content_type: Optional[str] = None
    ) -> None:
        body, content_type = self._record_body(value, content_type)
        signed_url = None
        if self._should_use_direct_upload(body):
            response = await self._http.call_async(self._direct_upload_url_spec(key))
            signed_url = pluck_data(response.json())["signedUrl"]

        await self._http.call_async(
            self._set_record_spec(key, body, content_type, signed_url)
        )

    def delete_record(self, key: str) -> None:
        """Delete a record. Deleting a missing record is a no-op."""
        try:
            self._http.call(self._delete_record_spec(key))
        except TerminalRequestError as e:
            catch_not_found_or_raise(e)

    async def delete_record_async(self, key: str) -> None:
        try:
            await self._http.call_async(self._delete_record_spec(key))
        except TerminalRequestError as e:
            catch_not_found_or_raise(e)

    def _get_spec(self) -> RequestSpec:
        return RequestSpec(method="GET", url=self._url(), params=self._params())

    def _update_spec(self, fields: Dict[str, Any]) -> RequestSpec:
        return RequestSpec(
            method="PUT", url=self._url(), params=self._params(), json=fields
        )

    def _delete_spec(self) -> RequestSpec:
        return RequestSpec(method="DELETE", url=self._url(), params=self._params())

    def _list_keys_spec(
        self,
        limit: Optional[int],
        exclusive_start_key: Optional[str],
        desc: Optional[bool],
    ) -> RequestSpec:
        return RequestSpec(
            method="GET",
            url=self._url("keys"),
            params=self._params(
                limit=limit, exclusiveStartKey=exclusive_start_key, desc=desc
            ),
        )

    def _get_record_spec(
        self,
        key: str,
        force_buffer: bool,
        stream: bool,
        disable_redirect: Optional[bool],
    ) -> RequestSpec:
        return RequestSpec(
            method="GET",
            url=self._url(self._record_path(key)),
            params=self._params(disableRedirect=disable_redirect),
            force_buffer=force_buffer,
            stream=stream,
        )

    def _direct_upload_url_spec(self, key: str) -> RequestSpec:
        return RequestSpec(
            method="GET",
            url=self._url(f"{self._record_path(key)}/direct-upload-url"),
        )

    def _set_record_spec(
        self,
        key: str,
        body: Union[str, bytes],
        content_type: str,
        signed_url: Optional[str] = None,
    ) -> RequestSpec:
        headers = {HEADER_CONTENT_TYPE: content_type}
        if signed_url is not None:
            return RequestSpec(
                method="PUT",
                url=signed_url,
                content=body,
                headers=headers,
                authenticated=False,
            )
        return RequestSpec(
            method="PUT",
            url=self._url(self._record_path(key)),
            params=self._params(),
            content=body,
            headers=headers,
        )

    def _delete_record_spec(self, key: str) -> RequestSpec:
        return RequestSpec(
            method="DELETE",
            url=self._url(self._record_path(key)),
            params=self._params(),
        )

    @staticmethod
    def _record_path(key: str) -> str:
        if not isinstance(key, str) or not key:
            raise ValueError("Record key must be a non-empty string.")
        return f"records/{quote(key, safe='')}"

    @staticmethod
    def _record_body(
        value: Any, content_type: Optional[str]
    ) -> Tuple[Union[str, bytes], str]:
        is_binary = isinstance(value, (bytes, bytearray))
        if not content_type:
            content_type = OCTET_STREAM_CONTENT_TYPE if is_binary else JSON_CONTENT_TYPE

        if is_binary:
            return bytes(value), content_type

        if content_type.startswith("application/json"):
            try:
                return json.dumps(value, indent=2, ensure_ascii=False), content_type
            except (TypeError, ValueError) as e:
                raise ValueError(
                    "The record value cannot be serialized to JSON. "
                    f"Please provide other content type.\nCause: {e}"
                ) from e

        if not isinstance(value, str):
            raise TypeError(
                f"Values of type {type(value).__name__} can only be stored as JSON."
            )
        return value, content_type

    @staticmethod
    def _should_use_direct_upload(body: Union[str, bytes]) -> bool:
        size = len(body.encode("utf-8")) if isinstance(body, str) else len(body)
        return size >= SIGNED_URL_UPLOAD_MIN_BYTES

    @staticmethod
    def _to_record(
        key: str, response: Response, force_buffer: bool, stream: bool
    ) -> KeyValueStoreRecord:
        value: Any = (
            response if stream else parse_response_body(response, force_buffer)
        )
        return KeyValueStoreRecord(
            key=key,
            value=value,
            content_type=response.headers.get(HEADER_CONTENT_TYPE),
        )
