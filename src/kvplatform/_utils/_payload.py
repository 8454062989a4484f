import gzip
import json
from typing import Any, Dict, Optional, Tuple, Union

from httpx import Response

from .constants import (
    HEADER_CONTENT_ENCODING,
    HEADER_CONTENT_TYPE,
    JSON_CONTENT_TYPE,
    MIN_GZIP_BYTES,
)


def _has_header(headers: Dict[str, str], name: str) -> bool:
    return any(key.lower() == name.lower() for key in headers)


def prepare_body(
    content: Optional[Union[str, bytes]],
    json_body: Any,
    headers: Dict[str, str],
) -> Tuple[Optional[bytes], Dict[str, str]]:
    """Encode the request body and gzip it when it is large enough.

    Returns the body bytes and a copy of the headers completed with
    ``Content-Type`` and ``Content-Encoding`` where needed.
    """
    headers = dict(headers)
    if json_body is not None:
        body: Optional[bytes] = json.dumps(json_body).encode("utf-8")
        if not _has_header(headers, HEADER_CONTENT_TYPE):
            headers[HEADER_CONTENT_TYPE] = JSON_CONTENT_TYPE
    elif isinstance(content, str):
        body = content.encode("utf-8")
    else:
        body = content

    if (
        body is not None
        and len(body) >= MIN_GZIP_BYTES
        and not _has_header(headers, HEADER_CONTENT_ENCODING)
    ):
        body = gzip.compress(body)
        headers[HEADER_CONTENT_ENCODING] = "gzip"

    return body, headers


def pluck_data(payload: Any) -> Any:
    """Return the ``data`` envelope of an API response payload."""
    if not isinstance(payload, dict) or "data" not in payload:
        raise ValueError("Expected response payload to contain a 'data' field.")
    return payload["data"]


def parse_response_body(response: Response, force_buffer: bool = False) -> Any:
    """Decode a record body according to its content type."""
    if force_buffer:
        return response.content
    if not response.content:
        return None

    content_type = response.headers.get(HEADER_CONTENT_TYPE, "")
    if content_type.startswith("application/json"):
        return response.json()
    if content_type.startswith("text/"):
        return response.text
    return response.content
