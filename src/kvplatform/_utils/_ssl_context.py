import os
import ssl
from typing import Any, Dict, Optional

import certifi

from .constants import DEFAULT_TIMEOUT_SECS


def _env_path(name: str) -> Optional[str]:
    """Read a path from the environment, expanding ``$VARS`` and ``~``."""
    value = os.environ.get(name)
    return os.path.expanduser(os.path.expandvars(value)) if value else None


def create_ssl_context() -> ssl.SSLContext:
    """TLS context trusting the certifi bundle unless a CA file or dir is configured."""
    ca_file = _env_path("SSL_CERT_FILE") or _env_path("REQUESTS_CA_BUNDLE")
    return ssl.create_default_context(
        cafile=ca_file or certifi.where(),
        capath=_env_path("SSL_CERT_DIR"),
    )


def get_httpx_client_kwargs(timeout_secs: float = DEFAULT_TIMEOUT_SECS) -> Dict[str, Any]:
    """Keyword arguments shared by the sync and async httpx clients."""
    return {
        "verify": create_ssl_context(),
        "timeout": timeout_secs,
        "follow_redirects": True,
    }
