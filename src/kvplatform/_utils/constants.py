# Environment variables
ENV_BASE_URL = "KVPLATFORM_URL"
ENV_TOKEN = "KVPLATFORM_TOKEN"

# Headers
HEADER_USER_AGENT = "User-Agent"
HEADER_CONTENT_TYPE = "Content-Type"
HEADER_CONTENT_ENCODING = "Content-Encoding"

# Retry policy
RATE_LIMIT_EXCEEDED_STATUS_CODE = 429
EXP_BACKOFF_MILLIS = 500
EXP_BACKOFF_MAX_REPEATS = 8  # 128s
DEFAULT_TIMEOUT_SECS = 360

ALLOWED_HTTP_METHODS = ("GET", "DELETE", "HEAD", "POST", "PUT", "PATCH")

# Payloads
JSON_CONTENT_TYPE = "application/json; charset=utf-8"
OCTET_STREAM_CONTENT_TYPE = "application/octet-stream"
MIN_GZIP_BYTES = 1024
SIGNED_URL_UPLOAD_MIN_BYTES = 1024 * 256

# Error types returned by the API
NOT_FOUND_STATUS_CODE = 404
RECORD_NOT_FOUND_TYPE = "record-not-found"
RECORD_OR_TOKEN_NOT_FOUND_TYPE = "record-or-token-not-found"
