from enum import Enum
from typing import Iterable

from .constants import RATE_LIMIT_EXCEEDED_STATUS_CODE


class ResponseClass(str, Enum):
    SUCCESS = "success"
    TERMINAL = "terminal"
    RETRYABLE = "retryable"


def classify_status(
    status_code: int,
    retry_on_status_codes: Iterable[int] = (RATE_LIMIT_EXCEEDED_STATUS_CODE,),
) -> ResponseClass:
    """Classify an HTTP status code.

    Status codes 300-499 are caused by an invalid URL (redirect 3xx) or invalid
    user input (4xx) and are terminal, unless listed in ``retry_on_status_codes``.
    The rate-limit status is always retried.
    """
    if status_code < 300:
        return ResponseClass.SUCCESS

    if status_code >= 500:
        return ResponseClass.RETRYABLE

    if (
        status_code == RATE_LIMIT_EXCEEDED_STATUS_CODE
        or status_code in retry_on_status_codes
    ):
        return ResponseClass.RETRYABLE

    return ResponseClass.TERMINAL
