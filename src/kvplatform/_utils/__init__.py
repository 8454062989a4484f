from ._backoff import compute_delay, wait_jittered_exponential
from ._classifier import ResponseClass, classify_status
from ._logs import setup_logging
from ._request_spec import CallOptions, RequestSpec, serialize_params
from ._stats import Statistics
from ._user_agent import user_agent_value

__all__ = [
    "CallOptions",
    "RequestSpec",
    "ResponseClass",
    "Statistics",
    "classify_status",
    "compute_delay",
    "serialize_params",
    "setup_logging",
    "user_agent_value",
    "wait_jittered_exponential",
]
