"""Common utilities for the IG MCP server (error mapping, payload helpers).

This package hosts the small pieces of logic shared by the broker
services, the dispatcher and the transports.
"""

from .errors import FRIENDLY_MESSAGES, classify_status, http_error, transport_error  # noqa: F401
from .payloads import mask_secrets, pick, strip_none  # noqa: F401

__all__ = [
    "FRIENDLY_MESSAGES",
    "classify_status",
    "http_error",
    "transport_error",
    "mask_secrets",
    "pick",
    "strip_none",
]
