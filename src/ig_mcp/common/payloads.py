"""Helpers for shaping outbound payloads and the diagnostics kept about them."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

SECRET_KEYS = frozenset({"password", "apikey", "x-ig-api-key", "cst", "x-security-token"})
MASK = "***hidden***"


def strip_none(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``payload`` without the keys whose value is ``None``."""
    return {key: value for key, value in payload.items() if value is not None}


def mask_secrets(payload: Any) -> Any:
    """Replace values stored under secret-looking keys, recursively."""
    if isinstance(payload, Mapping):
        return {
            key: MASK if str(key).lower() in SECRET_KEYS else mask_secrets(value)
            for key, value in payload.items()
        }
    if isinstance(payload, list):
        return [mask_secrets(item) for item in payload]
    return payload


def pick(body: Any, key: str, default: Optional[Any] = None) -> Any:
    """Read ``key`` from a JSON object body, tolerating other body shapes."""
    if isinstance(body, Mapping):
        value = body.get(key)
        if value is not None:
            return value
    return default


__all__ = ["MASK", "mask_secrets", "pick", "strip_none"]
