"""Scrub OAuth grants and vendor responses before they reach DEBUG logs.

The transport logs every request body and every decoded response. Grant
bodies carry the account password and client secret, and token responses
carry the bearer and refresh tokens. :func:`redact_for_log` masks those
fields wherever they are nested and shortens oversized strings.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

MASK = "<redacted>"
_MAX_DEPTH = 20

# Compared after lower-casing and dropping "_" and "-", so "refresh_token",
# "refreshToken" and "Refresh-Token" all match "refreshtoken".
_SECRET_FIELDS: frozenset[str] = frozenset(
    {
        "password",
        "token",
        "accesstoken",
        "refreshtoken",
        "clientsecret",
        "authorization",
        "cookie",
    }
)


def _is_secret(key: str) -> bool:
    return key.lower().replace("_", "").replace("-", "") in _SECRET_FIELDS


def _shorten(text: str, limit: int) -> str:
    return text if len(text) <= limit else f"{text[:limit]}…<truncated>"


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a log-safe copy of a JSON-like *value*.

    Mappings keep their keys, with secret fields replaced by ``MASK``.
    Lists and tuples become lists. Strings longer than *max_string* are
    cut, bytes are shown by length, and anything else falls back to
    ``repr``.
    """
    if _depth > _MAX_DEPTH:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return _shorten(value, max_string)
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    def _child(item: Any) -> Any:
        return redact_for_log(item, max_string=max_string, _depth=_depth + 1)

    if isinstance(value, Mapping):
        return {str(key): MASK if _is_secret(str(key)) else _child(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_child(item) for item in value]
    return _shorten(repr(value), max_string)
