"""
SigningRequest and the provider-independent checks applied to it.

Checks here run before any signature material is computed, so a bad path or
expiry never produces a partial signature.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Optional, Union

from .error_handling import ExpiryNonPositive, ExpiryTooLong, InvalidPath

Expiry = Union[int, float, timedelta]


@dataclass(frozen=True)
class SigningRequest:
    bucket: str
    path: str
    expires_in: Expiry
    method: str = "GET"
    valid_from: Optional[datetime] = None
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, str] = field(default_factory=dict)


def normalize_path(path: str, prefix: str = "", provider: Optional[str] = None) -> str:
    """
    Return the object key for `path` under `prefix`.

    A leading "/" is dropped. Paths containing "." or ".." segments, empty
    segments, backslashes or control characters are rejected, as is an empty
    path.
    """
    if not isinstance(path, str):
        raise InvalidPath(f"object path must be a string, got {type(path).__name__}", provider=provider, stage="validate")
    key = path.lstrip("/")
    if not key:
        raise InvalidPath("object path must not be empty", provider=provider, stage="validate")
    if "\\" in key or any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in key):
        raise InvalidPath(f"object path contains illegal characters: {key!r}", provider=provider, stage="validate")
    segments = key.split("/")
    # a single trailing slash addresses a "folder" object and is allowed
    inner = segments[:-1] if segments[-1] == "" else segments
    for seg in inner:
        if seg in ("", ".", ".."):
            raise InvalidPath(f"object path escapes or is malformed: {key!r}", provider=provider, stage="validate")
    if prefix:
        prefix = prefix.strip("/")
        return f"{prefix}/{key}" if prefix else key
    return key


def expiry_seconds(expires_in: Expiry, ceiling: int, provider: Optional[str] = None) -> int:
    """Convert `expires_in` to whole seconds, enforcing 0 < seconds <= ceiling."""
    if isinstance(expires_in, bool) or not isinstance(expires_in, (int, float, timedelta)):
        raise ExpiryNonPositive(
            f"expiry must be seconds or a timedelta, got {type(expires_in).__name__}",
            provider=provider,
            stage="validate",
        )
    total = expires_in.total_seconds() if isinstance(expires_in, timedelta) else expires_in
    if isinstance(total, float) and math.isnan(total):
        raise ExpiryNonPositive("expiry must be a number of seconds, got NaN", provider=provider, stage="validate")
    if total <= 0:
        raise ExpiryNonPositive(f"expiry must be positive, got {total}s", provider=provider, stage="validate")
    if isinstance(total, float) and math.isinf(total):
        raise ExpiryTooLong(f"expiry must be finite, the maximum is {ceiling}s", provider=provider, stage="validate")
    seconds = int(total)
    if seconds < 1:
        raise ExpiryNonPositive("expiry must be at least one second", provider=provider, stage="validate")
    if seconds > ceiling:
        raise ExpiryTooLong(
            f"expiry of {seconds}s exceeds the maximum of {ceiling}s",
            provider=provider,
            stage="validate",
        )
    return seconds
