"""
Assembles presigned URLs and the canonical forms that V4-style schemes sign.

Percent-encoding follows RFC 3986: only A-Z a-z 0-9 - . _ ~ are left as-is,
and "/" is kept in object paths.
"""
from __future__ import annotations

from typing import Iterable, List, Mapping, Tuple, Union
from urllib.parse import quote, urlsplit

Params = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


def quote_component(value: str) -> str:
    return quote(str(value), safe="-_.~")


def quote_path(path: str) -> str:
    return quote(path, safe="-_.~/")


def _pairs(params: Params) -> List[Tuple[str, str]]:
    if isinstance(params, Mapping):
        return [(str(k), str(v)) for k, v in params.items()]
    return [(str(k), str(v)) for k, v in params]


def encode_query(params: Params, sort: bool = False) -> str:
    encoded = [(quote_component(k), quote_component(v)) for k, v in _pairs(params)]
    if sort:
        encoded.sort()
    return "&".join(f"{k}={v}" for k, v in encoded)


def canonical_query(params: Params) -> str:
    """Sorted, fully encoded query string as signed by SigV4 and GCS V4."""
    return encode_query(params, sort=True)


def split_endpoint(endpoint_url: str) -> Tuple[str, str, str]:
    """Return (scheme, host[:port], base path) of an endpoint URL."""
    parts = urlsplit(endpoint_url)
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise ValueError(f"endpoint must be an absolute http(s) URL: {endpoint_url!r}")
    host = parts.hostname.lower()
    if parts.port:
        host = f"{host}:{parts.port}"
    return parts.scheme, host, parts.path.rstrip("/")


def build_url(scheme: str, host: str, path: str, params: Params, sort: bool = False) -> str:
    """
    Join scheme, host, an already-encoded path and query parameters.

    Parameters keep the order given unless `sort` is set, since providers
    disagree on ordering.
    """
    if not path.startswith("/"):
        path = "/" + path
    query = encode_query(params, sort=sort)
    if query:
        return f"{scheme}://{host}{path}?{query}"
    return f"{scheme}://{host}{path}"
