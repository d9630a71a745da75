"""
Parsing of provider object URIs into (bucket, key) pairs.

Supported forms:
  S3:    s3://bucket/key, s3a://..., s3n://...,
         https://bucket.s3.<region>.amazonaws.com/key (virtual-hosted),
         https://s3.<region>.amazonaws.com/bucket/key (path-style)
  Azure: abfs[s]://container@account.dfs.core.windows.net/path/to/blob,
         https://account.blob.core.windows.net/container/blob
  GCS:   gs://bucket/key
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote, urlsplit

from .error_handling import CloudUriParseError

_S3_HOST_RE = re.compile(r"^(.+\.)?s3[.-]([a-z0-9-]+)\.")
_SCHEME_RE = re.compile(r"^([A-Za-z][A-Za-z0-9+.-]*)://")


@dataclass(frozen=True)
class CloudUri:
    bucket: str
    key: str
    account: Optional[str] = None


def _scheme(uri: str) -> Optional[str]:
    m = _SCHEME_RE.match(uri)
    return m.group(1).lower() if m else None


def _strip_key(path: str) -> str:
    return path[1:] if path.startswith("/") else path


def parse_s3_uri(uri: str) -> CloudUri:
    if not uri:
        raise CloudUriParseError("Invalid URI. Cause: empty string. Received URI: ``.", provider="s3", stage="validate")
    scheme = _scheme(uri)
    if scheme is None:
        raise CloudUriParseError(
            "Invalid URI: missing scheme. The URI should start with `S3`, `S3a`, `S3n`, `http` or `https`. "
            f"Received URI: `{uri}`.",
            provider="s3",
            stage="validate",
        )
    parts = urlsplit(uri)
    if scheme in ("s3", "s3a", "s3n"):
        if not parts.hostname:
            raise CloudUriParseError(
                "Invalid URI: Couldn't extract the S3 bucket name. Format the URI as `s3://<bucket_name>/<key>`. "
                f"Received: {uri}",
                provider="s3",
                stage="validate",
            )
        key = _strip_key(parts.path)
        if not key:
            raise CloudUriParseError(
                "Invalid URI: Couldn't extract the S3 object key. Format the URI as `s3://<bucket_name>/<key>`. "
                f"Received: {uri}",
                provider="s3",
                stage="validate",
            )
        return CloudUri(bucket=parts.netloc, key=key)
    if scheme in ("http", "https"):
        host = (parts.hostname or "").lower()
        m = _S3_HOST_RE.match(host)
        if not m:
            raise CloudUriParseError(
                "Invalid URI. Hostname does not appear to be a valid S3 endpoint",
                provider="s3",
                stage="validate",
            )
        prefix = m.group(1)
        if prefix:
            return CloudUri(bucket=prefix[:-1], key=unquote(_strip_key(parts.path)))
        path = parts.path[1:] if parts.path.startswith("/") else parts.path
        bucket, sep, key = path.partition("/")
        if not bucket or not sep:
            raise CloudUriParseError("Invalid URI: Couldn't extract key.", provider="s3", stage="validate")
        return CloudUri(bucket=bucket, key=unquote(key))
    raise CloudUriParseError(
        "Unsupported URI scheme. Supported schemas are `S3`, `S3a`, `S3n`, `http` and `https`. "
        f"Received scheme: `{scheme}`.",
        provider="s3",
        stage="validate",
    )


def parse_azure_uri(uri: str) -> CloudUri:
    fmt = "Format the URI as `abfss://<container>@<storage_account>.dfs.core.windows.net/path/to/blob`"
    scheme = _scheme(uri or "")
    if scheme is None:
        raise CloudUriParseError(
            f"Invalid URI: missing scheme. The URI should start with `abfs` or `abfss`. Received URI: `{uri}`.",
            provider="azure",
            stage="validate",
        )
    parts = urlsplit(uri)
    if scheme in ("abfs", "abfss"):
        host = parts.hostname or ""
        account = host.split(".", 1)[0] if "." in host else ""
        if not account:
            raise CloudUriParseError(
                f"Invalid URI: couldn't extract storage account name. {fmt}", provider="azure", stage="validate"
            )
        if not parts.username:
            raise CloudUriParseError(
                f"Invalid URI: couldn't extract container name. {fmt}", provider="azure", stage="validate"
            )
        if not parts.path.startswith("/"):
            raise CloudUriParseError(
                f"Invalid URI: couldn't extract blob name. {fmt}", provider="azure", stage="validate"
            )
        return CloudUri(bucket=parts.username, key=_strip_key(parts.path), account=account)
    if scheme in ("http", "https"):
        host = parts.hostname or ""
        if ".blob." not in host:
            raise CloudUriParseError(
                "Invalid URI. Hostname does not appear to be a blob storage endpoint",
                provider="azure",
                stage="validate",
            )
        path = parts.path[1:] if parts.path.startswith("/") else parts.path
        container, sep, blob = path.partition("/")
        if not container or not sep:
            raise CloudUriParseError("Invalid URI: couldn't extract blob name.", provider="azure", stage="validate")
        return CloudUri(bucket=container, key=unquote(blob), account=host.split(".", 1)[0])
    raise CloudUriParseError(
        f"Unsupported URI scheme. Supported schemas are `abfss` and `abfs`. Received scheme: `{scheme}`.",
        provider="azure",
        stage="validate",
    )


def parse_gcs_uri(uri: str) -> CloudUri:
    scheme = _scheme(uri or "")
    if scheme is None:
        raise CloudUriParseError(
            f"Invalid URI: missing scheme. The URI should start with `gs`. Received URI: `{uri}`.",
            provider="gcs",
            stage="validate",
        )
    if scheme != "gs":
        raise CloudUriParseError(
            f"Unsupported URI scheme. Supported schemas is `gs`. Received scheme: `{scheme}`.",
            provider="gcs",
            stage="validate",
        )
    parts = urlsplit(uri)
    if not parts.netloc:
        raise CloudUriParseError("Invalid URI: missing bucket", provider="gcs", stage="validate")
    return CloudUri(bucket=parts.netloc, key=_strip_key(parts.path))
