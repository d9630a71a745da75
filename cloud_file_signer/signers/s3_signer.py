#!/usr/bin/env python3
"""
AWS S3 / S3-compatible signer (SigV4 query-string presigning).

Signatures are computed locally from the secret key; no request is made.
Pass endpoint_url via S3Config for S3-compatible stores and emulators
(LocalStack, MinIO), which normally need path-style addressing.
"""
from __future__ import annotations

import hashlib
import hmac
import logging
import re
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from ..config import S3_MAX_EXPIRY, S3Config
from ..credentials import AwsCredentials
from ..error_handling import ConfigurationError, CredentialsMissing, ProviderError
from ..uri import parse_s3_uri
from ..url_builder import build_url, canonical_query, quote_path, split_endpoint
from .abstract import Clock, CloudFileSigner, PreparedRequest

logger = logging.getLogger(__name__)

ALGORITHM = "AWS4-HMAC-SHA256"
SERVICE = "s3"
UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"

_REGION_RE = re.compile(r"^[a-z0-9-]+$")
_BUCKET_RE = re.compile(r"^[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]$")
_IP_RE = re.compile(r"^\d+\.\d+\.\d+\.\d+$")


def amz_date(ts: datetime) -> str:
    return ts.strftime("%Y%m%dT%H%M%SZ")


def _hmac(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def signing_key(secret_key: str, date_stamp: str, region: str, service: str = SERVICE) -> bytes:
    k_date = _hmac(("AWS4" + secret_key).encode("utf-8"), date_stamp)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, "aws4_request")


def canonical_headers(headers: Dict[str, str]) -> Tuple[str, str]:
    """Return (canonical header block, signed header list)."""
    folded: Dict[str, str] = {}
    for name, value in headers.items():
        folded[name.strip().lower()] = " ".join(str(value).split())
    names = sorted(folded)
    block = "".join(f"{n}:{folded[n]}\n" for n in names)
    return block, ";".join(names)


def signed_headers_for(host: str, extra: Dict[str, str], provider: str) -> Dict[str, str]:
    """Headers to sign: the request host plus the caller's extras, which may not replace it."""
    if any(name.strip().lower() == "host" for name in extra):
        raise ProviderError(
            "the host header is derived from the endpoint and cannot be supplied",
            provider=provider,
            stage="canonicalize",
        )
    headers = {"host": host}
    headers.update(extra)
    return headers


def canonical_request(
    method: str,
    uri: str,
    query: List[Tuple[str, str]],
    headers: Dict[str, str],
    payload_hash: str = UNSIGNED_PAYLOAD,
) -> str:
    header_block, signed = canonical_headers(headers)
    return "\n".join([method, uri, canonical_query(query), header_block, signed, payload_hash])


def string_to_sign(algorithm: str, timestamp: str, scope: str, canonical: str) -> str:
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return "\n".join([algorithm, timestamp, scope, digest])


def is_dns_compatible(bucket: str) -> bool:
    return bool(_BUCKET_RE.match(bucket)) and "." not in bucket and not _IP_RE.match(bucket)


class S3Signer(CloudFileSigner):
    provider = "s3"
    hard_max_expiry = S3_MAX_EXPIRY

    def __init__(self, config: S3Config, credentials: AwsCredentials, clock: Optional[Clock] = None):
        if not isinstance(credentials, AwsCredentials):
            raise CredentialsMissing("S3 signing needs AwsCredentials", provider=self.provider, stage="credentials")
        super().__init__(prefix=config.prefix, max_expiry=config.max_expiry, clock=clock)
        region = (config.region or "").strip()
        if not _REGION_RE.match(region):
            raise ProviderError(f"malformed region {config.region!r}", provider=self.provider, stage="config")
        if config.addressing_style not in ("auto", "path", "virtual"):
            raise ConfigurationError(
                f"addressing_style must be auto, path or virtual, got {config.addressing_style!r}",
                provider=self.provider,
                stage="config",
            )
        self.region = region
        self.addressing_style = config.addressing_style
        self.custom_endpoint = bool(config.endpoint_url)
        endpoint = config.endpoint_url or self._default_endpoint(region)
        try:
            self.scheme, self.host, self.base_path = split_endpoint(endpoint)
        except ValueError as exc:
            raise ConfigurationError(str(exc), provider=self.provider, stage="config") from exc
        self._credentials = credentials

    @staticmethod
    def _default_endpoint(region: str) -> str:
        if region == "us-east-1":
            return "https://s3.amazonaws.com"
        return f"https://s3.{region}.amazonaws.com"

    def __repr__(self) -> str:
        return f"S3Signer(region={self.region!r}, endpoint={self.scheme}://{self.host}{self.base_path})"

    def _validate_bucket(self, bucket: str) -> None:
        if not bucket or not _BUCKET_RE.match(bucket):
            raise ProviderError(f"malformed bucket name {bucket!r}", provider=self.provider, stage="validate")

    def _parse_uri(self, uri: str) -> Tuple[str, str]:
        parsed = parse_s3_uri(uri)
        return parsed.bucket, parsed.key

    def _use_virtual_host(self, bucket: str) -> bool:
        if self.addressing_style == "path":
            return False
        if self.addressing_style == "virtual":
            return True
        return not self.custom_endpoint and is_dns_compatible(bucket)

    def _address(self, bucket: str, key: str) -> Tuple[str, str]:
        """Return (host header, canonical URI) for an object."""
        if self._use_virtual_host(bucket):
            return f"{bucket}.{self.host}", f"{self.base_path}/{quote_path(key)}"
        return self.host, f"{self.base_path}/{bucket}/{quote_path(key)}"

    def _presign(self, request: PreparedRequest) -> str:
        creds = self._credentials
        timestamp = amz_date(request.valid_from)
        date_stamp = timestamp[:8]
        scope = f"{date_stamp}/{self.region}/{SERVICE}/aws4_request"
        host, uri = self._address(request.bucket, request.key)

        headers = signed_headers_for(host, request.headers, self.provider)
        _, signed_headers = canonical_headers(headers)

        query: List[Tuple[str, str]] = [
            ("X-Amz-Algorithm", ALGORITHM),
            ("X-Amz-Credential", f"{creds.access_key_id}/{scope}"),
            ("X-Amz-Date", timestamp),
            ("X-Amz-Expires", str(request.expires)),
            ("X-Amz-SignedHeaders", signed_headers),
        ]
        if creds.session_token:
            query.append(("X-Amz-Security-Token", creds.session_token))
        query.extend(request.query_params.items())

        canonical = canonical_request(request.method, uri, query, headers)
        to_sign = string_to_sign(ALGORITHM, timestamp, scope, canonical)
        key = signing_key(creds.secret_access_key, date_stamp, self.region)
        signature = hmac.new(key, to_sign.encode("utf-8"), hashlib.sha256).hexdigest()

        query.append(("X-Amz-Signature", signature))
        return build_url(self.scheme, host, uri, _ordered(query))


def _ordered(query: List[Tuple[str, str]]) -> List[Tuple[str, str]]:
    # canonical order, signature last
    signature = [p for p in query if p[0] == "X-Amz-Signature"]
    rest = sorted((p for p in query if p[0] != "X-Amz-Signature"), key=lambda p: (p[0], p[1]))
    return rest + signature
