#!/usr/bin/env python3
"""
Google Cloud Storage signer (V4 signing with a service-account key).

The canonical request mirrors SigV4 but the string to sign is signed with
RSA PKCS#1 v1.5 + SHA256 using the service account's private key.
Uses GOOGLE_APPLICATION_CREDENTIALS (via ServiceAccountFileProvider) or an
injected key; the key is never logged.
"""
from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from ..config import GCS_MAX_EXPIRY, GcsConfig
from ..credentials import GcsServiceAccountCredentials
from ..error_handling import ConfigurationError, CredentialsMissing, ProviderError
from ..uri import parse_gcs_uri
from ..url_builder import build_url, quote_path, split_endpoint
from .abstract import Clock, CloudFileSigner, PreparedRequest
from .s3_signer import amz_date, canonical_headers, canonical_request, signed_headers_for, string_to_sign

logger = logging.getLogger(__name__)

ALGORITHM = "GOOG4-RSA-SHA256"
DEFAULT_ENDPOINT = "https://storage.googleapis.com"

_BUCKET_RE = re.compile(r"^[a-z0-9][a-z0-9._-]{1,220}[a-z0-9]$")


class GcsSigner(CloudFileSigner):
    provider = "gcs"
    hard_max_expiry = GCS_MAX_EXPIRY

    def __init__(self, config: GcsConfig, credentials: GcsServiceAccountCredentials, clock: Optional[Clock] = None):
        if not isinstance(credentials, GcsServiceAccountCredentials):
            raise CredentialsMissing(
                "GCS signing needs GcsServiceAccountCredentials", provider=self.provider, stage="credentials"
            )
        super().__init__(prefix=config.prefix, max_expiry=config.max_expiry, clock=clock)
        try:
            self.scheme, self.host, self.base_path = split_endpoint(config.endpoint_url or DEFAULT_ENDPOINT)
        except ValueError as exc:
            raise ConfigurationError(str(exc), provider=self.provider, stage="config") from exc
        self._credentials = credentials

    def __repr__(self) -> str:
        return f"GcsSigner(client_email={self._credentials.client_email!r}, endpoint={self.scheme}://{self.host})"

    def _validate_bucket(self, bucket: str) -> None:
        if not bucket or not _BUCKET_RE.match(bucket):
            raise ProviderError(f"malformed bucket name {bucket!r}", provider=self.provider, stage="validate")

    def _parse_uri(self, uri: str) -> Tuple[str, str]:
        parsed = parse_gcs_uri(uri)
        return parsed.bucket, parsed.key

    def _sign_bytes(self, data: bytes) -> bytes:
        try:
            return self._credentials.private_key.sign(data, padding.PKCS1v15(), hashes.SHA256())
        except (ValueError, TypeError) as exc:
            raise ProviderError("RSA signature computation failed", provider=self.provider, stage="sign") from exc

    def _presign(self, request: PreparedRequest) -> str:
        timestamp = amz_date(request.valid_from)
        scope = f"{timestamp[:8]}/auto/storage/goog4_request"
        uri = f"{self.base_path}/{request.bucket}/{quote_path(request.key)}"

        headers = signed_headers_for(self.host, request.headers, self.provider)
        _, signed_headers = canonical_headers(headers)

        query: List[Tuple[str, str]] = [
            ("X-Goog-Algorithm", ALGORITHM),
            ("X-Goog-Credential", f"{self._credentials.client_email}/{scope}"),
            ("X-Goog-Date", timestamp),
            ("X-Goog-Expires", str(request.expires)),
            ("X-Goog-SignedHeaders", signed_headers),
        ]
        query.extend(request.query_params.items())

        canonical = canonical_request(request.method, uri, query, headers)
        to_sign = string_to_sign(ALGORITHM, timestamp, scope, canonical)
        signature = self._sign_bytes(to_sign.encode("utf-8")).hex()

        query.append(("X-Goog-Signature", signature))
        return build_url(self.scheme, self.host, uri, query)
