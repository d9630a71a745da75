#!/usr/bin/env python3
"""
Signer abstraction.

Define a CloudFileSigner interface that callers use regardless of provider.
Implementations (S3, Azure Blob, GCS) implement `_presign` plus bucket and
URI handling; validation of path, method and expiry lives here so it runs
before any provider computes signature material.

- sign(request) -> SignedUrl
- sign_path(bucket, path, expires_in, method="GET") -> SignedUrl
- sign_read_only / sign_write_only(bucket, path, expires_in) -> SignedUrl
- sign_uri(uri, expires_in, permission=READ) -> SignedUrl
- await resolve(config, credential_provider) -> ready signer
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Tuple, Type, TypeVar

from ..credentials import CredentialProvider
from ..error_handling import ConfigurationError, ProviderError
from ..permissions import Permission
from ..presigned_url import SignedUrl
from ..request import Expiry, SigningRequest, expiry_seconds, normalize_path

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
S = TypeVar("S", bound="CloudFileSigner")

SUPPORTED_METHODS = ("GET", "HEAD", "PUT", "POST", "DELETE")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PreparedRequest:
    """A request that passed validation; what provider signers work from."""

    bucket: str
    key: str
    method: str
    permission: Permission
    expires: int
    valid_from: datetime
    headers: Dict[str, str]
    query_params: Dict[str, str]


class CloudFileSigner(ABC):
    provider: str = ""
    hard_max_expiry: Optional[int] = None

    def __init__(self, prefix: str = "", max_expiry: int = 0, clock: Optional[Clock] = None):
        if max_expiry <= 0:
            raise ConfigurationError("max_expiry must be positive", provider=self.provider, stage="config")
        if self.hard_max_expiry is not None and max_expiry > self.hard_max_expiry:
            raise ConfigurationError(
                f"max_expiry {max_expiry}s is above the provider limit of {self.hard_max_expiry}s",
                provider=self.provider,
                stage="config",
            )
        self.prefix = (prefix or "").strip("/")
        self.max_expiry = max_expiry
        self._clock = clock or utc_now

    @classmethod
    async def resolve(cls: Type[S], config, credential_provider: CredentialProvider, **kwargs) -> S:
        """Resolve credentials (the only suspending step) and return a ready signer."""
        credentials = await credential_provider.resolve()
        return cls(config, credentials, **kwargs)

    # --- validation -------------------------------------------------------

    def _now(self) -> datetime:
        try:
            now = self._clock()
        except Exception as exc:
            raise ProviderError("time source unavailable", provider=self.provider, stage="clock") from exc
        return self._check_utc(now)

    def _check_utc(self, value: datetime) -> datetime:
        if not isinstance(value, datetime) or value.tzinfo is None or value.utcoffset() is None:
            raise ProviderError(
                "timestamps must be timezone-aware (UTC)",
                provider=self.provider,
                stage="clock",
            )
        return value.astimezone(timezone.utc).replace(microsecond=0)

    def prepare(self, request: SigningRequest) -> PreparedRequest:
        key = normalize_path(request.path, self.prefix, provider=self.provider)
        method = (request.method or "GET").upper()
        if method not in SUPPORTED_METHODS:
            raise ProviderError(f"unsupported HTTP method {request.method!r}", provider=self.provider, stage="validate")
        permission = Permission.from_method(method)
        expires = expiry_seconds(request.expires_in, self.max_expiry, provider=self.provider)
        self._validate_bucket(request.bucket)
        valid_from = self._check_utc(request.valid_from) if request.valid_from is not None else self._now()
        return PreparedRequest(
            bucket=request.bucket,
            key=key,
            method=method,
            permission=permission,
            expires=expires,
            valid_from=valid_from,
            headers=dict(request.headers or {}),
            query_params=dict(request.query_params or {}),
        )

    # --- public API -------------------------------------------------------

    def sign(self, request: SigningRequest) -> SignedUrl:
        prepared = self.prepare(request)
        logger.debug(
            "signing %s url provider=%s bucket=%s key=%s expires_in=%ss",
            prepared.method,
            self.provider,
            prepared.bucket,
            prepared.key,
            prepared.expires,
        )
        url = self._presign(prepared)
        return SignedUrl(
            url=url,
            provider=self.provider,
            method=prepared.method,
            valid_from=prepared.valid_from,
            expires_in=timedelta(seconds=prepared.expires),
        )

    def sign_path(self, bucket: str, path: str, expires_in: Expiry, method: str = "GET", **kwargs) -> SignedUrl:
        return self.sign(SigningRequest(bucket=bucket, path=path, expires_in=expires_in, method=method, **kwargs))

    def sign_read_only(self, bucket: str, path: str, expires_in: Expiry) -> SignedUrl:
        return self.sign_path(bucket, path, expires_in, method=Permission.READ.method)

    def sign_write_only(self, bucket: str, path: str, expires_in: Expiry) -> SignedUrl:
        return self.sign_path(bucket, path, expires_in, method=Permission.WRITE.method)

    def sign_uri(self, uri: str, expires_in: Expiry, permission: Permission = Permission.READ) -> SignedUrl:
        bucket, key = self._parse_uri(uri)
        return self.sign_path(bucket, key, expires_in, method=permission.method)

    # --- provider hooks ---------------------------------------------------

    @abstractmethod
    def _validate_bucket(self, bucket: str) -> None:
        ...

    @abstractmethod
    def _parse_uri(self, uri: str) -> Tuple[str, str]:
        ...

    @abstractmethod
    def _presign(self, request: PreparedRequest) -> str:
        ...
