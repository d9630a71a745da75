#!/usr/bin/env python3
"""
Azure Blob Storage signer (service SAS signed with the account shared key).

The SAS token comes from azure.storage.blob.generate_blob_sas with explicit
start and expiry, so it is computed locally and depends only on the request
and the injected clock. Works against Azurite by configuring its path-style
endpoint (http://127.0.0.1:10000/devstoreaccount1).
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
from urllib.parse import parse_qsl

from azure.storage.blob import BlobSasPermissions, generate_blob_sas

from ..config import AzureConfig
from ..credentials import AzureSharedKeyCredentials
from ..error_handling import ConfigurationError, CredentialsMissing, PermissionNotSupported, ProviderError
from ..uri import parse_azure_uri
from ..url_builder import build_url, quote_component, quote_path, split_endpoint
from .abstract import Clock, CloudFileSigner, PreparedRequest

logger = logging.getLogger(__name__)

_CONTAINER_RE = re.compile(r"^(\$root|[a-z0-9](?!.*--)[a-z0-9-]{1,61}[a-z0-9])$")

SAS_PERMISSIONS = {
    "GET": BlobSasPermissions(read=True),
    "HEAD": BlobSasPermissions(read=True),
    "PUT": BlobSasPermissions(create=True, write=True),
    "DELETE": BlobSasPermissions(delete=True),
}
# response header overrides that are part of the signature
RESPONSE_OVERRIDES = {
    "rscc": "cache_control",
    "rscd": "content_disposition",
    "rsce": "content_encoding",
    "rscl": "content_language",
    "rsct": "content_type",
}


def sas_time(ts: datetime) -> str:
    return ts.strftime("%Y-%m-%dT%H:%M:%SZ")


class AzureBlobSigner(CloudFileSigner):
    provider = "azure"

    def __init__(self, config: AzureConfig, credentials: AzureSharedKeyCredentials, clock: Optional[Clock] = None):
        if not isinstance(credentials, AzureSharedKeyCredentials):
            raise CredentialsMissing(
                "Azure signing needs AzureSharedKeyCredentials", provider=self.provider, stage="credentials"
            )
        super().__init__(prefix=config.prefix, max_expiry=config.max_expiry, clock=clock)
        account = config.account_name or credentials.account_name
        if account != credentials.account_name:
            raise ConfigurationError(
                f"configured account {account!r} does not match the credentials' account",
                provider=self.provider,
                stage="config",
            )
        if config.start_skew < 0:
            raise ConfigurationError("start_skew must not be negative", provider=self.provider, stage="config")
        self.account_name = account
        self.start_skew = timedelta(seconds=config.start_skew)
        endpoint = config.endpoint_url or f"https://{account}.blob.core.windows.net"
        try:
            self.scheme, self.host, self.base_path = split_endpoint(endpoint)
        except ValueError as exc:
            raise ConfigurationError(str(exc), provider=self.provider, stage="config") from exc
        self._credentials = credentials

    @classmethod
    def emulator(cls, endpoint_url: Optional[str] = None, clock: Optional[Clock] = None) -> "AzureBlobSigner":
        config = AzureConfig.emulator(endpoint_url) if endpoint_url else AzureConfig.emulator()
        return cls(config, AzureSharedKeyCredentials.emulator(), clock=clock)

    def __repr__(self) -> str:
        return f"AzureBlobSigner(account={self.account_name!r}, endpoint={self.scheme}://{self.host}{self.base_path})"

    @property
    def storage_account(self) -> str:
        return self.account_name

    def _validate_bucket(self, bucket: str) -> None:
        if not bucket or not _CONTAINER_RE.match(bucket):
            raise ProviderError(f"malformed container name {bucket!r}", provider=self.provider, stage="validate")

    def _parse_uri(self, uri: str) -> Tuple[str, str]:
        parsed = parse_azure_uri(uri)
        if parsed.account != self.account_name:
            raise ProviderError(
                "Storage account name in URI does not match signer",
                provider=self.provider,
                stage="validate",
            )
        return parsed.bucket, parsed.key

    def _presign(self, request: PreparedRequest) -> str:
        permission = SAS_PERMISSIONS.get(request.method)
        if permission is None:
            raise PermissionNotSupported(
                f"method {request.method} cannot be granted by a blob SAS",
                provider=self.provider,
                stage="validate",
            )
        start = request.valid_from - self.start_skew
        expiry = request.valid_from + timedelta(seconds=request.expires)
        if expiry <= start:
            raise ProviderError("SAS expiry must be after its start", provider=self.provider, stage="sign")

        # a shared-key SAS has no field that binds request headers
        if request.headers:
            raise ProviderError(
                f"a blob SAS cannot sign request headers: {', '.join(sorted(request.headers))}",
                provider=self.provider,
                stage="canonicalize",
            )
        unknown = set(request.query_params) - set(RESPONSE_OVERRIDES)
        if unknown:
            raise ProviderError(
                f"unsupported SAS query parameters: {', '.join(sorted(unknown))}",
                provider=self.provider,
                stage="canonicalize",
            )
        overrides = {RESPONSE_OVERRIDES[name]: value for name, value in request.query_params.items()}
        protocol = "https" if self.scheme == "https" else "https,http"
        try:
            token = generate_blob_sas(
                self.account_name,
                request.bucket,
                request.key,
                account_key=self._credentials.account_key,
                permission=permission,
                start=sas_time(start),
                expiry=sas_time(expiry),
                protocol=protocol,
                **overrides,
            )
        except (TypeError, ValueError) as exc:
            raise ProviderError(f"could not build blob SAS: {exc}", provider=self.provider, stage="sign") from exc

        params: List[Tuple[str, str]] = parse_qsl(token, keep_blank_values=True)
        path = f"{self.base_path}/{quote_component(request.bucket)}/{quote_path(request.key)}"
        return build_url(self.scheme, self.host, path, params)
