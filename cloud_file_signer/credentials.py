"""
Credential material for the signers and the providers that resolve it.

Resolution is the only step that may block or touch the network (boto3's
credential chain, reading key files), so providers expose an async
`resolve()` and run the blocking part in a worker thread. Once resolved,
credentials are immutable and signers never go back to the provider.

Design notes / safety:
- Do NOT log secret values; providers log only which source answered.
- SDKs are imported lazily so that a deployment signing for one provider
  doesn't need the others installed.
"""
from __future__ import annotations

import asyncio
import base64
import binascii
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union, runtime_checkable

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from .config import AZURITE_ACCOUNT_KEY, AZURITE_ACCOUNT_NAME
from .error_handling import CredentialsMissing

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AwsCredentials:
    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: Optional[str] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not (self.access_key_id or "").strip():
            raise CredentialsMissing("AWS access key id is empty", provider="s3", stage="credentials")
        if not (self.secret_access_key or "").strip():
            raise CredentialsMissing("AWS secret access key is empty", provider="s3", stage="credentials")


@dataclass(frozen=True)
class AzureSharedKeyCredentials:
    account_name: str
    account_key: str = field(repr=False)
    key_bytes: bytes = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not (self.account_name or "").strip():
            raise CredentialsMissing("storage account name is empty", provider="azure", stage="credentials")
        if not (self.account_key or "").strip():
            raise CredentialsMissing("storage account key is empty", provider="azure", stage="credentials")
        try:
            decoded = base64.b64decode(self.account_key, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise CredentialsMissing(
                f"storage account key for {self.account_name} is not valid base64",
                provider="azure",
                stage="credentials",
            ) from exc
        object.__setattr__(self, "key_bytes", decoded)

    @classmethod
    def emulator(cls) -> "AzureSharedKeyCredentials":
        return cls(AZURITE_ACCOUNT_NAME, AZURITE_ACCOUNT_KEY)


@dataclass(frozen=True)
class GcsServiceAccountCredentials:
    client_email: str
    private_key: RSAPrivateKey = field(repr=False)

    def __post_init__(self) -> None:
        if not (self.client_email or "").strip():
            raise CredentialsMissing("service account client_email is empty", provider="gcs", stage="credentials")
        if not isinstance(self.private_key, RSAPrivateKey):
            raise CredentialsMissing("service account key must be an RSA private key", provider="gcs", stage="credentials")

    @classmethod
    def from_pem(cls, client_email: str, pem: Union[str, bytes]) -> "GcsServiceAccountCredentials":
        if not pem:
            raise CredentialsMissing("service account private key is empty", provider="gcs", stage="credentials")
        data = pem.encode("utf-8") if isinstance(pem, str) else pem
        try:
            key = serialization.load_pem_private_key(data, password=None)
        except (ValueError, TypeError) as exc:
            raise CredentialsMissing(
                f"could not parse PEM private key for {client_email}",
                provider="gcs",
                stage="credentials",
            ) from exc
        return cls(client_email=client_email, private_key=key)

    @classmethod
    def from_service_account_info(cls, info: Dict[str, Any]) -> "GcsServiceAccountCredentials":
        if info.get("type") not in (None, "service_account"):
            raise CredentialsMissing(
                f"expected a service_account key, got type={info.get('type')!r}",
                provider="gcs",
                stage="credentials",
            )
        return cls.from_pem(info.get("client_email") or "", info.get("private_key") or "")


Credentials = Union[AwsCredentials, AzureSharedKeyCredentials, GcsServiceAccountCredentials]


@runtime_checkable
class CredentialProvider(Protocol):
    """
    Resolves credential material once, before any signing happens.

    - resolve() -> Credentials   (may suspend; raises CredentialsMissing)
    """

    async def resolve(self) -> Credentials:
        ...


class StaticCredentialProvider(CredentialProvider):
    """Hands back credentials supplied up front (tests, injected secrets)."""

    def __init__(self, credentials: Credentials):
        self.credentials = credentials

    async def resolve(self) -> Credentials:
        return self.credentials


class EnvAwsCredentialProvider(CredentialProvider):
    """
    Uses boto3 credential resolution: env vars, shared credentials/config
    files, web identity (IRSA) and instance metadata, in boto3's order.
    """

    def __init__(self, profile_name: Optional[str] = None):
        self.profile_name = profile_name

    def _load(self) -> AwsCredentials:
        import boto3
        from botocore.exceptions import BotoCoreError

        try:
            session = boto3.Session(profile_name=self.profile_name)
            creds = session.get_credentials()
        except BotoCoreError as exc:
            raise CredentialsMissing(f"AWS credential chain failed: {exc}", provider="s3", stage="credentials") from exc
        if creds is None:
            raise CredentialsMissing("no AWS credentials found in the boto3 credential chain", provider="s3", stage="credentials")
        frozen = creds.get_frozen_credentials()
        logger.info("Resolved AWS credentials from %s", getattr(creds, "method", "unknown"))
        return AwsCredentials(frozen.access_key, frozen.secret_key, frozen.token)

    async def resolve(self) -> AwsCredentials:
        return await asyncio.to_thread(self._load)


class AzureConnectionStringProvider(CredentialProvider):
    """
    Reads the shared key out of a storage connection string
    (AZURE_STORAGE_CONNECTION_STRING by default). Parsing is done by
    azure-storage-blob, which also understands UseDevelopmentStorage=true.
    After resolve(), `endpoint_url` holds the blob endpoint from the string.
    """

    def __init__(self, connection_string: Optional[str] = None):
        self.connection_string = connection_string
        self.endpoint_url: Optional[str] = None

    def _load(self) -> AzureSharedKeyCredentials:
        from azure.storage.blob import BlobServiceClient

        conn = self.connection_string or os.getenv("AZURE_STORAGE_CONNECTION_STRING")
        if not conn:
            raise CredentialsMissing("AZURE_STORAGE_CONNECTION_STRING not set", provider="azure", stage="credentials")
        try:
            client = BlobServiceClient.from_connection_string(conn)
        except ValueError as exc:
            raise CredentialsMissing("malformed storage connection string", provider="azure", stage="credentials") from exc
        account_key = getattr(client.credential, "account_key", None)
        if not account_key:
            raise CredentialsMissing(
                "connection string carries no AccountKey; shared-key signing needs one",
                provider="azure",
                stage="credentials",
            )
        self.endpoint_url = client.url.rstrip("/")
        logger.info("Resolved Azure shared key for account %s from connection string", client.account_name)
        return AzureSharedKeyCredentials(client.account_name, account_key)

    async def resolve(self) -> AzureSharedKeyCredentials:
        return await asyncio.to_thread(self._load)


class ServiceAccountFileProvider(CredentialProvider):
    """
    Loads a GCS service-account JSON key file, from `path` or
    GOOGLE_APPLICATION_CREDENTIALS.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = path

    def _load(self) -> GcsServiceAccountCredentials:
        path = self.path or os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
        if not path:
            raise CredentialsMissing("GOOGLE_APPLICATION_CREDENTIALS not set", provider="gcs", stage="credentials")
        p = Path(path)
        try:
            info = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise CredentialsMissing(f"could not read service account file {p}", provider="gcs", stage="credentials") from exc
        creds = GcsServiceAccountCredentials.from_service_account_info(info)
        logger.info("Resolved GCS service account %s from %s", creds.client_email, p)
        return creds

    async def resolve(self) -> GcsServiceAccountCredentials:
        return await asyncio.to_thread(self._load)
