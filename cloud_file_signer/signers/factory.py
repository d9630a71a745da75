#!/usr/bin/env python3
"""
Signer factory.

Creates a CloudFileSigner implementation based on configuration
(cfg.PROVIDER). Supported types: "s3", "azure", "gcs".

- create_signer(provider, config, credentials): credentials already resolved
- await resolve_signer(settings): builds config + credential provider from
  env/YAML settings, resolves credentials, returns a ready signer
"""
from __future__ import annotations

import logging
from typing import Optional

from .. import config as config_module
from ..config import Config
from ..credentials import (
    AwsCredentials,
    AzureConnectionStringProvider,
    AzureSharedKeyCredentials,
    CredentialProvider,
    Credentials,
    EnvAwsCredentialProvider,
    ServiceAccountFileProvider,
    StaticCredentialProvider,
)
from ..error_handling import ConfigurationError
from ..utils.logging import configure_logging
from .abstract import Clock, CloudFileSigner

logger = logging.getLogger(__name__)

_ALIASES = {
    "s3": "s3",
    "aws": "s3",
    "minio": "s3",
    "azure": "azure",
    "azureblob": "azure",
    "az": "azure",
    "gcs": "gcs",
    "gcp": "gcs",
}


def normalize_provider(provider: Optional[str]) -> str:
    typ = (provider or "").strip().lower()
    if typ not in _ALIASES:
        raise ConfigurationError(f"Unsupported signer provider: {provider!r}", stage="config")
    return _ALIASES[typ]


def create_signer(provider: str, config, credentials: Credentials, clock: Optional[Clock] = None) -> CloudFileSigner:
    typ = normalize_provider(provider)
    if typ == "s3":
        from .s3_signer import S3Signer
        return S3Signer(config, credentials, clock=clock)
    if typ == "azure":
        from .azure_signer import AzureBlobSigner
        return AzureBlobSigner(config, credentials, clock=clock)
    from .gcs_signer import GcsSigner
    return GcsSigner(config, credentials, clock=clock)


def credential_provider_from(settings: Config) -> CredentialProvider:
    typ = normalize_provider(settings.PROVIDER)
    if typ == "s3":
        if settings.S3_ACCESS_KEY or settings.S3_SECRET_KEY:
            return StaticCredentialProvider(
                AwsCredentials(settings.S3_ACCESS_KEY or "", settings.S3_SECRET_KEY or "", settings.S3_SESSION_TOKEN)
            )
        return EnvAwsCredentialProvider(profile_name=settings.AWS_PROFILE)
    if typ == "azure":
        if settings.AZURE_ACCOUNT_KEY:
            return StaticCredentialProvider(
                AzureSharedKeyCredentials(settings.AZURE_ACCOUNT_NAME or "", settings.AZURE_ACCOUNT_KEY)
            )
        return AzureConnectionStringProvider(settings.AZURE_CONNECTION_STRING)
    return ServiceAccountFileProvider(settings.GCS_SERVICE_ACCOUNT_FILE)


async def resolve_signer(
    settings: Optional[Config] = None, clock: Optional[Clock] = None, setup_logging: bool = True
) -> CloudFileSigner:
    settings = settings or config_module.cfg
    if setup_logging:
        configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    typ = normalize_provider(settings.PROVIDER)
    provider = credential_provider_from(settings)
    credentials = await provider.resolve()
    if typ == "s3":
        conf = config_module.s3_config_from(settings)
    elif typ == "azure":
        conf = config_module.azure_config_from(
            settings,
            account_name=credentials.account_name,
            endpoint_url=getattr(provider, "endpoint_url", None),
        )
    else:
        conf = config_module.gcs_config_from(settings)
    signer = create_signer(typ, conf, credentials, clock=clock)
    logger.info("Signer ready: %r", signer)
    return signer
