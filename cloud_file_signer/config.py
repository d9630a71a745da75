#!/usr/bin/env python3
"""
Signer config: env + optional YAML, and the per-provider endpoint configs.

Usage:
  from cloud_file_signer.config import cfg
  print(cfg.PROVIDER, cfg.PREFIX, cfg.S3_ENDPOINT)

The YAML file is looked up at $CLOUD_SIGNER_CONFIG, then config.yaml,
config.yml. Keys use the attribute names below.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import List, Optional, Union

import yaml

from .error_handling import ConfigurationError

logger = logging.getLogger(__name__)

# SigV4 and GCS V4 reject anything longer than a week.
S3_MAX_EXPIRY = 7 * 24 * 3600
GCS_MAX_EXPIRY = 7 * 24 * 3600
# Service SAS has no hard limit; keep the same week unless configured.
AZURE_MAX_EXPIRY = 7 * 24 * 3600

# Azurite well-known development account.
AZURITE_ACCOUNT_NAME = "devstoreaccount1"
AZURITE_ACCOUNT_KEY = (
    "Eby8vdM02xNOcqFlqUwJPLlmEtlCDXJ1OUzFT50uSRZ6IFsuFq2UVErCz4I6tq/K1SZFPTOtr/KBHBeksoGMGw=="
)
AZURITE_BLOB_ENDPOINT = "http://127.0.0.1:10000/devstoreaccount1"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    if val is None:
        return default
    val = val.strip()
    return val or default


def _config_paths() -> List[Path]:
    paths = []
    if os.environ.get("CLOUD_SIGNER_CONFIG"):
        paths.append(Path(os.environ["CLOUD_SIGNER_CONFIG"]))
    paths.extend([Path("config.yaml"), Path("config.yml")])
    return paths


def _load_yaml(path: Path) -> dict:
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError):
        logger.warning("Could not read signer config file %s", path)
        return {}


@dataclass
class Config:
    # provider selection
    PROVIDER: str = field(default_factory=lambda: _env("CLOUD_SIGNER_PROVIDER", "s3"))  # s3 | azure | gcs
    PREFIX: str = field(default_factory=lambda: _env("CLOUD_SIGNER_PREFIX", ""))
    # parsed when a provider config is built, see _max_expiry
    MAX_EXPIRY_SECONDS: Optional[Union[int, str, timedelta]] = field(default_factory=lambda: _env("CLOUD_SIGNER_MAX_EXPIRY_SECONDS"))
    # S3 / S3-compatible
    S3_REGION: str = field(default_factory=lambda: _env("CLOUD_SIGNER_S3_REGION") or _env("AWS_REGION") or _env("AWS_DEFAULT_REGION") or "us-east-1")
    S3_ENDPOINT: Optional[str] = field(default_factory=lambda: _env("CLOUD_SIGNER_S3_ENDPOINT"))
    S3_ADDRESSING_STYLE: str = field(default_factory=lambda: _env("CLOUD_SIGNER_S3_ADDRESSING_STYLE", "auto"))
    S3_ACCESS_KEY: Optional[str] = field(default_factory=lambda: _env("CLOUD_SIGNER_S3_ACCESS_KEY"))
    S3_SECRET_KEY: Optional[str] = field(default_factory=lambda: _env("CLOUD_SIGNER_S3_SECRET_KEY"))
    S3_SESSION_TOKEN: Optional[str] = field(default_factory=lambda: _env("CLOUD_SIGNER_S3_SESSION_TOKEN"))
    AWS_PROFILE: Optional[str] = field(default_factory=lambda: _env("AWS_PROFILE"))
    # Azure Blob
    AZURE_ACCOUNT_NAME: Optional[str] = field(default_factory=lambda: _env("CLOUD_SIGNER_AZURE_ACCOUNT_NAME"))
    AZURE_ACCOUNT_KEY: Optional[str] = field(default_factory=lambda: _env("CLOUD_SIGNER_AZURE_ACCOUNT_KEY"))
    AZURE_CONNECTION_STRING: Optional[str] = field(default_factory=lambda: _env("AZURE_STORAGE_CONNECTION_STRING"))
    AZURE_ENDPOINT: Optional[str] = field(default_factory=lambda: _env("CLOUD_SIGNER_AZURE_ENDPOINT"))
    # GCS
    GCS_ENDPOINT: Optional[str] = field(default_factory=lambda: _env("CLOUD_SIGNER_GCS_ENDPOINT"))
    GCS_SERVICE_ACCOUNT_FILE: Optional[str] = field(default_factory=lambda: _env("GOOGLE_APPLICATION_CREDENTIALS"))
    # general
    LOG_LEVEL: str = field(default_factory=lambda: _env("CLOUD_SIGNER_LOG_LEVEL", "INFO"))
    LOG_JSON: bool = field(default_factory=lambda: (_env("CLOUD_SIGNER_LOG_JSON", "false") or "").lower() in ("1", "true", "yes", "on"))
    # raw loaded yaml (if any)
    _raw: Optional[dict] = None


def _merge_from_yaml(conf: Config) -> Config:
    for p in _config_paths():
        if p.exists():
            raw = _load_yaml(p)
            for k, v in raw.items():
                if hasattr(conf, k) and not k.startswith("_"):
                    setattr(conf, k, v)
                else:
                    logger.warning("Ignoring unknown signer config key %r in %s", k, p)
            conf._raw = raw
            break
    return conf


def load_config() -> Config:
    """Build a fresh Config from the current environment and YAML file."""
    return _merge_from_yaml(Config())


# Single shared config object
cfg = load_config()


def _max_expiry(value, default: int) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, timedelta):
        return int(value.total_seconds())
    message = f"MAX_EXPIRY_SECONDS must be a whole number of seconds, got {value!r}"
    if isinstance(value, bool):
        raise ConfigurationError(message, stage="config")
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise ConfigurationError(message, stage="config") from exc


@dataclass(frozen=True)
class S3Config:
    region: str = "us-east-1"
    endpoint_url: Optional[str] = None
    addressing_style: str = "auto"  # auto | path | virtual
    prefix: str = ""
    max_expiry: int = S3_MAX_EXPIRY

    @classmethod
    def localstack(cls, endpoint_url: str = "http://localhost:4566", region: str = "us-east-1") -> "S3Config":
        return cls(region=region, endpoint_url=endpoint_url, addressing_style="path")


@dataclass(frozen=True)
class AzureConfig:
    account_name: Optional[str] = None
    endpoint_url: Optional[str] = None
    prefix: str = ""
    max_expiry: int = AZURE_MAX_EXPIRY
    start_skew: int = 0  # seconds to backdate `st` by

    @classmethod
    def emulator(cls, endpoint_url: str = AZURITE_BLOB_ENDPOINT) -> "AzureConfig":
        return cls(account_name=AZURITE_ACCOUNT_NAME, endpoint_url=endpoint_url)


@dataclass(frozen=True)
class GcsConfig:
    endpoint_url: Optional[str] = None
    prefix: str = ""
    max_expiry: int = GCS_MAX_EXPIRY


def s3_config_from(conf: Config) -> S3Config:
    return S3Config(
        region=conf.S3_REGION,
        endpoint_url=conf.S3_ENDPOINT,
        addressing_style=conf.S3_ADDRESSING_STYLE,
        prefix=conf.PREFIX or "",
        max_expiry=_max_expiry(conf.MAX_EXPIRY_SECONDS, S3_MAX_EXPIRY),
    )


def azure_config_from(conf: Config, account_name: Optional[str] = None, endpoint_url: Optional[str] = None) -> AzureConfig:
    return AzureConfig(
        account_name=conf.AZURE_ACCOUNT_NAME or account_name,
        endpoint_url=conf.AZURE_ENDPOINT or endpoint_url,
        prefix=conf.PREFIX or "",
        max_expiry=_max_expiry(conf.MAX_EXPIRY_SECONDS, AZURE_MAX_EXPIRY),
    )


def gcs_config_from(conf: Config) -> GcsConfig:
    return GcsConfig(
        endpoint_url=conf.GCS_ENDPOINT,
        prefix=conf.PREFIX or "",
        max_expiry=_max_expiry(conf.MAX_EXPIRY_SECONDS, GCS_MAX_EXPIRY),
    )
