"""
Presigned URLs for objects in S3-compatible stores, Azure Blob Storage and
Google Cloud Storage behind one interface.

    from cloud_file_signer import S3Signer, S3Config, AwsCredentials

    signer = S3Signer(S3Config(region="eu-west-1"), AwsCredentials(key_id, secret))
    url = signer.sign_read_only("bucket", "prefix/key", 3600)

Credential discovery may block, so it is an async step done once:

    signer = await S3Signer.resolve(S3Config(), EnvAwsCredentialProvider())
"""
from .config import AzureConfig, Config, GcsConfig, S3Config, cfg, load_config
from .credentials import (
    AwsCredentials,
    AzureConnectionStringProvider,
    AzureSharedKeyCredentials,
    CredentialProvider,
    EnvAwsCredentialProvider,
    GcsServiceAccountCredentials,
    ServiceAccountFileProvider,
    StaticCredentialProvider,
)
from .error_handling import (
    CloudUriParseError,
    ConfigurationError,
    CredentialsMissing,
    ExpiryNonPositive,
    ExpiryTooLong,
    InvalidPath,
    PermissionNotSupported,
    ProviderError,
    SignerError,
)
from .permissions import Permission
from .presigned_url import SignedUrl
from .request import SigningRequest
from .signers import AzureBlobSigner, CloudFileSigner, GcsSigner, S3Signer, create_signer, resolve_signer

__all__ = [
    "AwsCredentials",
    "AzureBlobSigner",
    "AzureConfig",
    "AzureConnectionStringProvider",
    "AzureSharedKeyCredentials",
    "CloudFileSigner",
    "CloudUriParseError",
    "Config",
    "ConfigurationError",
    "CredentialProvider",
    "CredentialsMissing",
    "EnvAwsCredentialProvider",
    "ExpiryNonPositive",
    "ExpiryTooLong",
    "GcsConfig",
    "GcsServiceAccountCredentials",
    "GcsSigner",
    "InvalidPath",
    "Permission",
    "PermissionNotSupported",
    "ProviderError",
    "S3Config",
    "S3Signer",
    "ServiceAccountFileProvider",
    "SignedUrl",
    "SignerError",
    "SigningRequest",
    "StaticCredentialProvider",
    "cfg",
    "create_signer",
    "load_config",
    "resolve_signer",
]
