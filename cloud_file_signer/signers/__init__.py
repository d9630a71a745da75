from .abstract import CloudFileSigner, PreparedRequest
from .azure_signer import AzureBlobSigner
from .factory import create_signer, resolve_signer
from .gcs_signer import GcsSigner
from .s3_signer import S3Signer

__all__ = [
    "AzureBlobSigner",
    "CloudFileSigner",
    "GcsSigner",
    "PreparedRequest",
    "S3Signer",
    "create_signer",
    "resolve_signer",
]
