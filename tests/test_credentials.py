import json

import pytest
from cryptography.hazmat.primitives import serialization

from cloud_file_signer.config import AZURITE_ACCOUNT_KEY, AZURITE_ACCOUNT_NAME, AZURITE_BLOB_ENDPOINT
from cloud_file_signer.credentials import (
    AwsCredentials,
    AzureConnectionStringProvider,
    AzureSharedKeyCredentials,
    CredentialProvider,
    EnvAwsCredentialProvider,
    ServiceAccountFileProvider,
    StaticCredentialProvider,
)
from cloud_file_signer.error_handling import CredentialsMissing

AZURITE_CONNECTION_STRING = (
    "DefaultEndpointsProtocol=http;"
    f"AccountName={AZURITE_ACCOUNT_NAME};"
    f"AccountKey={AZURITE_ACCOUNT_KEY};"
    f"BlobEndpoint={AZURITE_BLOB_ENDPOINT};"
)


@pytest.fixture
def isolated_aws_env(monkeypatch, tmp_path):
    for name in (
        "AWS_ACCESS_KEY_ID",
        "AWS_SECRET_ACCESS_KEY",
        "AWS_SESSION_TOKEN",
        "AWS_SECURITY_TOKEN",
        "AWS_PROFILE",
        "AWS_DEFAULT_PROFILE",
        "AWS_WEB_IDENTITY_TOKEN_FILE",
        "AWS_ROLE_ARN",
        "AWS_CONTAINER_CREDENTIALS_RELATIVE_URI",
        "AWS_CONTAINER_CREDENTIALS_FULL_URI",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(tmp_path / "credentials"))
    monkeypatch.setenv("AWS_CONFIG_FILE", str(tmp_path / "config"))
    monkeypatch.setenv("AWS_EC2_METADATA_DISABLED", "true")
    return monkeypatch


@pytest.mark.asyncio
async def test_static_provider_returns_credentials(aws_credentials):
    provider = StaticCredentialProvider(aws_credentials)
    assert isinstance(provider, CredentialProvider)
    assert await provider.resolve() is aws_credentials


@pytest.mark.asyncio
async def test_env_aws_provider_reads_environment(isolated_aws_env):
    isolated_aws_env.setenv("AWS_ACCESS_KEY_ID", "AKIDFROMENV")
    isolated_aws_env.setenv("AWS_SECRET_ACCESS_KEY", "secret-from-env")
    isolated_aws_env.setenv("AWS_SESSION_TOKEN", "session-from-env")
    creds = await EnvAwsCredentialProvider().resolve()
    assert creds == AwsCredentials("AKIDFROMENV", "secret-from-env", "session-from-env")


@pytest.mark.asyncio
async def test_env_aws_provider_reads_shared_file(isolated_aws_env, tmp_path):
    (tmp_path / "credentials").write_text(
        "[signer]\naws_access_key_id = AKIDFROMFILE\naws_secret_access_key = secret-from-file\n",
        encoding="utf-8",
    )
    creds = await EnvAwsCredentialProvider(profile_name="signer").resolve()
    assert creds.access_key_id == "AKIDFROMFILE"
    assert creds.session_token is None


@pytest.mark.asyncio
async def test_env_aws_provider_without_credentials(isolated_aws_env):
    with pytest.raises(CredentialsMissing) as exc:
        await EnvAwsCredentialProvider().resolve()
    assert exc.value.provider == "s3"
    assert exc.value.stage == "credentials"


@pytest.mark.asyncio
async def test_env_aws_provider_unknown_profile(isolated_aws_env):
    with pytest.raises(CredentialsMissing):
        await EnvAwsCredentialProvider(profile_name="does-not-exist").resolve()


@pytest.mark.asyncio
async def test_azure_connection_string_provider():
    provider = AzureConnectionStringProvider(AZURITE_CONNECTION_STRING)
    creds = await provider.resolve()
    assert creds.account_name == AZURITE_ACCOUNT_NAME
    assert creds.key_bytes == AzureSharedKeyCredentials.emulator().key_bytes
    assert provider.endpoint_url == AZURITE_BLOB_ENDPOINT


@pytest.mark.asyncio
async def test_azure_connection_string_from_environment(monkeypatch):
    conn = f"DefaultEndpointsProtocol=https;AccountName=myaccount;AccountKey={AZURITE_ACCOUNT_KEY};EndpointSuffix=core.windows.net"
    monkeypatch.setenv("AZURE_STORAGE_CONNECTION_STRING", conn)
    provider = AzureConnectionStringProvider()
    creds = await provider.resolve()
    assert creds.account_name == "myaccount"
    assert provider.endpoint_url == "https://myaccount.blob.core.windows.net"


@pytest.mark.asyncio
async def test_azure_connection_string_missing(monkeypatch):
    monkeypatch.delenv("AZURE_STORAGE_CONNECTION_STRING", raising=False)
    with pytest.raises(CredentialsMissing):
        await AzureConnectionStringProvider().resolve()


@pytest.mark.asyncio
async def test_azure_connection_string_malformed():
    with pytest.raises(CredentialsMissing):
        await AzureConnectionStringProvider("this is not a connection string").resolve()


@pytest.mark.asyncio
async def test_azure_connection_string_without_key():
    conn = "BlobEndpoint=https://myaccount.blob.core.windows.net;SharedAccessSignature=sv=2022-11-02&sig=abc"
    with pytest.raises(CredentialsMissing):
        await AzureConnectionStringProvider(conn).resolve()


def _write_key_file(path, rsa_key, email="sa@test-project.iam.gserviceaccount.com"):
    pem = rsa_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    path.write_text(
        json.dumps({"type": "service_account", "client_email": email, "private_key": pem}),
        encoding="utf-8",
    )
    return path


@pytest.mark.asyncio
async def test_service_account_file_provider(tmp_path, rsa_key):
    key_file = _write_key_file(tmp_path / "sa.json", rsa_key)
    creds = await ServiceAccountFileProvider(key_file).resolve()
    assert creds.client_email == "sa@test-project.iam.gserviceaccount.com"
    assert creds.private_key.public_key().public_numbers() == rsa_key.public_key().public_numbers()


@pytest.mark.asyncio
async def test_service_account_file_from_environment(monkeypatch, tmp_path, rsa_key):
    key_file = _write_key_file(tmp_path / "sa.json", rsa_key, email="env@p.iam.gserviceaccount.com")
    monkeypatch.setenv("GOOGLE_APPLICATION_CREDENTIALS", str(key_file))
    creds = await ServiceAccountFileProvider().resolve()
    assert creds.client_email == "env@p.iam.gserviceaccount.com"


@pytest.mark.asyncio
async def test_service_account_file_missing(monkeypatch, tmp_path):
    monkeypatch.delenv("GOOGLE_APPLICATION_CREDENTIALS", raising=False)
    with pytest.raises(CredentialsMissing):
        await ServiceAccountFileProvider().resolve()
    with pytest.raises(CredentialsMissing):
        await ServiceAccountFileProvider(tmp_path / "missing.json").resolve()
    (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(CredentialsMissing):
        await ServiceAccountFileProvider(tmp_path / "broken.json").resolve()
