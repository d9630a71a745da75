#!/usr/bin/env python3
"""
Presigned URL properties shared by every provider.

Each signer is built with a fixed clock and local credentials, so these run
without network access or emulators.
"""
from datetime import timedelta
from urllib.parse import parse_qs, unquote, urlsplit

import pytest

from cloud_file_signer.config import GcsConfig, S3Config
from cloud_file_signer.error_handling import ExpiryNonPositive, ExpiryTooLong, InvalidPath, SignerError
from cloud_file_signer.permissions import Permission
from cloud_file_signer.presigned_url import SignedUrl
from cloud_file_signer.signers import AzureBlobSigner, GcsSigner, S3Signer
from cloud_file_signer.url_builder import encode_query

WEEK = 7 * 24 * 3600

BUCKETS = {"s3": "my-test-bucket", "azure": "container1", "gcs": "my-test-bucket"}
SIGNATURE_PARAMS = {"s3": "X-Amz-Signature", "azure": "sig", "gcs": "X-Goog-Signature"}


@pytest.fixture(params=["s3", "azure", "gcs"])
def signer(request, clock, aws_credentials, gcs_credentials):
    if request.param == "s3":
        return S3Signer(S3Config.localstack(), aws_credentials, clock=clock)
    if request.param == "azure":
        return AzureBlobSigner.emulator(clock=clock)
    return GcsSigner(GcsConfig(), gcs_credentials, clock=clock)


@pytest.fixture
def bucket(signer):
    return BUCKETS[signer.provider]


@pytest.mark.parametrize("expires_in", [0, -1, -3600, 0.25, timedelta(0), timedelta(seconds=-1)])
def test_non_positive_expiry(signer, bucket, expires_in):
    with pytest.raises(ExpiryNonPositive) as exc:
        signer.sign_read_only(bucket, "key.txt", expires_in)
    assert exc.value.provider == signer.provider


@pytest.mark.parametrize("expires_in,error", [(float("nan"), ExpiryNonPositive), (float("inf"), ExpiryTooLong)])
def test_non_finite_expiry(signer, bucket, expires_in, error):
    with pytest.raises(error) as exc:
        signer.sign_read_only(bucket, "key.txt", expires_in)
    assert exc.value.provider == signer.provider


def test_expiry_over_a_week(signer, bucket):
    with pytest.raises(ExpiryTooLong):
        signer.sign_read_only(bucket, "key.txt", WEEK + 1)
    with pytest.raises(ExpiryTooLong):
        signer.sign_write_only(bucket, "key.txt", timedelta(days=7, seconds=1))


def test_expiry_of_exactly_a_week(signer, bucket, fixed_now):
    signed = signer.sign_read_only(bucket, "key.txt", WEEK)
    assert signed.valid_until == fixed_now + timedelta(days=7)


@pytest.mark.parametrize("path", ["", "/", "../etc/passwd", "a/../../b", "a/./b", "a//b", "a\\b", "tab\there"])
def test_invalid_paths(signer, bucket, path):
    with pytest.raises(InvalidPath):
        signer.sign_read_only(bucket, path, 60)


def test_signed_url_metadata(signer, bucket, fixed_now):
    signed = signer.sign_write_only(bucket, "dir/key.txt", timedelta(minutes=15))
    assert isinstance(signed, SignedUrl)
    assert signed.provider == signer.provider
    assert signed.method == Permission.WRITE.method
    assert signed.valid_from == fixed_now
    assert signed.expires_in == timedelta(minutes=15)
    assert str(signed) == signed.url
    assert signed.is_valid(fixed_now + timedelta(minutes=15))
    assert signed.is_expired(fixed_now + timedelta(minutes=15, seconds=1))


def test_path_survives_url_encoding(signer, bucket):
    key = "reports/2024 Q1/übersicht+final (2).csv"
    signed = signer.sign_read_only(bucket, key, 60)
    assert unquote(urlsplit(signed.url).path).endswith(f"/{bucket}/{key}")
    assert " " not in signed.url


def test_read_and_write_urls_differ(signer, bucket):
    read = signer.sign_read_only(bucket, "key.txt", 60)
    write = signer.sign_write_only(bucket, "key.txt", 60)
    assert read.url != write.url
    assert read.method == "GET"
    assert write.method == "PUT"


def test_same_inputs_same_url(signer, bucket):
    assert signer.sign_read_only(bucket, "key.txt", 60).url == signer.sign_read_only(bucket, "key.txt", 60).url


def test_errors_do_not_leak_credentials(signer, bucket, aws_credentials):
    with pytest.raises(SignerError) as exc:
        signer.sign_read_only(bucket, "../x", 60)
    assert aws_credentials.secret_access_key not in str(exc.value)


def test_query_round_trips(signer, bucket):
    signed = signer.sign_read_only(bucket, "dir/key one.txt", 3600)
    query = urlsplit(signed.url).query
    assert encode_query(signed.query_params()) == query
    names = [k for k, _ in signed.query_params()]
    assert len(names) == len(set(names))


def test_expiry_changes_signature(signer, bucket):
    name = SIGNATURE_PARAMS[signer.provider]

    def signature(expires_in):
        query = urlsplit(signer.sign_read_only(bucket, "key.txt", expires_in).url).query
        return parse_qs(query)[name][0]

    assert signature(3600) != signature(3601)
