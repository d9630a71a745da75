from datetime import timedelta

import pytest

from cloud_file_signer.error_handling import ExpiryNonPositive, ExpiryTooLong, InvalidPath, PermissionNotSupported
from cloud_file_signer.permissions import Permission
from cloud_file_signer.request import expiry_seconds, normalize_path

WEEK = 7 * 24 * 3600


@pytest.mark.parametrize(
    "path,expected",
    [
        ("file.txt", "file.txt"),
        ("/file.txt", "file.txt"),
        ("dir/sub/file.txt", "dir/sub/file.txt"),
        ("dir/folder/", "dir/folder/"),
        ("with space/ünïcode+plus.txt", "with space/ünïcode+plus.txt"),
    ],
)
def test_normalize_path_accepts(path, expected):
    assert normalize_path(path) == expected


@pytest.mark.parametrize(
    "path",
    ["", "/", "../secret", "a/../b", "a/./b", "a//b", "a\\b", "a\x00b", "line\nbreak", "..", "."],
)
def test_normalize_path_rejects(path):
    with pytest.raises(InvalidPath):
        normalize_path(path, provider="s3")


def test_normalize_path_applies_prefix():
    assert normalize_path("file.txt", prefix="tenant-a") == "tenant-a/file.txt"
    assert normalize_path("/file.txt", prefix="/tenant-a/") == "tenant-a/file.txt"
    assert normalize_path("file.txt", prefix="/") == "file.txt"


def test_normalize_path_rejects_non_string():
    with pytest.raises(InvalidPath):
        normalize_path(None)


@pytest.mark.parametrize(
    "value,expected",
    [(1, 1), (3600, 3600), (59.9, 59), (timedelta(hours=1), 3600), (WEEK, WEEK), (timedelta(days=7), WEEK)],
)
def test_expiry_seconds_accepts(value, expected):
    assert expiry_seconds(value, WEEK) == expected


@pytest.mark.parametrize(
    "value", [0, -1, 0.5, timedelta(0), timedelta(seconds=-5), True, "3600", None, float("nan"), float("-inf")]
)
def test_expiry_seconds_rejects_non_positive(value):
    with pytest.raises(ExpiryNonPositive):
        expiry_seconds(value, WEEK)


def test_expiry_seconds_rejects_above_ceiling():
    with pytest.raises(ExpiryTooLong) as exc:
        expiry_seconds(WEEK + 1, WEEK, provider="gcs")
    assert exc.value.provider == "gcs"
    assert exc.value.stage == "validate"
    with pytest.raises(ExpiryTooLong):
        expiry_seconds(timedelta(days=8), WEEK)


@pytest.mark.parametrize("value", [float("inf"), 10**400, timedelta.max])
def test_expiry_seconds_rejects_unbounded(value):
    with pytest.raises(ExpiryTooLong):
        expiry_seconds(value, WEEK, provider="s3")


def test_permission_from_method():
    assert Permission.from_method("get") is Permission.READ
    assert Permission.from_method("HEAD") is Permission.READ
    assert Permission.from_method("PUT") is Permission.WRITE
    assert Permission.from_method("delete") is Permission.WRITE
    assert Permission.READ.method == "GET"
    assert Permission.WRITE.method == "PUT"
    with pytest.raises(PermissionNotSupported):
        Permission.from_method("PATCH")
