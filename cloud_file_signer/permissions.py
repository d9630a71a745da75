"""Permissions a presigned URL can grant, and how HTTP methods map onto them."""
from __future__ import annotations

from enum import Enum

from .error_handling import PermissionNotSupported

READ_METHODS = ("GET", "HEAD")
WRITE_METHODS = ("PUT", "POST", "DELETE")


class Permission(str, Enum):
    READ = "read"
    WRITE = "write"

    @property
    def method(self) -> str:
        return "GET" if self is Permission.READ else "PUT"

    @classmethod
    def from_method(cls, method: str) -> "Permission":
        m = (method or "").upper()
        if m in READ_METHODS:
            return cls.READ
        if m in WRITE_METHODS:
            return cls.WRITE
        raise PermissionNotSupported(f"HTTP method {method!r} cannot be presigned", stage="validate")
