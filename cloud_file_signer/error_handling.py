"""
Errors raised while producing presigned URLs.

Every error carries the provider it came from and the stage that failed
("validate", "config", "credentials", "canonicalize", "sign", "clock") so a
failure can be diagnosed without secret material appearing in the message.
"""
from __future__ import annotations

from typing import Optional


class SignerError(Exception):
    def __init__(self, message: str, *, provider: Optional[str] = None, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.stage = stage

    def __str__(self) -> str:
        tags = []
        if self.provider:
            tags.append(self.provider)
        if self.stage:
            tags.append(self.stage)
        if tags:
            return f"[{'/'.join(tags)}] {self.message}"
        return self.message


class InvalidPath(SignerError):
    pass


class CloudUriParseError(InvalidPath):
    pass


class ExpiryNonPositive(SignerError):
    pass


class ExpiryTooLong(SignerError):
    pass


class CredentialsMissing(SignerError):
    pass


class ProviderError(SignerError):
    pass


class ConfigurationError(SignerError):
    pass


class PermissionNotSupported(SignerError):
    pass
