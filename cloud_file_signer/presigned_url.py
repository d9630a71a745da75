"""A presigned URL for an object in a (cloud) object store."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple
from urllib.parse import parse_qsl, urlsplit


@dataclass(frozen=True)
class SignedUrl:
    """
    URL that grants temporary access to one object without further
    authentication. Expiry is enforced by the provider, not by this value;
    `is_expired` only reports what the provider will do.
    """

    url: str
    provider: str
    method: str
    valid_from: datetime
    expires_in: timedelta

    @property
    def valid_until(self) -> datetime:
        return self.valid_from + self.expires_in

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now > self.valid_until

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        return not self.is_expired(now)

    def query_params(self) -> List[Tuple[str, str]]:
        return parse_qsl(urlsplit(self.url).query, keep_blank_values=True)

    def __str__(self) -> str:
        return self.url
