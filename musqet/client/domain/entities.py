"""Domain layer: Core identity and session entities.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


@dataclass(frozen=True)
class Identity:
    """Domain entity holding the keys derived from a passphrase."""

    private_key: bytes = field(repr=False)
    public_key: bytes
    totp_key: bytes = field(repr=False)
    handle: str
    fingerprint: str = ""


class SessionPhase(str, Enum):
    NO_SESSION = "no_session"
    PENDING = "pending"
    VALID = "valid"
    EXPIRED = "expired"


@dataclass
class Session:
    """Domain entity representing a bearer session with the remote API."""

    bearer_token: str = ""
    expires_at_millis: int = 0

    def is_valid(self, now_millis: int) -> bool:
        if not self.expires_at_millis:
            return False
        return now_millis < self.expires_at_millis


@dataclass(frozen=True)
class ErrorEntry:
    """One failure captured at the boundary of a public operation."""

    operation: str
    error_type: str
    message: str
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def __str__(self) -> str:
        return f"{self.timestamp}: {self.operation}: {self.message}"
