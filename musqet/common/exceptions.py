"""
Custom exceptions for the identity SDK.
"""

from __future__ import annotations


class MusqetError(Exception):
    """Base class for every failure raised inside the SDK."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ValidationError(MusqetError):
    """Bad or missing caller input, detected before any I/O."""

    def __init__(self, message: str) -> None:
        super().__init__(message, 400)


class RemoteError(MusqetError):
    """A collaborator returned an error payload or a non-success status."""


class DecryptionError(MusqetError):
    """Vault authentication failed: wrong key or corrupted ciphertext."""


class ProvisioningTimeout(MusqetError):
    """A bounded retry loop ran out of attempts."""

    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(message, 504)
        self.attempts = attempts
