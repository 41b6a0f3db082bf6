"""
Configuration settings for the identity SDK.
"""

from __future__ import annotations

import logging
import os

# Used to reduce derived child keys into valid private scalars
KDF_MODULUS: int = 2**252 - 27742317777372353535851937790883648493

ONE_MINUTE_MILLIS: int = 60_000


def _env_flag(name: str, default: bool) -> bool:  # noqa: FBT001
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() not in {"0", "false", "no", "off"}


class Config:
    """Central configuration class for all SDK settings."""

    def __init__(self) -> None:
        # Remote API
        self.API_URL: str = os.getenv(
            "MUSQET_API_URL", "https://testnet.musqet.tech/api/v1/"
        )
        self.HTTP_TIMEOUT: float = 10.0  # Seconds per remote call

        # Key derivation
        self.KEY_PREFIX: str = "MUSQET"
        self.SCRYPT_N: int = 2**19
        self.SCRYPT_R: int = 8
        self.SCRYPT_P: int = 1
        self.PBKDF2_ITERATIONS: int = 2**17
        self.KDF_MODULUS: int = KDF_MODULUS

        # Session
        self.SESSION_EXPIRY_MARGIN_MS: int = ONE_MINUTE_MILLIS

        # Node provisioning
        self.NODE_REST_PORT: int = 8080
        self.NODE_VERIFY_TLS: bool | str = _env_flag("MUSQET_NODE_VERIFY_TLS", True)
        self.MACAROON_POLL_ATTEMPTS: int = 15
        self.MACAROON_POLL_INTERVAL: float = 1.0  # Seconds between bake attempts

        # Diagnostics
        self.MAX_ERRORS: int = 20  # Rolling error log size
        self.LOG_LEVEL: int = getattr(
            logging, os.getenv("MUSQET_LOG_LEVEL", "INFO").upper(), logging.INFO
        )
