"""Common cryptographic utilities.
"""

from __future__ import annotations

import base64
import binascii
import secrets

from coincurve import PrivateKey, PublicKeyXOnly

from musqet.common.exceptions import ValidationError

SCHNORR_MESSAGE_LEN = 32


class CryptoUtils:
    """Utility class for cryptographic operations."""

    @staticmethod
    def b64url_encode(data: bytes) -> str:
        """URL-safe base64 with padding kept, as the remote API expects."""
        return base64.urlsafe_b64encode(data).decode("ascii")

    @staticmethod
    def b64url_decode(text: str) -> bytes:
        padded = text + "=" * (-len(text) % 4)
        try:
            return base64.urlsafe_b64decode(padded.encode("ascii"))
        except (binascii.Error, UnicodeEncodeError) as err:
            msg = "Value is not URL-safe base64"
            raise ValidationError(msg) from err

    @staticmethod
    def schnorr_public_key(private_key: bytes) -> bytes:
        """BIP340 x-only public key for a 32-byte secret."""
        return PublicKeyXOnly.from_secret(private_key).format()

    @staticmethod
    def schnorr_sign(message: bytes, private_key: bytes) -> bytes:
        """Sign a 32-byte message, returns the 64-byte BIP340 signature."""
        if len(message) != SCHNORR_MESSAGE_LEN:
            msg = f"Schnorr messages must be {SCHNORR_MESSAGE_LEN} bytes, got {len(message)}"
            raise ValidationError(msg)
        return PrivateKey(private_key).sign_schnorr(message, secrets.token_bytes(32))

    @staticmethod
    def schnorr_verify(signature: bytes, message: bytes, public_key: bytes) -> bool:
        return PublicKeyXOnly(public_key).verify(signature, message)

    @staticmethod
    def generate_nonce(num_bytes: int = 16) -> str:
        """Random hex string, handy for test accounts and passwords."""
        return secrets.token_hex(num_bytes)
