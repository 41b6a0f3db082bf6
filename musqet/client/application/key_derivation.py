"""
Application layer: Deterministic identity derivation from a passphrase.

The construction follows ESKDF: scrypt and PBKDF2 are run over the same
(username, password) pair with distinct separators, XOR-ed into a 32-byte
seed, and child keys are expanded from the seed with HKDF-SHA256. Keys that
must be curve scalars are drawn 64 bits longer than the modulus and reduced
into [1, modulus - 1].
"""

from __future__ import annotations

import logging

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from musqet.client.domain.entities import Identity
from musqet.common.config import Config
from musqet.common.crypto import CryptoUtils
from musqet.common.exceptions import ValidationError

logger = logging.getLogger(__name__)

SEED_LEN = 32
MIN_INPUT_LEN = 8
MAX_INPUT_LEN = 255
SIGNING_KEY_INDEX = 0
TOTP_KEY_INDEX = 1
FINGERPRINT_LEN = 6


def _check_length(value: str, label: str) -> None:
    if not MIN_INPUT_LEN <= len(value) <= MAX_INPUT_LEN:
        msg = f"Prefixed {label} must be {MIN_INPUT_LEN}-{MAX_INPUT_LEN} characters"
        raise ValidationError(msg)


class KeyDeriver:
    """Derives identities with a fixed set of cost parameters."""

    def __init__(
        self,
        prefix: str | None = None,
        scrypt_n: int | None = None,
        scrypt_r: int | None = None,
        scrypt_p: int | None = None,
        pbkdf2_iterations: int | None = None,
        modulus: int | None = None,
    ) -> None:
        config = Config()
        self.prefix = prefix or config.KEY_PREFIX
        self.scrypt_n = scrypt_n or config.SCRYPT_N
        self.scrypt_r = scrypt_r or config.SCRYPT_R
        self.scrypt_p = scrypt_p or config.SCRYPT_P
        self.pbkdf2_iterations = pbkdf2_iterations or config.PBKDF2_ITERATIONS
        self.modulus = modulus or config.KDF_MODULUS

    def main_seed(self, username: str, password: str) -> bytes:
        """The 32-byte root every child key is expanded from."""
        _check_length(username, "identifier")
        _check_length(password, "passphrase")
        scrypt_key = Scrypt(
            salt=(username + "\x01").encode(),
            length=SEED_LEN,
            n=self.scrypt_n,
            r=self.scrypt_r,
            p=self.scrypt_p,
        ).derive((password + "\x01").encode())
        pbkdf2_key = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=SEED_LEN,
            salt=(username + "\x02").encode(),
            iterations=self.pbkdf2_iterations,
        ).derive((password + "\x02").encode())
        return bytes(a ^ b for a, b in zip(scrypt_key, pbkdf2_key, strict=True))

    @staticmethod
    def child_key(
        seed: bytes,
        protocol: str,
        account_index: int = 0,
        modulus: int | None = None,
        key_length: int = 32,
    ) -> bytes:
        """Expand one independently-indexed key from the seed."""
        if not 0 <= account_index <= 2**32 - 1:
            msg = f"Invalid account index: {account_index}"
            raise ValidationError(msg)
        if modulus is not None:
            # 64 extra bits keep the modular reduction unbiased
            key_length = (modulus.bit_length() + 7) // 8 + 8
        key = HKDF(
            algorithm=hashes.SHA256(),
            length=key_length,
            salt=account_index.to_bytes(4, "big"),
            info=protocol.encode(),
        ).derive(seed)
        if modulus is None:
            return key
        reduced = int.from_bytes(key, "big") % (modulus - 1) + 1
        return reduced.to_bytes(key_length - 8, "big")

    def derive(self, identifier: str, passphrase: str) -> Identity:
        if not identifier or not isinstance(identifier, str):
            msg = "Identifier is required"
            raise ValidationError(msg)
        if not passphrase or not isinstance(passphrase, str):
            msg = "Passphrase is required"
            raise ValidationError(msg)

        logger.debug("Deriving keys (scrypt N=%s)", self.scrypt_n)
        seed = self.main_seed(
            f"{self.prefix}_{identifier}", f"{self.prefix}_{passphrase}"
        )
        private_key = self.child_key(
            seed, "ecc", SIGNING_KEY_INDEX, modulus=self.modulus
        )
        totp_key = self.child_key(seed, "ecc", TOTP_KEY_INDEX, modulus=self.modulus)
        fingerprint = ":".join(
            f"{b:02X}" for b in self.child_key(seed, "fingerprint")[:FINGERPRINT_LEN]
        )
        public_key = CryptoUtils.schnorr_public_key(private_key)
        return Identity(
            private_key=private_key,
            public_key=public_key,
            totp_key=totp_key,
            handle=CryptoUtils.b64url_encode(public_key),
            fingerprint=fingerprint,
        )


def derive_identity(identifier: str, passphrase: str) -> Identity:
    """Derive an identity with the production cost parameters."""
    return KeyDeriver().derive(identifier, passphrase)
