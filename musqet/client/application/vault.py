"""
Application layer: Encrypted vault for the account state record.

A sealed vault is ``hex(nonce || secretbox(plaintext))`` where the secret box
is XSalsa20-Poly1305 keyed with the identity's private key. The plaintext is
a JSON document in which every value carries an explicit kind tag, so raw
bytes can never be confused with text that happens to look like them.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any

from nacl.exceptions import CryptoError
from nacl.secret import SecretBox
from nacl.utils import random as random_bytes

from musqet.common.exceptions import DecryptionError, ValidationError
from musqet.common.models import StateRecord

logger = logging.getLogger(__name__)

FORMAT_TAG = "musqet-tagged/1"
LEGACY_BYTES_MARKER = "<U8>"
# Always rebuilt as a number: the live session expiry is never taken as text
EXPIRY_FIELD = "challengeExpires"


def encode_value(value: Any) -> dict[str, Any]:
    """Wrap one value in its kind tag, recursing into lists and maps."""
    if isinstance(value, (bytes, bytearray)):
        return {"kind": "bytes", "value": bytes(value).hex()}
    if value is None:
        return {"kind": "null"}
    if isinstance(value, bool):
        return {"kind": "bool", "value": "true" if value else "false"}
    if isinstance(value, (int, float)):
        return {"kind": "number", "value": str(value)}
    if isinstance(value, Enum):
        return {"kind": "text", "value": str(value.value)}
    if isinstance(value, str):
        return {"kind": "text", "value": value}
    if isinstance(value, (list, tuple)):
        return {"kind": "list", "value": [encode_value(v) for v in value]}
    if isinstance(value, dict):
        return {"kind": "map", "value": {k: encode_value(v) for k, v in value.items()}}
    msg = f"Cannot serialize value of type {type(value).__name__}"
    raise ValidationError(msg)


def _parse_number(text: str) -> int | float:
    try:
        return int(text)
    except ValueError:
        return float(text)


def decode_value(node: Any) -> Any:
    if not isinstance(node, dict) or "kind" not in node:
        msg = "Vault document holds an untagged value"
        raise DecryptionError(msg)
    kind = node["kind"]
    value = node.get("value")
    if kind == "bytes":
        return bytes.fromhex(value)
    if kind == "null":
        return None
    if kind == "bool":
        return value == "true"
    if kind == "number":
        return _parse_number(value)
    if kind == "text":
        return value
    if kind == "list":
        return [decode_value(v) for v in value]
    if kind == "map":
        return {k: decode_value(v) for k, v in value.items()}
    msg = f"Unknown value kind in vault document: {kind}"
    raise DecryptionError(msg)


def _legacy_hook(obj: dict[str, Any]) -> dict[str, Any]:
    """Read a document written by earlier client releases.

    Byte fields there are ``<U8>`` followed by comma-separated decimals and
    every number was written as a string.
    """
    out: dict[str, Any] = {}
    for key, value in obj.items():
        if isinstance(value, str) and value.startswith(LEGACY_BYTES_MARKER):
            body = value[len(LEGACY_BYTES_MARKER) :]
            out[key] = bytes(int(part) for part in body.split(",")) if body else b""
        elif key == EXPIRY_FIELD:
            out[key] = int(value) if value not in (None, "") else 0
        else:
            out[key] = value
    return out


def serialize_record(record: StateRecord) -> bytes:
    document = {
        "format": FORMAT_TAG,
        "record": encode_value(record.model_dump(mode="python", by_alias=True)),
    }
    return json.dumps(document, separators=(",", ":")).encode()


def deserialize_record(plaintext: bytes) -> StateRecord:
    try:
        text = plaintext.decode()
        document = json.loads(text)
        if isinstance(document, dict) and document.get("format") == FORMAT_TAG:
            data = decode_value(document["record"])
            if isinstance(data, dict) and EXPIRY_FIELD in data:
                data[EXPIRY_FIELD] = int(data[EXPIRY_FIELD] or 0)
        else:
            logger.info("Opening vault written in the legacy marker format")
            data = json.loads(text, object_hook=_legacy_hook)
        return StateRecord.model_validate(data)
    except DecryptionError:
        raise
    except (ValueError, KeyError, TypeError) as err:
        msg = f"Vault plaintext is not a valid state record: {err}"
        raise DecryptionError(msg) from err


class Vault:
    """Seals and opens state records with a 32-byte symmetric key."""

    NONCE_SIZE = SecretBox.NONCE_SIZE
    KEY_SIZE = SecretBox.KEY_SIZE

    @classmethod
    def _box(cls, key: bytes) -> SecretBox:
        if not key:
            msg = "Encryption key is required"
            raise ValidationError(msg)
        if len(key) != cls.KEY_SIZE:
            msg = f"Encryption key must be {cls.KEY_SIZE} bytes"
            raise ValidationError(msg)
        return SecretBox(bytes(key))

    @classmethod
    def seal(cls, key: bytes, record: StateRecord) -> str:
        """Encrypt the record, returns hex of nonce followed by ciphertext."""
        box = cls._box(key)
        nonce = random_bytes(cls.NONCE_SIZE)
        sealed = box.encrypt(serialize_record(record), nonce)
        return (sealed.nonce + sealed.ciphertext).hex()

    @classmethod
    def open(cls, key: bytes, sealed_hex: str) -> StateRecord:
        """Decrypt a sealed record; fails closed on any authentication error."""
        box = cls._box(key)
        if not sealed_hex or not isinstance(sealed_hex, str):
            msg = "Sealed vault is required"
            raise ValidationError(msg)
        try:
            sealed = bytes.fromhex(sealed_hex)
        except ValueError as err:
            msg = "Sealed vault is not well-formed hex"
            raise ValidationError(msg) from err
        if len(sealed) < cls.NONCE_SIZE + SecretBox.MACBYTES:
            msg = "Sealed vault is too short"
            raise ValidationError(msg)

        nonce, ciphertext = sealed[: cls.NONCE_SIZE], sealed[cls.NONCE_SIZE :]
        try:
            plaintext = box.decrypt(ciphertext, nonce)
        except CryptoError as err:
            msg = "Vault authentication failed: wrong key or corrupted data"
            raise DecryptionError(msg) from err
        return deserialize_record(plaintext)
