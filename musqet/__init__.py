# Musqet identity and session SDK

from musqet.client.application.key_derivation import KeyDeriver, derive_identity
from musqet.client.application.vault import Vault
from musqet.client.client import IdentityClient
from musqet.common.models import ClientConfig

__all__ = [
    "ClientConfig",
    "IdentityClient",
    "KeyDeriver",
    "Vault",
    "derive_identity",
]
