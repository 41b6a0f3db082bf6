"""
Pydantic models for state records and request/response validation.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Model serialized with the camelCase keys the remote API speaks."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Role(str, Enum):
    MERCHANT = "merchant"
    MANAGER = "manager"
    CASHIER = "cashier"


class NodeStatus(str, Enum):
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    PROVISIONING = "provisioning"
    WAITING_INIT = "waiting_init"
    WAITING_UNLOCK = "waiting_unlock"
    WAITING_START = "waiting_start"


class BusinessRecord(CamelModel):
    business_name: str = ""
    business_id: str = ""
    business_pub: str = ""
    role: Role | None = None
    # Only merchants and managers hold a macaroon, cashiers keep it empty
    macaroon: str = ""
    node_id: str = ""
    node_url: str = ""
    node_password: str = ""
    mnemonic: str = ""
    enciphered_seed: str = ""


class StateRecord(CamelModel):
    """Everything an account needs to resume work, as stored in the vault."""

    priv: bytes = b""
    pub: bytes = b""
    totp: bytes = b""
    name: str = ""
    email: str = ""
    challenge_expires: int = 0
    bearer_token: str = ""
    musqet_pub: str = ""
    businesses: list[BusinessRecord] = Field(
        default_factory=lambda: [BusinessRecord()]
    )
    current_business: int = 0

    @property
    def business(self) -> BusinessRecord:
        """The business the account is currently acting for."""
        while len(self.businesses) <= self.current_business:
            self.businesses.append(BusinessRecord())
        return self.businesses[self.current_business]


class NodeStatusSnapshot(CamelModel):
    status: NodeStatus
    node_id: str = ""
    node_url: str = ""
    update: bool = False
    synced: bool = False
    block_height: int = 0
    block_tip: int = 0


class NewBusinessForm(CamelModel):
    name: str
    address: str
    business_name: str
    phone: str
    email: str
    annual_revenue: int = Field(ge=0)
    website: str = ""
    channel_size: int = Field(gt=0)
    activation_code: str = ""


class ApiEnvelope(BaseModel):
    """Every remote API reply: `ok` false implies a `message`."""

    ok: bool
    message: str | None = None
    data: Any = None


class ChallengeNonce(BaseModel):
    nonce: str = ""


class ChallengeGrant(BaseModel):
    token: str
    expires: str | int


class UserData(BaseModel):
    name: str = ""
    backup: str = ""
    businesses: dict[str, str] = Field(default_factory=dict)


class PriceQuote(BaseModel):
    price: str
    symbol: str


class NewBusinessResult(CamelModel):
    business_id: str


class MacaroonAck(BaseModel):
    pubkey: str = ""
    host: str = ""


class GenSeedResponse(BaseModel):
    cipher_seed_mnemonic: list[str]
    enciphered_seed: str = ""


class InitWalletResponse(BaseModel):
    admin_macaroon: str


class BakeMacaroonResponse(BaseModel):
    macaroon: str = ""


class ClientConfig(BaseModel):
    api_url: str | None = None
    http_timeout: float | None = None
    log_level: int | None = None
    key_prefix: str | None = None
    scrypt_n: int | None = None
    scrypt_r: int | None = None
    scrypt_p: int | None = None
    pbkdf2_iterations: int | None = None
    session_expiry_margin_ms: int | None = None
    node_rest_port: int | None = None
    node_verify_tls: bool | str | None = None
    macaroon_poll_attempts: int | None = None
    macaroon_poll_interval: float | None = None
    max_errors: int | None = None
