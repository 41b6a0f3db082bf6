"""Infrastructure layer: REST client for a business's own lightning node.

The node exposes the wallet-unlocker and macaroon services of its node
software over HTTPS on a per-business host. Request and reply bodies are
fixed by that software.
"""

from __future__ import annotations

import base64
import logging
from typing import TYPE_CHECKING, Any

import requests

from musqet.common.exceptions import RemoteError
from musqet.common.models import (
    BakeMacaroonResponse,
    GenSeedResponse,
    InitWalletResponse,
)

if TYPE_CHECKING:
    from musqet.common.interfaces import IHttpResponse, IHttpSession

HTTP_SUCCESS_MAX = 299

# Scope of the operational macaroon handed to the platform
INVOICE_PERMISSIONS: list[dict[str, str]] = [
    {"entity": "invoices", "action": "read"},
    {"entity": "invoices", "action": "write"},
    {"entity": "info", "action": "read"},
    {"entity": "info", "action": "write"},
    {"entity": "address", "action": "read"},
    {"entity": "address", "action": "write"},
    {"entity": "onchain", "action": "read"},
    {"entity": "peers", "action": "read"},
    {"entity": "peers", "action": "write"},
    {"entity": "offchain", "action": "read"},
]

logger = logging.getLogger(__name__)


class NodeClient:
    """Talks to ``https://{node_url}:{port}/v1/...``."""

    def __init__(
        self,
        http: IHttpSession | None = None,
        port: int = 8080,
        verify: bool | str = True,
        timeout: float = 10.0,
    ) -> None:
        self.http: IHttpSession = http or requests.Session()
        self.port = port
        self.verify = verify
        self.timeout = timeout

    def _url(self, node_url: str, endpoint: str) -> str:
        if not node_url:
            msg = "Node URL is required"
            raise RemoteError(msg)
        return f"https://{node_url}:{self.port}/v1/{endpoint}"

    def _call(
        self,
        method: str,
        node_url: str,
        endpoint: str,
        *,
        json: dict[str, Any] | None = None,
        macaroon: str | None = None,
    ) -> IHttpResponse:
        headers = {"Grpc-Metadata-Macaroon": macaroon} if macaroon else {}
        try:
            r = self.http.request(
                method,
                self._url(node_url, endpoint),
                headers=headers,
                json=json,
                timeout=self.timeout,
                verify=self.verify,
            )
        except requests.RequestException as err:
            msg = f"Node {endpoint} request failed: {err}"
            raise RemoteError(msg) from err
        if r.status_code > HTTP_SUCCESS_MAX:
            msg = f"Node {endpoint} failed: {r.status_code}: {r.text}"
            raise RemoteError(msg, r.status_code)
        return r

    def _json(self, r: IHttpResponse, endpoint: str) -> Any:
        try:
            return r.json()
        except ValueError as err:
            msg = f"Node {endpoint} returned a non-JSON reply"
            raise RemoteError(msg, r.status_code) from err

    def gen_seed(self, node_url: str) -> GenSeedResponse:
        r = self._call("GET", node_url, "genseed")
        return GenSeedResponse.model_validate(self._json(r, "genseed"))

    def init_wallet(
        self, node_url: str, wallet_password: str, mnemonic: list[str]
    ) -> str:
        """Initialize the wallet, returns the admin macaroon as hex."""
        r = self._call(
            "POST",
            node_url,
            "initwallet",
            json={
                "wallet_password": wallet_password,
                "cipher_seed_mnemonic": mnemonic,
                "stateless_init": True,
            },
        )
        reply = InitWalletResponse.model_validate(self._json(r, "initwallet"))
        return base64.b64decode(reply.admin_macaroon).hex()

    def unlock_wallet(self, node_url: str, wallet_password: str) -> None:
        logger.info("Unlocking node wallet at %s", node_url)
        self._call(
            "POST",
            node_url,
            "unlockwallet",
            json={"wallet_password": wallet_password, "stateless_init": True},
        )

    def bake_macaroon(self, node_url: str, admin_macaroon: str) -> str:
        """Ask for a scoped macaroon; empty string while the node is not ready."""
        r = self._call(
            "POST",
            node_url,
            "macaroon",
            json={"permissions": INVOICE_PERMISSIONS},
            macaroon=admin_macaroon,
        )
        return BakeMacaroonResponse.model_validate(self._json(r, "macaroon")).macaroon

    def connect_peer(
        self, node_url: str, admin_macaroon: str, pubkey: str, host: str
    ) -> None:
        self._call(
            "POST",
            node_url,
            "peers",
            json={"addr": {"pubkey": pubkey, "host": host}, "perm": True},
            macaroon=admin_macaroon,
        )
