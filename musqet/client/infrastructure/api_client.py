"""Infrastructure layer: JSON client for the remote account API.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import requests

from musqet.common.exceptions import RemoteError
from musqet.common.models import (
    ApiEnvelope,
    ChallengeGrant,
    ChallengeNonce,
    MacaroonAck,
    NewBusinessForm,
    NewBusinessResult,
    NodeStatusSnapshot,
    PriceQuote,
    UserData,
)

if TYPE_CHECKING:
    from musqet.common.interfaces import IHttpSession

HTTP_SUCCESS_MAX = 299

logger = logging.getLogger(__name__)


class ApiClient:
    """Thin wrapper over the account API's ``{ok, message, data}`` contract."""

    def __init__(
        self,
        base_url: str,
        http: IHttpSession | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.http: IHttpSession = http or requests.Session()
        self.timeout = timeout

    def _request(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        """Issue one call and return the ``data`` member of a successful reply."""
        headers: dict[str, str] = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, path)
        try:
            r = self.http.request(
                method,
                url,
                headers=headers,
                json=json,
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as err:
            msg = f"{method} {path} failed: {err}"
            raise RemoteError(msg) from err

        try:
            body = ApiEnvelope.model_validate(r.json())
        except ValueError as err:
            msg = f"{method} {path} returned {r.status_code} without a JSON reply"
            raise RemoteError(msg, r.status_code) from err

        if not body.ok:
            raise RemoteError(body.message or f"{method} {path} was rejected", r.status_code)
        if r.status_code > HTTP_SUCCESS_MAX:
            msg = f"{method} {path} returned {r.status_code}"
            raise RemoteError(msg, r.status_code)
        return body.data

    # Users

    def register_user(self, handle: str, email: str, name: str) -> None:
        self._request(
            "POST", "u/new", json={"pubkey": handle, "email": email, "name": name}
        )

    def get_user(self, handle: str, token: str) -> UserData:
        return UserData.model_validate(
            self._request("GET", f"u/{handle}", token=token) or {}
        )

    def put_backup(self, handle: str, token: str, name: str, backup: str) -> None:
        self._request(
            "PUT", f"u/{handle}", token=token, json={"name": name, "backup": backup}
        )

    def delete_user(self, handle: str, token: str) -> None:
        self._request("DELETE", f"u/{handle}", token=token)

    # Challenge

    def get_challenge(self, email: str, handle: str) -> str:
        data = self._request(
            "GET",
            "challenge",
            params={"email": email, "pubkey": handle.replace("=", "~")},
        )
        nonce = ChallengeNonce.model_validate(data or {}).nonce
        if not nonce:
            msg = "Nonce not received"
            raise RemoteError(msg)
        return nonce

    def post_challenge(self, handle: str, signature: str, nonce: str) -> ChallengeGrant:
        data = self._request(
            "POST",
            "challenge",
            json={"pubkey": handle, "signature": signature, "nonce": nonce},
        )
        try:
            return ChallengeGrant.model_validate(data)
        except ValueError as err:
            msg = "Challenge reply is missing the token or expiry"
            raise RemoteError(msg) from err

    # Pricing and businesses

    def get_price(self, currency: str, token: str) -> PriceQuote:
        return PriceQuote.model_validate(
            self._request("GET", "price", token=token, params={"currency": currency})
        )

    def new_business(self, form: NewBusinessForm, token: str) -> str:
        data = self._request(
            "POST", "b/new", token=token, json=form.model_dump(by_alias=True)
        )
        return NewBusinessResult.model_validate(data).business_id

    def node_status(self, business_id: str, token: str) -> NodeStatusSnapshot:
        return NodeStatusSnapshot.model_validate(
            self._request("GET", f"b/{business_id}/ln/status", token=token)
        )

    def start_node(self, business_id: str, token: str) -> None:
        self._request("GET", f"b/{business_id}/ln/startNode", token=token)

    def stop_node(self, business_id: str, token: str) -> None:
        self._request("GET", f"b/{business_id}/ln/stopNode", token=token)

    def post_macaroon(self, business_id: str, token: str, macaroon: str) -> MacaroonAck:
        data = self._request(
            "POST",
            f"b/{business_id}/ln/macaroon",
            token=token,
            json={"macaroon": macaroon},
        )
        return MacaroonAck.model_validate(data or {})
