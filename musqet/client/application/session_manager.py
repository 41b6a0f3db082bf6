"""
Application layer: Challenge/response session management.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from musqet.client.domain.entities import Session, SessionPhase
from musqet.common.config import ONE_MINUTE_MILLIS
from musqet.common.crypto import CryptoUtils
from musqet.common.exceptions import RemoteError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Callable

    from musqet.client.domain.entities import Identity
    from musqet.client.infrastructure.api_client import ApiClient

logger = logging.getLogger(__name__)


def now_millis() -> int:
    return int(time.time() * 1000)


def parse_expiry_millis(expires: str | int) -> int:
    """Server expiry as epoch milliseconds; accepts ISO-8601 or a number."""
    if isinstance(expires, int):
        return expires
    text = expires.strip()
    if text.isdigit():
        return int(text)
    try:
        moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as err:
        msg = f"Unreadable session expiry: {expires!r}"
        raise RemoteError(msg) from err
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


class SessionManager:
    """Application service owning the bearer session.

    The session is valid while the clock is before the stored expiry, which
    is the server's expiry minus a safety margin. Nothing else mutates it.
    """

    def __init__(
        self,
        api: ApiClient,
        expiry_margin_ms: int = ONE_MINUTE_MILLIS,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self.api = api
        self.expiry_margin_ms = expiry_margin_ms
        self.clock = clock
        self._session = Session()
        self._pending_nonce: str | None = None

    @property
    def session(self) -> Session:
        return Session(self._session.bearer_token, self._session.expires_at_millis)

    @property
    def bearer_token(self) -> str:
        return self._session.bearer_token

    @property
    def phase(self) -> SessionPhase:
        if self._pending_nonce is not None:
            return SessionPhase.PENDING
        if self.is_valid():
            return SessionPhase.VALID
        if not self._session.bearer_token and not self._session.expires_at_millis:
            return SessionPhase.NO_SESSION
        return SessionPhase.EXPIRED

    def is_valid(self) -> bool:
        return self._session.is_valid(self.clock())

    def reset(self) -> None:
        """Forget the current session, e.g. before another identity logs in."""
        self._session = Session()
        self._pending_nonce = None

    @staticmethod
    def _check_preconditions(identity: Identity | None, email: str) -> Identity:
        if identity is None or not identity.public_key or not identity.handle:
            msg = "Public key is required"
            raise ValidationError(msg)
        if not email:
            msg = "Email is required"
            raise ValidationError(msg)
        return identity

    def request_nonce(self, identity: Identity | None, email: str) -> str:
        """Fetch a single-use nonce for this identity."""
        identity = self._check_preconditions(identity, email)
        logger.debug("Requesting challenge nonce")
        nonce = self.api.get_challenge(email, identity.handle)
        self._pending_nonce = nonce
        return nonce

    def submit_challenge(self, identity: Identity, nonce: str) -> Session:
        """Sign the nonce and trade it for a bearer token."""
        try:
            try:
                signature = CryptoUtils.schnorr_sign(
                    CryptoUtils.b64url_decode(nonce), identity.private_key
                )
            except ValidationError as err:
                msg = f"Malformed challenge nonce: {err}"
                raise RemoteError(msg) from err
            grant = self.api.post_challenge(
                identity.handle, CryptoUtils.b64url_encode(signature), nonce
            )
        finally:
            self._pending_nonce = None

        expires = parse_expiry_millis(grant.expires) - self.expiry_margin_ms
        self._session = Session(bearer_token=grant.token, expires_at_millis=expires)
        logger.info("Challenge completed, session valid until %s", expires)
        return self.session

    def complete_challenge(self, identity: Identity | None, email: str) -> Session:
        checked = self._check_preconditions(identity, email)
        nonce = self.request_nonce(checked, email)
        return self.submit_challenge(checked, nonce)

    def ensure_valid(self, identity: Identity | None, email: str) -> Session:
        """Renew the session if it has expired; failures propagate."""
        if self.is_valid():
            return self.session
        logger.debug("Session missing or expired, running challenge")
        return self.complete_challenge(identity, email)
