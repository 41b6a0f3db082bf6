"""
Identity client: signup, login, encrypted backup and node lifecycle.
"""

from __future__ import annotations

import base64
import logging
import secrets
import time
from collections import deque
from typing import TYPE_CHECKING, Any

from musqet.client.application.session_manager import SessionManager, now_millis
from musqet.client.application.status import Status, StatusBroadcaster
from musqet.client.application.vault import Vault
from musqet.client.domain.entities import ErrorEntry
from musqet.client.infrastructure.config_loader import ConfigLoader
from musqet.common.decorators import fail_soft, requires_session
from musqet.common.exceptions import MusqetError, RemoteError, ValidationError
from musqet.common.models import (
    BusinessRecord,
    NewBusinessForm,
    NodeStatus,
    NodeStatusSnapshot,
    PriceQuote,
    StateRecord,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from musqet.client.domain.entities import Identity
    from musqet.client.domain.retry import RetryPolicy
    from musqet.common.interfaces import IHttpSession, IStatusListener
    from musqet.common.models import ClientConfig

logger = logging.getLogger(__name__)

NODE_PASSWORD_BYTES = 32


def _require(value: Any, label: str) -> None:
    if not value or not isinstance(value, str):
        msg = f"{label} is required"
        raise ValidationError(msg)


class IdentityClient:
    """One account's identity, session and business state.

    Every public operation returns a success value and never raises: failures
    land in ``errors`` and are broadcast as an ``Error: ...`` status.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        api_http: IHttpSession | None = None,
        node_http: IHttpSession | None = None,
        clock: Callable[[], int] = now_millis,
        sleep: Callable[[float], None] = time.sleep,
        macaroon_policy: RetryPolicy | None = None,
    ) -> None:
        loader = ConfigLoader(config)
        self._deriver = loader.build_key_deriver()
        self._api = loader.build_api_client(api_http)
        self._node = loader.build_node_client(node_http)
        self._sessions = SessionManager(
            self._api, loader.session_expiry_margin_ms, clock=clock
        )
        self._macaroon_policy = macaroon_policy or loader.build_macaroon_policy(sleep)
        self._status = StatusBroadcaster()
        self._errors: deque[ErrorEntry] = deque(maxlen=loader.max_errors)

        self._identity: Identity | None = None
        self._registered = False
        self._record = StateRecord()

    # Accessors

    @property
    def status(self) -> str:
        return self._status.current

    @property
    def handle(self) -> str:
        return self._identity.handle if self._identity else ""

    @property
    def fingerprint(self) -> str:
        return self._identity.fingerprint if self._identity else ""

    @property
    def is_initiated(self) -> bool:
        return self._identity is not None

    @property
    def is_registered(self) -> bool:
        return self._registered

    @property
    def errors(self) -> list[ErrorEntry]:
        """Most recent failures, oldest first."""
        return list(self._errors)

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    @property
    def state(self) -> StateRecord:
        """Deep copy of the state record, session fields included."""
        return self._snapshot()

    def has_node(self) -> bool:
        return bool(self._record.business.node_id)

    def subscribe(self, listener: IStatusListener) -> Callable[[], None]:
        """Receive every status change; call the returned handle to stop."""
        return self._status.subscribe(listener)

    # Account operations

    @fail_soft()
    def signup(self, name: str, email: str, passphrase: str) -> bool:
        """Create a new account from a name, email address and passphrase."""
        self._notify(Status.SIGNUP)
        _require(name, "Name")
        _require(email, "Email")
        _require(passphrase, "Passphrase")

        self._adopt(self._derive(email, passphrase), email)
        self._record.name = name
        self._register()
        self._ensure_session()
        self._notify(Status.USER_CREATED)
        self._notify(Status.READY)
        return True

    @fail_soft()
    def login(self, email: str, passphrase: str) -> bool:
        """Re-derive an existing account and restore its backed-up state.

        Nothing about the current account changes unless the challenge and
        the backup restore both succeed.
        """
        self._notify(Status.LOGIN)
        _require(email, "Email")
        _require(passphrase, "Passphrase")

        identity = self._derive(email, passphrase)
        self._notify(Status.START_CHALLENGE)
        sessions = SessionManager(
            self._api, self._sessions.expiry_margin_ms, clock=self._sessions.clock
        )
        sessions.complete_challenge(identity, email)
        self._notify(Status.CHALLENGE_COMPLETE)

        user = self._api.get_user(identity.handle, sessions.bearer_token)
        if user.backup:
            self._notify(Status.DECRYPTING)
            record = Vault.open(identity.private_key, user.backup)
        else:
            logger.info("Account has no backup yet, keeping freshly derived state")
            if identity.handle == self.handle:
                record = self._record.model_copy(deep=True)
            else:
                record = StateRecord()
            record.name = user.name or record.name

        self._sessions = sessions
        self._adopt(identity, email, record)
        self._sync_session_fields()
        self._registered = True
        self._notify(Status.LOGGED_IN)
        self._notify(Status.READY)
        return True

    @fail_soft()
    def backup(self) -> bool:
        """Seal the current state and store it with the remote API."""
        return self._backup()

    @fail_soft()
    @requires_session
    def delete_user(self) -> bool:
        """Remove the account from the remote API."""
        self._notify(Status.DELETING_USER)
        self._api.delete_user(self.handle, self._sessions.bearer_token)
        self._registered = False
        self._notify(Status.USER_DELETED)
        self._notify(Status.READY)
        return True

    @fail_soft(default=None)
    def get_price(self, currency: str) -> PriceQuote | None:
        """Current BTC price in the given fiat currency, e.g. ``GBP``."""
        _require(currency, "Currency")
        self._ensure_session()
        self._notify(Status.FETCH_PRICE)
        quote = self._api.get_price(currency, self._sessions.bearer_token)
        self._notify(Status.PRICE_FETCHED)
        self._notify(Status.READY)
        return quote

    @fail_soft()
    def register_business(self, form: NewBusinessForm | dict[str, Any]) -> bool:
        """Register a new business and remember its id."""
        if not isinstance(form, NewBusinessForm):
            form = NewBusinessForm.model_validate(form)
        self._ensure_session()
        self._notify(Status.REGISTER_BUSINESS)
        business_id = self._api.new_business(form, self._sessions.bearer_token)
        business = self._record.business
        business.business_id = business_id
        business.business_name = form.business_name
        self._notify(Status.BUSINESS_REGISTERED)
        self._backup()
        self._notify(Status.READY)
        return True

    # Node lifecycle

    @fail_soft(default=None)
    def get_node_status(self) -> NodeStatusSnapshot | None:
        """Fetch the business node's status, unlocking its wallet if it waits for it."""
        business = self._record.business
        if not business.business_id:
            msg = "Business is required: cannot get node status"
            raise ValidationError(msg)
        self._ensure_session()
        self._notify(Status.NODE_STATUS)
        snapshot = self._api.node_status(
            business.business_id, self._sessions.bearer_token
        )

        changed = False
        if not business.node_url and snapshot.node_url:
            business.node_url = snapshot.node_url
            changed = True
        if not business.node_id and snapshot.node_id:
            business.node_id = snapshot.node_id
            changed = True

        if changed:
            self._backup()

        if snapshot.status == NodeStatus.WAITING_UNLOCK:
            if not business.node_password:
                msg = "Node password is unknown: cannot unlock the node wallet"
                raise ValidationError(msg)
            self._notify(Status.UNLOCKING_NODE)
            self._node.unlock_wallet(business.node_url, business.node_password)
        self._notify(Status.READY)
        return snapshot

    @fail_soft()
    def init_node(self) -> bool:
        """Create the node wallet and hand a scoped macaroon to the platform."""
        business = self._require_node("initialize")
        self._notify(Status.INIT_NODE)
        seed = self._node.gen_seed(business.node_url)
        business.mnemonic = " ".join(seed.cipher_seed_mnemonic)
        business.enciphered_seed = seed.enciphered_seed
        business.node_password = base64.b64encode(
            secrets.token_bytes(NODE_PASSWORD_BYTES)
        ).decode()
        business.macaroon = self._node.init_wallet(
            business.node_url, business.node_password, seed.cipher_seed_mnemonic
        )
        self._notify(Status.NODE_INITIALIZED)
        self._backup()

        self._notify(Status.BAKING)
        macaroon = self._macaroon_policy.run(
            lambda: self._try_bake(business), "Macaroon baking"
        )
        self._ensure_session()
        ack = self._api.post_macaroon(
            business.business_id, self._sessions.bearer_token, macaroon
        )
        logger.info("Platform accepted macaroon (peer %s)", ack.host or "unknown")
        self._notify(Status.BAKED)
        self._backup()
        self._notify(Status.READY)
        return True

    @fail_soft()
    def stop_node(self) -> bool:
        business = self._require_node("stop")
        self._ensure_session()
        self._notify(Status.STOPPING_NODE)
        self._api.stop_node(business.business_id, self._sessions.bearer_token)
        self._notify(Status.NODE_STOPPED)
        self._notify(Status.READY)
        return True

    @fail_soft()
    def start_node(self) -> bool:
        business = self._require_node("start")
        self._ensure_session()
        self._notify(Status.STARTING_NODE)
        self._api.start_node(business.business_id, self._sessions.bearer_token)
        self._notify(Status.NODE_STARTED)
        self._notify(Status.READY)
        return True

    @fail_soft()
    def connect_peer(self, pubkey: str, host: str) -> bool:
        """Open a permanent peer connection from the business node."""
        business = self._require_node("connect")
        _require(pubkey, "Peer public key")
        _require(host, "Peer host")
        if not business.macaroon:
            msg = "Node macaroon is required: initialize the node first"
            raise ValidationError(msg)
        self._notify(Status.CONNECTING_PEER)
        self._node.connect_peer(business.node_url, business.macaroon, pubkey, host)
        self._notify(Status.PEER_CONNECTED)
        self._notify(Status.READY)
        return True

    # Internals

    def _notify(self, status: Status | str) -> None:
        self._status.notify(status)

    def _record_error(self, operation: str, error: Exception) -> None:
        entry = ErrorEntry(
            operation=operation, error_type=type(error).__name__, message=str(error)
        )
        self._errors.append(entry)
        logger.warning(
            "%s failed: %s",
            operation,
            error,
            exc_info=not isinstance(error, MusqetError),
        )
        self._notify(f"{Status.ERROR.value}: {error}")

    def _derive(self, identifier: str, passphrase: str) -> Identity:
        self._notify(Status.GENERATING_KEYS)
        identity = self._deriver.derive(identifier, passphrase)
        logger.info("Identity ready (fingerprint %s)", identity.fingerprint)
        return identity

    def _adopt(
        self, identity: Identity, identifier: str, record: StateRecord | None = None
    ) -> None:
        """Make identity the current account.

        Switching to a different handle starts from an empty record and drops
        the previous session and registration.
        """
        if self._identity is None or self._identity.handle != identity.handle:
            if record is None:
                self._sessions.reset()
                record = StateRecord()
            self._registered = False
        if record is not None:
            self._record = record
        self._identity = identity
        self._record.email = identifier
        self._record.priv = identity.private_key
        self._record.pub = identity.public_key
        self._record.totp = identity.totp_key

    def _register(self) -> None:
        if self._identity is None:
            msg = "User is not initialized"
            raise ValidationError(msg)
        _require(self._record.email, "Email")
        _require(self._record.name, "Name")
        self._notify(Status.REGISTER_USER)
        self._api.register_user(
            self._identity.handle, self._record.email, self._record.name
        )
        self._registered = True
        self._notify(Status.USER_REGISTERED)

    def _ensure_session(self) -> None:
        if self._sessions.is_valid():
            return
        self._notify(Status.START_CHALLENGE)
        self._sessions.ensure_valid(self._identity, self._record.email)
        self._sync_session_fields()
        self._notify(Status.CHALLENGE_COMPLETE)

    def _sync_session_fields(self) -> None:
        session = self._sessions.session
        self._record.bearer_token = session.bearer_token
        self._record.challenge_expires = session.expires_at_millis

    def _snapshot(self) -> StateRecord:
        self._sync_session_fields()
        return self._record.model_copy(deep=True)

    def _backup(self) -> bool:
        if self._identity is None:
            msg = "User is not initialized"
            raise ValidationError(msg)
        if not self._record.priv:
            msg = "Private key is required"
            raise ValidationError(msg)
        self._notify(Status.BACKING_UP)
        self._ensure_session()
        self._notify(Status.ENCRYPTING)
        sealed = Vault.seal(self._record.priv, self._snapshot())
        self._api.put_backup(
            self._identity.handle,
            self._sessions.bearer_token,
            self._record.name,
            sealed,
        )
        self._notify(Status.BACKED_UP)
        return True

    def _require_node(self, action: str) -> BusinessRecord:
        business = self._record.business
        if not business.node_id or not business.node_url:
            msg = f"No node found to {action}"
            raise ValidationError(msg)
        return business

    def _try_bake(self, business: BusinessRecord) -> str:
        try:
            return self._node.bake_macaroon(business.node_url, business.macaroon)
        except RemoteError as err:
            logger.debug("Macaroon not ready yet: %s", err)
            return ""
