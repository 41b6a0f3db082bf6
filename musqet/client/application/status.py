"""
Application layer: Status notifications for identity client observers.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from musqet.common.interfaces import IStatusListener

logger = logging.getLogger(__name__)


class Status(str, Enum):
    READY = "Ready"
    SIGNUP = "Starting signup"
    USER_CREATED = "New user created"
    LOGIN = "Starting login"
    LOGGED_IN = "User logged in"
    GENERATING_KEYS = "Generating keys"
    REGISTER_USER = "Registering new user"
    USER_REGISTERED = "User registered"
    START_CHALLENGE = "Starting challenge"
    CHALLENGE_COMPLETE = "Challenge completed"
    BACKING_UP = "Backing up"
    BACKED_UP = "Backup saved"
    ENCRYPTING = "Encrypting settings"
    DECRYPTING = "Decrypting settings"
    FETCH_PRICE = "Fetching price"
    PRICE_FETCHED = "Price fetched"
    REGISTER_BUSINESS = "Registering business"
    BUSINESS_REGISTERED = "Business registered"
    NODE_STATUS = "Fetching node status"
    UNLOCKING_NODE = "Unlocking lightning node"
    INIT_NODE = "Initializing lightning node"
    NODE_INITIALIZED = "Lightning node initialized"
    BAKING = "Baking macaroon"
    BAKED = "Macaroon baked"
    STARTING_NODE = "Starting lightning node"
    NODE_STARTED = "Lightning node started"
    STOPPING_NODE = "Stopping lightning node"
    NODE_STOPPED = "Lightning node stopped"
    CONNECTING_PEER = "Connecting peer"
    PEER_CONNECTED = "Peer connected"
    DELETING_USER = "Deleting user"
    USER_DELETED = "User deleted"
    ERROR = "Error"


class StatusBroadcaster:
    """Delivers every status change to subscribers, in registration order.

    Delivery is synchronous on the caller's thread, so listeners must not
    block. A listener that raises is logged and the others still run.
    """

    def __init__(self) -> None:
        self._listeners: list[IStatusListener] = []
        self.current: str = Status.READY.value

    def subscribe(self, listener: IStatusListener) -> Callable[[], None]:
        """Register a listener; call the returned handle to unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, status: Status | str) -> None:
        text = status.value if isinstance(status, Status) else status
        self.current = text
        for listener in list(self._listeners):
            try:
                listener(text)
            except Exception:
                logger.exception("Status listener failed on %r", text)
