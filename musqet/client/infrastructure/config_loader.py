"""Infrastructure layer: Configuration loading and collaborator wiring.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from musqet.client.application.key_derivation import KeyDeriver
from musqet.client.domain.retry import RetryPolicy
from musqet.client.infrastructure.api_client import ApiClient
from musqet.client.infrastructure.node_client import NodeClient
from musqet.common import Configurable, setup_logger
from musqet.common.config import Config
from musqet.common.models import ClientConfig

if TYPE_CHECKING:
    from collections.abc import Callable

    from musqet.common.interfaces import IHttpSession

CONFIG_ATTRS = [
    "api_url",
    "http_timeout",
    "log_level",
    "key_prefix",
    "scrypt_n",
    "scrypt_r",
    "scrypt_p",
    "pbkdf2_iterations",
    "session_expiry_margin_ms",
    "node_rest_port",
    "node_verify_tls",
    "macaroon_poll_attempts",
    "macaroon_poll_interval",
    "max_errors",
]


class ConfigLoader(Configurable):
    """Merges ClientConfig overrides over Config defaults and builds collaborators."""

    api_url: str
    http_timeout: float
    log_level: int
    key_prefix: str
    scrypt_n: int
    scrypt_r: int
    scrypt_p: int
    pbkdf2_iterations: int
    session_expiry_margin_ms: int
    node_rest_port: int
    node_verify_tls: bool | str
    macaroon_poll_attempts: int
    macaroon_poll_interval: float
    max_errors: int

    def __init__(self, client_config: ClientConfig | None = None):
        self.config: Config = Config()
        client_config = client_config or ClientConfig()
        self.apply_overrides(client_config.model_dump(), self.config, CONFIG_ATTRS)

        # Setup logging
        self.logger = logging.getLogger("musqet")
        setup_logger(self.logger, self.log_level)

    def build_key_deriver(self) -> KeyDeriver:
        return KeyDeriver(
            prefix=self.key_prefix,
            scrypt_n=self.scrypt_n,
            scrypt_r=self.scrypt_r,
            scrypt_p=self.scrypt_p,
            pbkdf2_iterations=self.pbkdf2_iterations,
            modulus=self.config.KDF_MODULUS,
        )

    def build_api_client(self, http: IHttpSession | None = None) -> ApiClient:
        return ApiClient(self.api_url, http=http, timeout=self.http_timeout)

    def build_node_client(self, http: IHttpSession | None = None) -> NodeClient:
        return NodeClient(
            http=http,
            port=self.node_rest_port,
            verify=self.node_verify_tls,
            timeout=self.http_timeout,
        )

    def build_macaroon_policy(
        self, sleep: Callable[[float], None] = time.sleep
    ) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.macaroon_poll_attempts,
            delay=self.macaroon_poll_interval,
            sleep=sleep,
        )
