import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import Mock

import pytest
import requests
from fastapi import FastAPI, Header
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from musqet.client.application.key_derivation import KeyDeriver
from musqet.client.client import IdentityClient
from musqet.common.crypto import CryptoUtils
from musqet.common.models import ClientConfig

API_URL = "http://testserver/api/v1/"


class MockResponse:
    def __init__(self, status_code: int, json_data: Any = None, text: str = ""):
        self.status_code = status_code
        self._json = json_data
        self.text = text

    def json(self) -> Any:
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error", response=self)


class TestClientSession:
    """requests-style ``request`` on top of a FastAPI TestClient."""

    __test__ = False

    def __init__(self, client: TestClient):
        self.client = client

    def request(self, method: str, url: str, **kwargs: Any) -> MockResponse:
        response = self.client.request(
            method,
            url,
            headers=kwargs.get("headers"),
            json=kwargs.get("json"),
            params=kwargs.get("params"),
        )
        try:
            body = response.json()
        except ValueError:
            body = None
        return MockResponse(response.status_code, body, response.text)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "message": message})


class FakeAccountApi:
    """In-memory stand-in for the remote account API."""

    def __init__(self, clock: "FakeClock", token_ttl: timedelta = timedelta(hours=1)):
        self.clock = clock
        self.token_ttl = token_ttl
        self.users: dict[str, dict[str, str]] = {}
        self.nonces: dict[str, str] = {}
        self.tokens: dict[str, str] = {}
        self.businesses: dict[str, dict[str, Any]] = {}
        self.macaroons: dict[str, str] = {}
        self.node_calls: list[str] = []
        self.backups_stored = 0
        self.reject_backups = False
        self.challenges_completed = 0
        self.requests = 0
        self.app = FastAPI()
        self._setup_routes()

    def _owner(self, authorization: str | None) -> str | None:
        if not authorization or not authorization.startswith("Bearer "):
            return None
        return self.tokens.get(authorization.removeprefix("Bearer "))

    def set_node(self, business_id: str, **fields: Any) -> None:
        self.businesses[business_id].update(fields)

    def _setup_routes(self) -> None:  # noqa: C901, PLR0915
        app = self.app

        @app.middleware("http")
        async def count_requests(request, call_next):  # type: ignore[no-untyped-def]
            self.requests += 1
            return await call_next(request)

        @app.post("/api/v1/u/new")
        def register_user(body: dict[str, Any]) -> Any:
            handle = body.get("pubkey", "")
            if not handle or not body.get("email"):
                return _error(400, "pubkey and email are required")
            if handle in self.users:
                return _error(409, "User already exists")
            self.users[handle] = {"email": body["email"], "name": body.get("name", ""), "backup": ""}
            return {"ok": True}

        @app.get("/api/v1/challenge")
        def get_challenge(email: str, pubkey: str) -> Any:
            handle = pubkey.replace("~", "=")
            user = self.users.get(handle)
            if user is None or user["email"] != email:
                return _error(404, "Unknown user")
            nonce = CryptoUtils.b64url_encode(secrets.token_bytes(32))
            self.nonces[nonce] = handle
            return {"ok": True, "data": {"nonce": nonce}}

        @app.post("/api/v1/challenge")
        def post_challenge(body: dict[str, Any]) -> Any:
            nonce = body.get("nonce", "")
            handle = self.nonces.pop(nonce, None)
            if handle is None or handle != body.get("pubkey"):
                return _error(401, "Unknown nonce")
            valid = CryptoUtils.schnorr_verify(
                CryptoUtils.b64url_decode(body.get("signature", "")),
                CryptoUtils.b64url_decode(nonce),
                CryptoUtils.b64url_decode(handle),
            )
            if not valid:
                return _error(401, "Invalid signature")
            token = secrets.token_hex(16)
            self.tokens[token] = handle
            self.challenges_completed += 1
            issued = datetime.fromtimestamp(self.clock() / 1000, tz=timezone.utc)
            expires = issued + self.token_ttl
            return {
                "ok": True,
                "data": {
                    "nonce": nonce,
                    "token": token,
                    "expires": expires.isoformat().replace("+00:00", "Z"),
                },
            }

        @app.get("/api/v1/u/{handle}")
        def get_user(handle: str, authorization: str | None = Header(default=None)) -> Any:
            if self._owner(authorization) != handle:
                return _error(401, "Unauthorized")
            user = self.users[handle]
            return {"ok": True, "data": {"name": user["name"], "backup": user["backup"], "businesses": {}}}

        @app.put("/api/v1/u/{handle}")
        def put_backup(
            handle: str, body: dict[str, Any], authorization: str | None = Header(default=None)
        ) -> Any:
            if self._owner(authorization) != handle:
                return _error(401, "Unauthorized")
            if self.reject_backups:
                return _error(503, "Backup storage unavailable")
            self.users[handle].update(name=body.get("name", ""), backup=body.get("backup", ""))
            self.backups_stored += 1
            return {"ok": True}

        @app.delete("/api/v1/u/{handle}")
        def delete_user(handle: str, authorization: str | None = Header(default=None)) -> Any:
            if self._owner(authorization) != handle:
                return _error(401, "Unauthorized")
            del self.users[handle]
            return {"ok": True}

        @app.get("/api/v1/price")
        def price(currency: str, authorization: str | None = Header(default=None)) -> Any:
            if self._owner(authorization) is None:
                return _error(401, "Unauthorized")
            symbols = {"GBP": "£", "USD": "$", "EUR": "€"}
            if currency not in symbols:
                return _error(400, f"Unsupported currency {currency}")
            return {"ok": True, "data": {"price": "58000.00", "symbol": symbols[currency]}}

        @app.post("/api/v1/b/new")
        def new_business(body: dict[str, Any], authorization: str | None = Header(default=None)) -> Any:
            owner = self._owner(authorization)
            if owner is None:
                return _error(401, "Unauthorized")
            business_id = f"biz-{len(self.businesses) + 1}"
            self.businesses[business_id] = {
                "owner": owner,
                "form": body,
                "status": "provisioning",
                "nodeId": "",
                "nodeUrl": "",
                "synced": False,
                "blockHeight": 0,
                "blockTip": 0,
            }
            return {"ok": True, "data": {"businessId": business_id}}

        @app.get("/api/v1/b/{business_id}/ln/status")
        def node_status(business_id: str, authorization: str | None = Header(default=None)) -> Any:
            business = self.businesses.get(business_id)
            if business is None or self._owner(authorization) != business["owner"]:
                return _error(404, "Business not found")
            data = {k: v for k, v in business.items() if k not in {"owner", "form"}}
            return {"ok": True, "data": data}

        @app.get("/api/v1/b/{business_id}/ln/{action}")
        def node_action(business_id: str, action: str, authorization: str | None = Header(default=None)) -> Any:
            business = self.businesses.get(business_id)
            if business is None or self._owner(authorization) != business["owner"]:
                return _error(404, "Business not found")
            if action not in {"startNode", "stopNode"}:
                return _error(404, "Unknown action")
            self.node_calls.append(action)
            return {"ok": True}

        @app.post("/api/v1/b/{business_id}/ln/macaroon")
        def post_macaroon(
            business_id: str, body: dict[str, Any], authorization: str | None = Header(default=None)
        ) -> Any:
            business = self.businesses.get(business_id)
            if business is None or self._owner(authorization) != business["owner"]:
                return _error(404, "Business not found")
            self.macaroons[business_id] = body.get("macaroon", "")
            return {"ok": True, "data": {"pubkey": "02" + "ab" * 32, "host": "node.musqet.test:9735"}}


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self) -> None:
        self.now = int(datetime.now(timezone.utc).timestamp() * 1000)

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int) -> None:
        self.now += millis


@pytest.fixture
def fast_config() -> ClientConfig:
    """Client config with cheap key stretching so tests stay quick."""
    return ClientConfig(
        api_url=API_URL,
        scrypt_n=2**4,
        pbkdf2_iterations=2,
        log_level=logging.WARNING,
        macaroon_poll_interval=0.0,
    )


@pytest.fixture
def deriver() -> KeyDeriver:
    return KeyDeriver(scrypt_n=2**4, pbkdf2_iterations=2)


@pytest.fixture
def fake_api(clock: FakeClock) -> FakeAccountApi:
    return FakeAccountApi(clock)


@pytest.fixture
def api_http(fake_api: FakeAccountApi) -> TestClientSession:
    return TestClientSession(TestClient(fake_api.app))


@pytest.fixture
def node_http() -> Mock:
    """Node REST session; tests set ``request.side_effect``."""
    http = Mock()
    http.request.return_value = MockResponse(200, {})
    return http


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep() -> Mock:
    return Mock()


@pytest.fixture
def make_client(fast_config, api_http, node_http, clock, sleep):
    def factory(**overrides: Any) -> IdentityClient:
        config = fast_config.model_copy(update=overrides)
        return IdentityClient(
            config, api_http=api_http, node_http=node_http, clock=clock, sleep=sleep
        )

    return factory


@pytest.fixture
def client(make_client) -> IdentityClient:
    return make_client()


@pytest.fixture
def business_form() -> dict[str, Any]:
    return {
        "name": "Alice Example",
        "address": "1 High Street, London",
        "business_name": "Alice's Cafe",
        "phone": "+44 20 7946 0000",
        "email": "cafe@example.com",
        "annual_revenue": 250_000,
        "website": "https://cafe.example.com",
        "channel_size": 1_000_000,
    }
