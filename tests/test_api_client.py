from unittest.mock import Mock

import pytest
import requests
from conftest import MockResponse

from musqet.client.infrastructure.api_client import ApiClient
from musqet.common.exceptions import RemoteError
from musqet.common.models import NewBusinessForm

BASE_URL = "https://api.example/api/v1/"


@pytest.fixture
def http() -> Mock:
    http = Mock()
    http.request.return_value = MockResponse(200, {"ok": True})
    return http


@pytest.fixture
def api(http: Mock) -> ApiClient:
    return ApiClient(BASE_URL, http=http, timeout=5.0)


def test_bearer_token_and_timeout_sent(api: ApiClient, http: Mock) -> None:
    api.delete_user("handle", "tok")

    http.request.assert_called_once_with(
        "DELETE",
        BASE_URL + "u/handle",
        headers={"Authorization": "Bearer tok"},
        json=None,
        params=None,
        timeout=5.0,
    )


def test_base_url_gets_trailing_slash(http: Mock) -> None:
    api = ApiClient("https://api.example/api/v1", http=http)

    api.register_user("h", "a@example.com", "Alice")

    assert http.request.call_args.args[1] == BASE_URL + "u/new"
    assert http.request.call_args.kwargs["headers"] == {}


def test_challenge_pubkey_padding_is_escaped(api: ApiClient, http: Mock) -> None:
    http.request.return_value = MockResponse(200, {"ok": True, "data": {"nonce": "n"}})

    assert api.get_challenge("a@example.com", "abc=") == "n"
    assert http.request.call_args.kwargs["params"] == {
        "email": "a@example.com",
        "pubkey": "abc~",
    }


def test_missing_nonce_is_error(api: ApiClient, http: Mock) -> None:
    http.request.return_value = MockResponse(200, {"ok": True, "data": {}})

    with pytest.raises(RemoteError, match="Nonce not received"):
        api.get_challenge("a@example.com", "abc=")


def test_rejected_reply_carries_message(api: ApiClient, http: Mock) -> None:
    http.request.return_value = MockResponse(401, {"ok": False, "message": "Bad token"})

    with pytest.raises(RemoteError, match="Bad token") as exc_info:
        api.get_user("h", "tok")

    assert exc_info.value.status_code == 401  # noqa: PLR2004


def test_error_status_without_ok_false(api: ApiClient, http: Mock) -> None:
    http.request.return_value = MockResponse(502, {"ok": True})

    with pytest.raises(RemoteError, match="502"):
        api.get_user("h", "tok")


def test_non_json_reply(api: ApiClient, http: Mock) -> None:
    http.request.return_value = MockResponse(500, None, "<html>oops</html>")

    with pytest.raises(RemoteError, match="without a JSON reply"):
        api.get_price("GBP", "tok")


def test_network_failure(api: ApiClient, http: Mock) -> None:
    http.request.side_effect = requests.ConnectionError("refused")

    with pytest.raises(RemoteError, match="refused"):
        api.get_price("GBP", "tok")


def test_challenge_grant_requires_token(api: ApiClient, http: Mock) -> None:
    http.request.return_value = MockResponse(200, {"ok": True, "data": {"nonce": "n"}})

    with pytest.raises(RemoteError, match="missing the token"):
        api.post_challenge("h", "sig", "n")


def test_new_business_sends_camel_case(api: ApiClient, http: Mock, business_form) -> None:
    http.request.return_value = MockResponse(
        200, {"ok": True, "data": {"businessId": "biz-7"}}
    )

    business_id = api.new_business(NewBusinessForm.model_validate(business_form), "tok")

    assert business_id == "biz-7"
    sent = http.request.call_args.kwargs["json"]
    assert sent["businessName"] == "Alice's Cafe"
    assert sent["annualRevenue"] == 250_000  # noqa: PLR2004


def test_node_routes_use_business_id(api: ApiClient, http: Mock) -> None:
    api.start_node("biz-1", "tok")
    api.stop_node("biz-1", "tok")

    urls = [c.args[1] for c in http.request.call_args_list]
    assert urls == [BASE_URL + "b/biz-1/ln/startNode", BASE_URL + "b/biz-1/ln/stopNode"]
