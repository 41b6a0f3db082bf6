import pytest
from pydantic import ValidationError

from musqet.common.models import (
    ApiEnvelope,
    BusinessRecord,
    NewBusinessForm,
    NodeStatus,
    NodeStatusSnapshot,
    Role,
    StateRecord,
)


def test_state_record_defaults() -> None:
    record = StateRecord()

    assert record.priv == b""
    assert record.challenge_expires == 0
    assert len(record.businesses) == 1
    assert record.business.business_id == ""


def test_state_record_dumps_camel_case() -> None:
    record = StateRecord(bearer_token="tok", challenge_expires=5)

    data = record.model_dump(by_alias=True)

    assert data["bearerToken"] == "tok"
    assert data["challengeExpires"] == 5  # noqa: PLR2004
    assert "businessId" in data["businesses"][0]


def test_state_record_accepts_both_key_styles() -> None:
    camel = StateRecord.model_validate({"bearerToken": "a", "musqetPub": "p"})
    snake = StateRecord.model_validate({"bearer_token": "a", "musqet_pub": "p"})

    assert camel == snake


def test_current_business_grows_list() -> None:
    record = StateRecord(current_business=2)

    record.business.business_id = "biz-3"

    assert len(record.businesses) == 3  # noqa: PLR2004
    assert record.businesses[2].business_id == "biz-3"


def test_business_role() -> None:
    business = BusinessRecord.model_validate({"businessId": "b", "role": "cashier"})

    assert business.role is Role.CASHIER
    assert business.macaroon == ""

    with pytest.raises(ValidationError):
        BusinessRecord.model_validate({"role": "owner"})


def test_node_status_snapshot() -> None:
    snapshot = NodeStatusSnapshot.model_validate(
        {"status": "waiting_unlock", "nodeUrl": "n.example", "blockHeight": 7}
    )

    assert snapshot.status is NodeStatus.WAITING_UNLOCK
    assert snapshot.node_url == "n.example"
    assert snapshot.block_height == 7  # noqa: PLR2004
    assert snapshot.synced is False

    with pytest.raises(ValidationError):
        NodeStatusSnapshot.model_validate({"status": "exploded"})


def test_new_business_form_validation() -> None:
    base = {
        "name": "Alice",
        "address": "1 High Street",
        "businessName": "Cafe",
        "phone": "123",
        "email": "a@example.com",
        "annualRevenue": 0,
        "channelSize": 1,
    }
    form = NewBusinessForm.model_validate(base)

    assert form.model_dump(by_alias=True)["businessName"] == "Cafe"
    assert form.activation_code == ""

    with pytest.raises(ValidationError):
        NewBusinessForm.model_validate({**base, "annualRevenue": -1})
    with pytest.raises(ValidationError):
        NewBusinessForm.model_validate({**base, "channelSize": 0})


def test_api_envelope() -> None:
    ok = ApiEnvelope.model_validate({"ok": True, "data": {"nonce": "n"}})
    failed = ApiEnvelope.model_validate({"ok": False, "message": "nope"})

    assert ok.data == {"nonce": "n"}
    assert failed.message == "nope"
    assert failed.data is None
