import json

import pytest
from pydantic import ValidationError

from common.models import DeliveryRecord, InventoryEntry, MessageDecodeError, Order

ORDER = Order(
    customer_name="John",
    address="20, Palm Grove",
    contact_number="+94718930874",
    item_name="Apple:190000",
    correlation_id="cor_abc",
)


def test_order_message_body():
    body = json.loads(ORDER.to_message())
    assert list(body) == ["customerName", "address", "contactNumber", "orderedPhoneName", "correlationId"]
    assert body["orderedPhoneName"] == "Apple:190000"


def test_message_without_correlation_id_omits_it():
    order = ORDER.model_copy(update={"correlation_id": None})
    assert "correlationId" not in json.loads(order.to_message())


def test_order_decodes_from_bytes():
    assert Order.from_message(ORDER.to_message().encode("utf-8")) == ORDER


def test_delivery_record_uses_delivery_key():
    record = DeliveryRecord.from_order(ORDER)
    body = json.loads(record.to_message())
    assert body["deliveryPhoneName"] == "Apple:190000"
    assert "orderedPhoneName" not in body
    assert DeliveryRecord.from_message(record.to_message()) == record


def test_order_cannot_be_read_as_delivery_record():
    with pytest.raises(MessageDecodeError, match="deliveryPhoneName"):
        DeliveryRecord.from_message(ORDER.to_message())


@pytest.mark.parametrize("body", [b"garbage", b"\xff", b"[]", b'{"customerName": "John"}'])
def test_bad_bodies_raise_decode_error(body):
    with pytest.raises(MessageDecodeError):
        Order.from_message(body)


def test_non_string_field_is_a_decode_error():
    body = json.loads(ORDER.to_message())
    body["contactNumber"] = 123
    with pytest.raises(MessageDecodeError):
        Order.from_message(json.dumps(body))


def test_payload_shape_matches_http_contract():
    assert ORDER.to_payload() == {
        "Name": "John",
        "Address": "20, Palm Grove",
        "ContactNumber": "+94718930874",
        "PhoneName": "Apple:190000",
    }


def test_orders_are_immutable():
    with pytest.raises(ValidationError):
        ORDER.item_name = "Nokia:80000"


def test_inventory_entry_parse_and_label():
    entry = InventoryEntry.parse(" Huawei:100000 ")
    assert entry == InventoryEntry(name="Huawei", price=100000)
    assert entry.label == "Huawei:100000"


@pytest.mark.parametrize("text", ["Huawei", ":100", "Huawei:abc"])
def test_inventory_entry_parse_rejects_bad_text(text):
    with pytest.raises(ValueError):
        InventoryEntry.parse(text)
