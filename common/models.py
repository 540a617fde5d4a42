
import json
from typing import Any, ClassVar, Dict, Optional

from pydantic import BaseModel, ConfigDict, ValidationError


class MessageDecodeError(ValueError):
    """A queue message body could not be turned back into a model."""


class PhoneOrder(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Name of the phone field in the queue message body.
    ITEM_KEY: ClassVar[str] = "orderedPhoneName"

    customer_name: str
    address: str
    contact_number: str
    item_name: str
    correlation_id: Optional[str] = None

    def to_payload(self) -> Dict[str, str]:
        """HTTP body shape accepted by placeOrder and sendDelivery."""
        return {
            "Name": self.customer_name,
            "Address": self.address,
            "ContactNumber": self.contact_number,
            "PhoneName": self.item_name,
        }

    def to_message(self) -> str:
        body = {
            "customerName": self.customer_name,
            "address": self.address,
            "contactNumber": self.contact_number,
            self.ITEM_KEY: self.item_name,
        }
        if self.correlation_id:
            body["correlationId"] = self.correlation_id
        return json.dumps(body)

    @classmethod
    def from_message(cls, body: Any) -> "PhoneOrder":
        try:
            if isinstance(body, (bytes, bytearray)):
                body = body.decode("utf-8")
            data = json.loads(body)
        except (UnicodeDecodeError, ValueError, TypeError) as e:
            raise MessageDecodeError(f"body is not JSON: {e}") from e
        if not isinstance(data, dict):
            raise MessageDecodeError("body is not a JSON object")

        try:
            return cls(
                customer_name=data["customerName"],
                address=data["address"],
                contact_number=data["contactNumber"],
                item_name=data[cls.ITEM_KEY],
                correlation_id=data.get("correlationId"),
            )
        except KeyError as e:
            raise MessageDecodeError(f"missing field {e.args[0]}") from e
        except ValidationError as e:
            raise MessageDecodeError(f"invalid field value: {e.errors()[0]['loc']}") from e


class Order(PhoneOrder):
    """Command message: a customer asked the store for a phone."""


class DeliveryRecord(PhoneOrder):
    """Document message: the delivery service accepted an order."""

    ITEM_KEY: ClassVar[str] = "deliveryPhoneName"

    @classmethod
    def from_order(cls, order: PhoneOrder) -> "DeliveryRecord":
        return cls(
            customer_name=order.customer_name,
            address=order.address,
            contact_number=order.contact_number,
            item_name=order.item_name,
            correlation_id=order.correlation_id,
        )


class InventoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    price: int

    @property
    def label(self) -> str:
        return f"{self.name}:{self.price}"

    @classmethod
    def parse(cls, text: str) -> "InventoryEntry":
        name, sep, price = text.strip().rpartition(":")
        if not sep or not name:
            raise ValueError(f"inventory entry must look like 'Name:Price', got {text!r}")
        return cls(name=name, price=int(price))
