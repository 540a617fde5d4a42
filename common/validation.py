"""
Order validation shared by the store and delivery endpoints.

Parsing and business checks are kept apart: ``validate`` turns an untyped
payload into an ``Order`` or a rejection, ``check_availability`` decides
whether the catalog can serve it.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from common.models import InventoryEntry, Order

REQUIRED_FIELDS = ("Name", "Address", "ContactNumber", "PhoneName")


class Rejection(str, Enum):
    MALFORMED_PAYLOAD = "MalformedPayload"
    MISSING_FIELD = "MissingField"


@dataclass(frozen=True)
class ValidationResult:
    order: Optional[Order] = None
    rejection: Optional[Rejection] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.order is not None


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _parse(raw: Any) -> Optional[Mapping[str, Any]]:
    if isinstance(raw, Mapping):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            return None
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def validate(raw: Any, correlation_id: Optional[str] = None) -> ValidationResult:
    """Validate an inbound order payload (raw body or parsed mapping)."""
    data = _parse(raw)
    if data is None:
        return ValidationResult(
            rejection=Rejection.MALFORMED_PAYLOAD,
            detail="payload is not a JSON object",
        )

    missing = [name for name in REQUIRED_FIELDS if data.get(name) is None]
    if missing:
        return ValidationResult(
            rejection=Rejection.MISSING_FIELD,
            detail=f"Missing required field(s): {', '.join(missing)}",
        )

    order = Order(
        customer_name=_as_text(data["Name"]),
        address=_as_text(data["Address"]),
        contact_number=_as_text(data["ContactNumber"]),
        item_name=_as_text(data["PhoneName"]),
        correlation_id=correlation_id,
    )
    return ValidationResult(order=order)


def check_availability(order: Order, entries: Iterable[InventoryEntry]) -> bool:
    """
    True if the ordered item matches a catalog entry, case-insensitively.

    An entry matches on its full "Name:Price" label or on its bare name.
    The catalog is small, so a linear scan is enough; switch to a dict keyed
    by the folded label if it ever grows.
    """
    wanted = order.item_name.casefold()
    for entry in entries:
        if wanted == entry.label.casefold() or wanted == entry.name.casefold():
            return True
    return False
