
import logging
from typing import Iterable, List, Tuple

from common import config
from common.models import InventoryEntry, Order
from common.validation import check_availability

logger = logging.getLogger("inventory_catalog")


class InventoryCatalog:
    """Phones the store sells. Loaded once, never mutated afterwards."""

    def __init__(self, entries: Iterable[InventoryEntry]):
        self._entries: Tuple[InventoryEntry, ...] = tuple(entries)

    @classmethod
    def from_spec(cls, spec: str) -> "InventoryCatalog":
        """Build from a comma separated "Name:Price" list."""
        entries = [InventoryEntry.parse(part) for part in spec.split(",") if part.strip()]
        logger.info("Loaded %d catalog entries", len(entries))
        return cls(entries)

    @property
    def entries(self) -> Tuple[InventoryEntry, ...]:
        return self._entries

    def labels(self) -> List[str]:
        return [entry.label for entry in self._entries]

    def is_available(self, order: Order) -> bool:
        return check_availability(order, self._entries)


def load_catalog() -> InventoryCatalog:
    return InventoryCatalog.from_spec(config.PHONE_INVENTORY)
