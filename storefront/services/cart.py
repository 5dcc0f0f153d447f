"""Client-held cart.

The ledger keeps lines in insertion order and writes itself to a key-value
slot after every change so it survives restarts. A slot that cannot be
read back is discarded; loading never raises.
"""
import json
import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from storefront.core.errors import NotFound, ValidationError
from storefront.core.money import sum_lines
from storefront.models.schemas import CartItem

logger = logging.getLogger(__name__)


class JsonFileSlot:
    """One named value on disk, the local equivalent of a browser storage key."""

    def __init__(self, path):
        self.path = Path(path)

    def load(self) -> Optional[str]:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")

    def save(self, raw: str):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(raw, encoding="utf-8")

    def clear(self):
        self.path.unlink(missing_ok=True)


class CartLedger:

    def __init__(self, slot: Optional[JsonFileSlot] = None):
        self.slot = slot
        self._lines: Dict[str, CartItem] = {}
        self._restore()

    def _restore(self):
        if self.slot is None:
            return
        try:
            raw = self.slot.load()
            if raw is None:
                return
            # UnicodeDecodeError and JSONDecodeError are ValueErrors
            lines = [CartItem(**entry) for entry in json.loads(raw)]
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning("Discarding unreadable cart slot: %s", e)
            try:
                self.slot.clear()
            except OSError as e:
                logger.error("Could not remove cart slot %s: %s", self.slot.path, e)
            return
        self._lines = {line.productId: line for line in lines}

    def _persist(self):
        if self.slot is not None:
            self.slot.save(json.dumps([line.model_dump() for line in self._lines.values()]))

    # --- mutations ---

    def add(self, product, quantity: int = 1) -> CartItem:
        """Adds ``quantity`` of a catalog product, snapshotting name, price and image.

        The resulting quantity is clamped to [1, product.stock].
        """
        stock = getattr(product, "stock", None)
        if stock is not None and stock < 1:
            raise ValidationError(f"{product.name} is out of stock")
        line = self._lines.get(product.id)
        wanted = (line.quantity if line else 0) + quantity
        wanted = max(1, wanted if stock is None else min(wanted, stock))
        if line is None:
            line = CartItem(
                productId=product.id,
                name=product.name,
                price=product.price,
                image=getattr(product, "image", "") or "",
                quantity=wanted,
            )
            self._lines[product.id] = line
        else:
            line.quantity = wanted
        self._persist()
        return line

    def set_quantity(self, product_id: str, quantity: int) -> CartItem:
        line = self._lines.get(product_id)
        if line is None:
            raise NotFound("Item not in cart")
        line.quantity = max(1, int(quantity))
        self._persist()
        return line

    def remove(self, product_id: str):
        if self._lines.pop(product_id, None) is not None:
            self._persist()

    def clear(self):
        self._lines = {}
        if self.slot is not None:
            self.slot.clear()

    # --- reads ---

    def items(self) -> List[CartItem]:
        return [line.model_copy() for line in self._lines.values()]

    def total(self) -> float:
        return float(sum_lines((line.price, line.quantity) for line in self._lines.values()))

    def count(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self):
        return len(self._lines)

    def __iter__(self) -> Iterator[CartItem]:
        return iter(self.items())

    def __contains__(self, product_id) -> bool:
        return product_id in self._lines

    @classmethod
    def from_items(cls, items: List[CartItem]) -> "CartLedger":
        """An unpersisted ledger holding lines a client already priced."""
        ledger = cls()
        for item in items:
            existing = ledger._lines.get(item.productId)
            if existing:
                existing.quantity += item.quantity
            else:
                ledger._lines[item.productId] = item.model_copy()
        return ledger
