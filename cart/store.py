# cart/store.py
import threading
import uuid
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple

from catalog.logger import get_logger
from catalog.models import Item

logger = get_logger(__name__)

Observer = Callable[["CartStore"], None]


@dataclass(frozen=True)
class CartLine:
    """
    One row of the cart. References the item, does not own it.
    Frozen; a quantity change swaps in a new line with the same line_id.
    """
    item: Item
    quantity: int = 1
    line_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def line_total(self) -> Decimal:
        return self.item.price * self.quantity


class CartStore:
    """
    Session cart and favorites.

    Mutations and observer notification run under one re-entrant lock, so
    observers see changes in order and may query the store from a callback.
    Nothing here is persisted.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._lines: List[CartLine] = []
        self._favorites: Dict[int, Item] = {}
        self._observers: List[Observer] = []

    # observers

    def subscribe(self, callback: Observer) -> Callable[[], None]:
        with self._lock:
            self._observers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._observers:
                    self._observers.remove(callback)

        return unsubscribe

    def _notify(self):
        for cb in list(self._observers):
            try:
                cb(self)
            except Exception:
                logger.exception("Cart observer %r failed", cb)

    # queries

    def _find(self, item: Item) -> Optional[int]:
        for idx, line in enumerate(self._lines):
            if line.item.id == item.id:
                return idx
        return None

    def quantity_for(self, item: Item) -> int:
        with self._lock:
            idx = self._find(item)
            return self._lines[idx].quantity if idx is not None else 0

    def is_favorite(self, item: Item) -> bool:
        with self._lock:
            return item.id in self._favorites

    @property
    def lines(self) -> Tuple[CartLine, ...]:
        with self._lock:
            return tuple(self._lines)

    @property
    def favorites(self) -> Tuple[Item, ...]:
        with self._lock:
            return tuple(self._favorites.values())

    @property
    def line_count(self) -> int:
        with self._lock:
            return len(self._lines)

    @property
    def total_quantity(self) -> int:
        with self._lock:
            return sum(line.quantity for line in self._lines)

    @property
    def is_empty(self) -> bool:
        with self._lock:
            return not self._lines

    # mutations

    def add_to_cart(self, item: Item):
        with self._lock:
            idx = self._find(item)
            if idx is not None:
                line = self._lines[idx]
                self._lines[idx] = replace(line, quantity=line.quantity + 1)
            else:
                self._lines.append(CartLine(item=item, quantity=1))
            logger.debug("Cart +1 item=%s qty=%d", item.id, self.quantity_for(item))
            self._notify()

    def remove_from_cart(self, item: Item):
        with self._lock:
            idx = self._find(item)
            if idx is None:
                return
            line = self._lines[idx]
            if line.quantity > 1:
                self._lines[idx] = replace(line, quantity=line.quantity - 1)
            else:
                del self._lines[idx]
            logger.debug("Cart -1 item=%s qty=%d", item.id, self.quantity_for(item))
            self._notify()

    def toggle_favorite(self, item: Item):
        with self._lock:
            if item.id in self._favorites:
                del self._favorites[item.id]
            else:
                self._favorites[item.id] = item
            self._notify()

    def remove_favorite(self, item: Item):
        with self._lock:
            if self._favorites.pop(item.id, None) is None:
                return
            self._notify()
