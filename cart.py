"""Shopping cart state for one browsing session."""

import json
import logging
from typing import Callable, Optional

from models import CartEntry, Product

logger = logging.getLogger("shopease.cart")

Listener = Callable[["CartStateManager", str], None]


class CartStateManager:
    """Ordered product-id -> CartEntry mapping with write-through persistence.

    Each entry carries a snapshot of the product taken when it was first
    added, so later catalog price changes do not touch the cart total.

    Nothing is written to storage until :meth:`load_cart` has run; this keeps
    a fresh, empty manager from overwriting the saved cart before it has been
    read. If the storage reports itself unavailable at load time the cart
    still works, it just is not persisted.

    Listeners registered with :meth:`subscribe` are called as
    ``listener(manager, action)`` after every successful mutation.
    """

    def __init__(self, storage, key: str = "cart"):
        self.storage = storage
        self.key = key
        self._entries: dict[str, CartEntry] = {}
        self._listeners: list[Listener] = []
        self._initialized = False
        self._durable = False

    #      Lifecycle
    def load_cart(self) -> None:
        """Restore from storage; a corrupt blob is discarded and the cart starts empty."""
        self._durable = self.storage.is_available()
        if not self._durable:
            logger.info("Durable storage unavailable, cart will not persist")
            self._initialized = True
            return

        raw = self.storage.get(self.key)
        if raw is not None:
            try:
                entries = [CartEntry.from_dict(item) for item in json.loads(raw)]
                self._entries = {e.product.id: e for e in entries}
            except (TypeError, ValueError, KeyError, OverflowError):
                logger.warning("Discarding unreadable stored cart", exc_info=True)
                self._entries = {}
                self.storage.remove(self.key)
        self._initialized = True

    @property
    def initialized(self) -> bool:
        return self._initialized

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register for change notifications; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    #      Mutations
    def add_to_cart(self, product: Product, quantity: int = 1) -> CartEntry:
        if quantity < 1:
            raise ValueError("quantity must be at least 1")

        entry = self._entries.get(product.id)
        if entry:
            entry.quantity += quantity
        else:
            snapshot = Product.from_dict(product.to_dict())
            entry = self._entries[product.id] = CartEntry(snapshot, quantity)
        self._changed("add")
        return entry

    def remove_from_cart(self, product_id: str) -> None:
        if self._entries.pop(product_id, None) is not None:
            self._changed("remove")

    def update_quantity(self, product_id: str, quantity: int) -> None:
        entry = self._entries.get(product_id)
        if entry is None:
            return
        entry.quantity = max(1, quantity)
        self._changed("update")

    def clear_cart(self) -> None:
        self._entries.clear()
        self._changed("clear")

    #      Queries
    def get_cart_total(self) -> float:
        return sum((e.line_total for e in self._entries.values()), 0.0)

    def item_count(self) -> int:
        return sum(e.quantity for e in self._entries.values())

    def entries(self) -> list[CartEntry]:
        return list(self._entries.values())

    def get(self, product_id: str) -> Optional[CartEntry]:
        return self._entries.get(product_id)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, product_id) -> bool:
        return product_id in self._entries

    def to_dict(self) -> dict:
        return {
            "items": [e.to_dict() for e in self._entries.values()],
            "total": self.get_cart_total(),
            "count": self.item_count(),
        }

    #      Internals
    def _changed(self, action: str) -> None:
        self._persist()
        for listener in list(self._listeners):
            listener(self, action)

    def _persist(self) -> None:
        if not (self._initialized and self._durable):
            return
        blob = json.dumps([e.to_dict() for e in self._entries.values()])
        self.storage.set(self.key, blob)
