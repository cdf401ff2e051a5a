"""Tests for the session cart state manager."""

import json
import unittest

from cart import CartStateManager
from client_storage import MemoryStorage
from models import Product


def _product(pid: str = "p1", price: float = 10.0, **extra) -> Product:
    return Product(id=pid, name=f"Product {pid}", price=price, **extra)


class TestCartMutations(unittest.TestCase):
    """add / remove / update / clear semantics."""

    def setUp(self) -> None:
        self.storage = MemoryStorage()
        self.cart = CartStateManager(self.storage)
        self.cart.load_cart()

    def test_walkthrough_scenario(self) -> None:
        """Add, add again, clamp to one, remove: totals follow each step."""
        p1 = _product("p1", 10.0)

        self.cart.add_to_cart(p1, 2)
        self.assertEqual(self.cart.get_cart_total(), 20.0)

        self.cart.add_to_cart(p1, 3)
        self.assertEqual(self.cart.get("p1").quantity, 5)
        self.assertEqual(self.cart.get_cart_total(), 50.0)

        self.cart.update_quantity("p1", 0)
        self.assertEqual(self.cart.get("p1").quantity, 1)
        self.assertEqual(self.cart.get_cart_total(), 10.0)

        self.cart.remove_from_cart("p1")
        self.assertEqual(len(self.cart), 0)
        self.assertEqual(self.cart.get_cart_total(), 0.0)

    def test_repeated_adds_keep_one_entry(self) -> None:
        """Quantities accumulate on a single entry per product id."""
        for qty in (1, 4, 2, 7):
            self.cart.add_to_cart(_product("p1"), qty)
        self.assertEqual(len(self.cart), 1)
        self.assertEqual(self.cart.get("p1").quantity, 14)

    def test_add_does_not_cap_at_stock(self) -> None:
        """Stock is informational only."""
        self.cart.add_to_cart(_product("p1", stock=2), 5)
        self.assertEqual(self.cart.get("p1").quantity, 5)

    def test_add_rejects_non_positive_quantity(self) -> None:
        """Zero or negative quantities raise and leave the cart unchanged."""
        for qty in (0, -3):
            with self.assertRaises(ValueError):
                self.cart.add_to_cart(_product(), qty)
        self.assertEqual(len(self.cart), 0)

    def test_insertion_order_preserved(self) -> None:
        """Entries come back in the order they were first added."""
        for pid in ("b", "a", "c"):
            self.cart.add_to_cart(_product(pid), 1)
        self.cart.add_to_cart(_product("b"), 1)
        self.assertEqual([e.product.id for e in self.cart.entries()], ["b", "a", "c"])

    def test_update_quantity_clamps_to_one(self) -> None:
        """Non-positive quantities clamp to 1 and never remove the entry."""
        self.cart.add_to_cart(_product(), 3)
        for qty in (0, -1, -100):
            self.cart.update_quantity("p1", qty)
            self.assertIn("p1", self.cart)
            self.assertEqual(self.cart.get("p1").quantity, 1)

    def test_update_quantity_sets_value(self) -> None:
        self.cart.add_to_cart(_product(), 3)
        self.cart.update_quantity("p1", 8)
        self.assertEqual(self.cart.get("p1").quantity, 8)

    def test_update_unknown_id_is_noop(self) -> None:
        """Updating a product not in the cart adds nothing."""
        self.cart.update_quantity("ghost", 4)
        self.assertNotIn("ghost", self.cart)
        self.assertEqual(len(self.cart), 0)

    def test_remove_is_idempotent(self) -> None:
        """Removing twice leaves the same cart as removing once."""
        self.cart.add_to_cart(_product("p1"), 1)
        self.cart.add_to_cart(_product("p2"), 2)
        self.cart.remove_from_cart("p1")
        once = [e.to_dict() for e in self.cart.entries()]
        self.cart.remove_from_cart("p1")
        self.assertEqual([e.to_dict() for e in self.cart.entries()], once)

    def test_clear_cart(self) -> None:
        self.cart.add_to_cart(_product("p1"), 1)
        self.cart.add_to_cart(_product("p2"), 1)
        self.cart.clear_cart()
        self.assertEqual(self.cart.entries(), [])
        self.assertEqual(self.cart.item_count(), 0)

    def test_item_count_sums_quantities(self) -> None:
        self.cart.add_to_cart(_product("p1"), 2)
        self.cart.add_to_cart(_product("p2"), 3)
        self.assertEqual(self.cart.item_count(), 5)


class TestCartTotal(unittest.TestCase):
    """Totals use the snapshot taken at add time."""

    def setUp(self) -> None:
        self.cart = CartStateManager(MemoryStorage())
        self.cart.load_cart()

    def test_total_is_sum_of_lines(self) -> None:
        self.cart.add_to_cart(_product("p1", 2.5), 4)
        self.cart.add_to_cart(_product("p2", 7.25), 2)
        self.assertAlmostEqual(self.cart.get_cart_total(), 2.5 * 4 + 7.25 * 2)

    def test_price_change_after_add_is_ignored(self) -> None:
        """Mutating the source product does not affect the cart."""
        product = _product("p1", 10.0)
        self.cart.add_to_cart(product, 2)
        product.price = 99.0
        self.assertEqual(self.cart.get_cart_total(), 20.0)

    def test_readd_keeps_original_snapshot(self) -> None:
        """A later add with a new price only increases quantity."""
        self.cart.add_to_cart(_product("p1", 10.0), 1)
        self.cart.add_to_cart(_product("p1", 30.0), 1)
        self.assertEqual(self.cart.get_cart_total(), 20.0)

    def test_empty_total_is_zero(self) -> None:
        self.assertEqual(self.cart.get_cart_total(), 0.0)


class TestCartPersistence(unittest.TestCase):
    """Write-through and restore behaviour."""

    def setUp(self) -> None:
        self.storage = MemoryStorage()

    def test_mutations_write_through(self) -> None:
        """Every mutation after load updates the stored blob."""
        cart = CartStateManager(self.storage)
        cart.load_cart()
        cart.add_to_cart(_product("p1"), 2)

        stored = json.loads(self.storage.get("cart"))
        self.assertEqual(stored[0]["product"]["id"], "p1")
        self.assertEqual(stored[0]["quantity"], 2)

        cart.clear_cart()
        self.assertEqual(json.loads(self.storage.get("cart")), [])

    def test_restore_round_trip(self) -> None:
        """A new manager picks up entries, order and snapshots."""
        first = CartStateManager(self.storage)
        first.load_cart()
        first.add_to_cart(_product("p2", 5.0), 1)
        first.add_to_cart(_product("p1", 10.0), 3)

        second = CartStateManager(self.storage)
        second.load_cart()
        self.assertEqual([e.product.id for e in second.entries()], ["p2", "p1"])
        self.assertEqual(second.get_cart_total(), 35.0)

    def test_writes_before_load_are_suppressed(self) -> None:
        """An uninitialised manager must not clobber the saved cart."""
        self.storage.set("cart", json.dumps([
            {"product": _product("saved").to_dict(), "quantity": 1},
        ]))
        cart = CartStateManager(self.storage)
        cart.clear_cart()
        self.assertFalse(cart.initialized)
        self.assertEqual(json.loads(self.storage.get("cart"))[0]["product"]["id"], "saved")

    def test_corrupt_blob_starts_empty(self) -> None:
        """Unparseable JSON is discarded and removed from storage."""
        self.storage.set("cart", "{not json")
        cart = CartStateManager(self.storage)
        cart.load_cart()
        self.assertEqual(len(cart), 0)
        self.assertIsNone(self.storage.get("cart"))

    def test_malformed_entries_start_empty(self) -> None:
        """Valid JSON with the wrong shape is treated the same way."""
        for blob in ('{"p1": 2}', '[{"quantity": 1}]', '[{"product": {"id": "p1"}, "quantity": 0}]', "5"):
            self.storage.set("cart", blob)
            cart = CartStateManager(self.storage)
            cart.load_cart()
            self.assertEqual(len(cart), 0, blob)
            self.assertIsNone(self.storage.get("cart"), blob)

    def test_non_finite_quantity_starts_empty(self) -> None:
        """JSON Infinity/NaN quantities cannot become an int; the blob is dropped."""
        for literal in ("Infinity", "-Infinity", "NaN"):
            blob = '[{"product": {"id": "p1", "name": "Mug", "price": 1}, "quantity": %s}]' % literal
            self.storage.set("cart", blob)
            cart = CartStateManager(self.storage)
            cart.load_cart()
            self.assertEqual(len(cart), 0, literal)
            self.assertIsNone(self.storage.get("cart"), literal)
            cart.add_to_cart(_product("p2", 2.0))
            self.assertEqual(cart.get_cart_total(), 2.0)

    def test_unavailable_storage_disables_write_through(self) -> None:
        """Without durable storage the cart works in memory only."""
        storage = MemoryStorage(available=False)
        cart = CartStateManager(storage)
        cart.load_cart()
        cart.add_to_cart(_product(), 2)
        self.assertEqual(cart.get_cart_total(), 20.0)
        self.assertIsNone(storage.get("cart"))

    def test_custom_storage_key(self) -> None:
        cart = CartStateManager(self.storage, key="basket")
        cart.load_cart()
        cart.add_to_cart(_product(), 1)
        self.assertIsNotNone(self.storage.get("basket"))
        self.assertIsNone(self.storage.get("cart"))


class TestCartSubscriptions(unittest.TestCase):
    """Listeners hear about each successful mutation."""

    def setUp(self) -> None:
        self.cart = CartStateManager(MemoryStorage())
        self.cart.load_cart()
        self.events: list[str] = []
        self.unsubscribe = self.cart.subscribe(lambda cart, action: self.events.append(action))

    def test_actions_reported(self) -> None:
        self.cart.add_to_cart(_product(), 1)
        self.cart.update_quantity("p1", 3)
        self.cart.remove_from_cart("p1")
        self.cart.clear_cart()
        self.assertEqual(self.events, ["add", "update", "remove", "clear"])

    def test_noops_are_silent(self) -> None:
        """Removing or updating an absent id notifies nobody."""
        self.cart.remove_from_cart("ghost")
        self.cart.update_quantity("ghost", 2)
        self.assertEqual(self.events, [])

    def test_unsubscribe(self) -> None:
        self.unsubscribe()
        self.cart.add_to_cart(_product(), 1)
        self.assertEqual(self.events, [])
