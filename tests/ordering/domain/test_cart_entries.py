"""Tests for the Cart aggregate — entries keyed by product, bounded by stock."""

import pytest
from protean.exceptions import ValidationError

from marketplace.exceptions import OutOfStock
from marketplace.ordering.cart.cart import Cart


def _cart():
    return Cart.for_buyer("buyer-1")


class TestAdd:
    def test_identity_is_buyer(self):
        assert str(_cart().id) == "buyer-1"

    def test_add_accumulates(self):
        cart = _cart()
        cart.add("prd-1", 1.5, available=5)
        cart.add("prd-1", 2.0, available=5)
        assert cart.quantity_of("prd-1") == 3.5
        assert len(cart.entries) == 1

    def test_combined_quantity_bounded_by_stock(self):
        cart = _cart()
        cart.add("prd-1", 3, available=4)
        with pytest.raises(OutOfStock):
            cart.add("prd-1", 1.5, available=4)
        assert cart.quantity_of("prd-1") == 3

    def test_non_positive_rejected(self):
        with pytest.raises(ValidationError):
            _cart().add("prd-1", 0, available=4)


class TestUpdateAndRemove:
    def test_update_sets_exact_quantity(self):
        cart = _cart()
        cart.add("prd-1", 1, available=5)
        cart.update_quantity("prd-1", 4.25, available=5)
        assert cart.quantity_of("prd-1") == 4.25

    def test_update_to_zero_removes(self):
        cart = _cart()
        cart.add("prd-1", 1, available=5)
        cart.update_quantity("prd-1", 0, available=0)
        assert cart.is_empty

    def test_update_over_stock(self):
        cart = _cart()
        cart.add("prd-1", 1, available=5)
        with pytest.raises(OutOfStock):
            cart.update_quantity("prd-1", 6, available=5)

    def test_remove_missing_is_noop(self):
        cart = _cart()
        cart.remove("prd-unknown")
        assert cart.is_empty

    def test_clear(self):
        cart = _cart()
        cart.add("prd-1", 1, available=5)
        cart.add("prd-2", 2, available=5)
        cart.clear()
        assert cart.is_empty
