"""Stock movement value objects: Increment and DecrementWithCheck."""

from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from inventory_kernel.domain.stock import (
    DecrementWithCheck,
    Increment,
    MovementKind,
    apply_movement,
    movement_for,
)
from inventory_kernel.domain.workflow import ItemKind
from inventory_kernel.exceptions import InsufficientStockError

quantities = st.decimals(min_value=Decimal("0.001"), max_value=Decimal("1000000"), places=3)


class TestMovementFor:
    def test_supply_increments(self):
        movement = movement_for(ItemKind.SUPPLY, Decimal("50"), Decimal("2.5"))
        assert isinstance(movement, Increment)
        assert movement.kind == MovementKind.INCREMENT

    def test_distribution_decrements(self):
        movement = movement_for("distribution", Decimal("5"))
        assert isinstance(movement, DecrementWithCheck)
        assert movement.kind == MovementKind.DECREMENT

    @pytest.mark.parametrize("quantity", [Decimal("0"), Decimal("-1")])
    def test_non_positive_quantity_rejected(self, quantity):
        with pytest.raises(ValueError):
            Increment(quantity=quantity)
        with pytest.raises(ValueError):
            DecrementWithCheck(quantity=quantity)


class TestApplyMovement:
    def test_increment_sets_price(self):
        result = apply_movement(Increment(Decimal("50"), Decimal("3.10")), Decimal("100"), Decimal("2.00"))
        assert result.quantity_before == Decimal("100")
        assert result.quantity_after == Decimal("150")
        assert result.unit_price == Decimal("3.10")

    def test_increment_without_price_keeps_current(self):
        result = apply_movement(Increment(Decimal("1")), Decimal("0"), Decimal("2.00"))
        assert result.unit_price == Decimal("2.00")

    def test_decrement_to_zero(self):
        result = apply_movement(DecrementWithCheck(Decimal("30")), Decimal("30"), None)
        assert result.quantity_after == Decimal("0")

    def test_decrement_beyond_stock(self):
        with pytest.raises(InsufficientStockError) as exc_info:
            apply_movement(DecrementWithCheck(Decimal("31")), Decimal("30"), None, product_id="p-1")
        assert exc_info.value.available == Decimal("30")
        assert exc_info.value.requested == Decimal("31")
        assert exc_info.value.code == "INSUFFICIENT_STOCK"

    @given(on_hand=quantities, requested=quantities)
    def test_decrement_never_goes_negative(self, on_hand, requested):
        try:
            result = apply_movement(DecrementWithCheck(requested), on_hand, None)
        except InsufficientStockError:
            assert requested > on_hand
            return
        assert result.quantity_after >= 0
        assert result.quantity_after == on_hand - requested
