"""Tests for the allocation engine."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import pytest
from pydantic import ValidationError

from cartcalc.domain.calculator import Calculator
from cartcalc.domain.entities import Cart, DiscountRule, LineItem, ShipmentLine
from cartcalc.domain.types import DiscountTarget, DiscountTiming, ValueKind


def _cart(
    items: list[dict[str, Any]] | None = None,
    shipments: list[dict[str, Any]] | None = None,
    discounts: list[dict[str, Any]] | None = None,
    **settings: Any,
) -> Cart:
    return Cart.model_validate(
        {
            "items": items or [],
            "shipments": shipments or [],
            "discounts": discounts or [],
            **settings,
        }
    )


def _totals(cart: Cart) -> dict[str, str]:
    return Calculator(cart).totals().model_dump()


class TestBaseTotals:
    def test_empty_cart(self) -> None:
        assert _totals(Cart()) == {
            "items": "0.00",
            "shipments": "0.00",
            "discounts": "0.00",
            "tax": "0.00",
            "total": "0.00",
        }

    def test_single_non_discountable_item(self) -> None:
        cart = _cart(items=[{"id": "A", "price": "10.00", "qty": 2, "is_discountable": False}])
        assert _totals(cart) == {
            "items": "20.00",
            "shipments": "0.00",
            "discounts": "0.00",
            "tax": "0.00",
            "total": "20.00",
        }

    def test_item_sum(self) -> None:
        cart = _cart(items=[{"id": "A", "price": "12.50"}, {"id": "B", "price": "99.99"}])
        assert _totals(cart)["items"] == "112.49"

    def test_intermediates_use_calculator_precision(self) -> None:
        cart = _cart(items=[{"id": "A", "price": "0.333", "qty": 3}])
        assert Calculator(cart).item_total() == Decimal("0.9990")
        assert _totals(cart)["items"] == "1.00"

    def test_display_precision(self) -> None:
        cart = _cart(items=[{"id": "A", "price": "0.333", "qty": 3}], precision=3)
        assert _totals(cart)["items"] == "0.999"

    def test_taxable_and_discountable_subtotals(self, sample_cart_data: dict[str, Any]) -> None:
        calc = Calculator(Cart.model_validate(sample_cart_data))
        assert calc.taxable_item_total() == Decimal("0")
        assert calc.taxable_shipment_total() == Decimal("11.99")
        assert calc.taxable_total() == Decimal("11.99")
        assert calc.discountable_item_total() == Decimal("112.49")
        assert calc.discountable_shipment_total() == Decimal("10.00")


class TestGeneralDiscounts:
    def test_worked_example(self, sample_cart_data: dict[str, Any]) -> None:
        cart = Cart.model_validate(sample_cart_data)
        calc = Calculator(cart)
        assert calc.pre_tax_item_discount_total() == Decimal("10.00")
        assert calc.pre_tax_shipment_discount_total() == Decimal("7.50")
        assert _totals(cart) == {
            "items": "112.49",
            "shipments": "21.99",
            "discounts": "17.50",
            "tax": "0.96",
            "total": "117.94",
        }

    def test_non_discountable_shipment_caps_discount_at_zero(self) -> None:
        cart = _cart(
            shipments=[
                {"id": "s", "price": "11.99", "is_taxable": True, "is_discountable": False}
            ],
            discounts=[{"id": "d", "value": "10.00", "target": "shipments"}],
        )
        totals = _totals(cart)
        assert totals["discounts"] == "0.00"
        assert totals["shipments"] == "11.99"
        assert totals["total"] == "11.99"

    def test_flat_discount_capped_at_discountable_items(self) -> None:
        cart = _cart(
            items=[{"id": "A", "price": "100.00"}],
            discounts=[{"id": "d", "value": "500"}],
        )
        totals = _totals(cart)
        assert totals["discounts"] == "100.00"
        assert totals["total"] == "0.00"

    def test_percent_over_one_is_capped(self) -> None:
        cart = _cart(
            items=[{"id": "A", "price": "40.00"}],
            discounts=[{"id": "d", "value": "1.5", "value_kind": "percent"}],
        )
        assert _totals(cart)["discounts"] == "40.00"

    def test_pre_and_post_tax_buckets_sum(self) -> None:
        cart = _cart(
            items=[{"id": "A", "price": "100.00"}],
            discounts=[
                {"id": "pre", "value": "0.10", "value_kind": "percent"},
                {"id": "post", "value": "5", "timing": "post_tax"},
            ],
        )
        calc = Calculator(cart)
        assert calc.pre_tax_item_discount_total() == Decimal("10.0000")
        assert calc.post_tax_item_discount_total() == Decimal("5.0000")
        assert calc.item_discount_total() == Decimal("15.0000")

    def test_negative_value_clamped(self) -> None:
        cart = _cart(
            items=[{"id": "A", "price": "10.00"}],
            discounts=[{"id": "d", "value": "-5"}],
        )
        totals = _totals(cart)
        assert totals["discounts"] == "0.00"
        assert totals["total"] == "10.00"

    def test_discount_order_does_not_matter(self) -> None:
        discounts = [
            {"id": "a", "value": "0.25", "value_kind": "percent"},
            {"id": "b", "value": "3.33"},
            {"id": "c", "value": "0.5", "value_kind": "percent", "target": "shipments"},
        ]
        items = [{"id": "A", "price": "19.99", "qty": 3}]
        shipments = [{"id": "s", "price": "7.77"}]
        forward = _cart(items=items, shipments=shipments, discounts=discounts)
        backward = _cart(items=items, shipments=shipments, discounts=discounts[::-1])
        assert _totals(forward) == _totals(backward)


class TestSpecifiedDiscounts:
    @pytest.fixture
    def cart(self) -> Cart:
        return _cart(
            items=[
                {"id": "A", "price": "10.00", "qty": 3},
                {"id": "B", "price": "5.00", "qty": 1},
                {"id": "C", "price": "40.00", "qty": 1},
            ],
            discounts=[
                {
                    "id": "half",
                    "value": "0.5",
                    "value_kind": "percent",
                    "target": "specified",
                    "items": {"A": 2, "B": 5},
                },
                {"id": "tenth", "value": "0.10", "value_kind": "percent"},
            ],
        )

    def test_allocation_uses_referenced_qty(self, cart: Cart) -> None:
        calc = Calculator(cart)
        allocation = calc.specified_allocation(cart.discounts["half"])
        # A: 10.00 x 2 referenced, B: 5.00 x min(5, 1)
        assert allocation.item_base == Decimal("25.0000")
        assert allocation.items == Decimal("12.5000")
        assert allocation.shipments == Decimal("0.0000")

    def test_claimed_lines_leave_general_pool(self, cart: Cart) -> None:
        calc = Calculator(cart)
        assert calc.discountable_item_total(exclude_specified=True) == Decimal("40.0000")
        assert calc.pre_tax_item_discount_total() == Decimal("4.0000")

    def test_totals(self, cart: Cart) -> None:
        totals = _totals(cart)
        assert totals["items"] == "75.00"
        assert totals["discounts"] == "16.50"
        assert totals["total"] == "58.50"

    def test_removing_discount_recomputes(self, cart: Cart) -> None:
        totals = _totals(cart.without_discount("half"))
        assert totals["discounts"] == "7.50"
        assert totals["total"] == "67.50"

    def test_flat_amount_fills_items_then_shipments(self) -> None:
        cart = _cart(
            items=[{"id": "A", "price": "10.00"}],
            shipments=[{"id": "s", "price": "50.00"}],
            discounts=[
                {
                    "id": "combo",
                    "value": "30",
                    "target": "specified",
                    "items": {"A": 1},
                    "shipments": ["s"],
                }
            ],
        )
        calc = Calculator(cart)
        allocation = calc.specified_allocation(cart.discounts["combo"])
        assert allocation.items == Decimal("10.0000")
        assert allocation.shipments == Decimal("20.0000")
        assert _totals(cart)["total"] == "30.00"

    def test_missing_reference_is_skipped(self) -> None:
        cart = _cart(
            items=[{"id": "A", "price": "10.00"}],
            discounts=[{"id": "ghost", "value": "5", "target": "specified", "items": {"Z": 1}}],
        )
        calc = Calculator(cart)
        assert calc.specified_discount_total(DiscountTiming.PRE_TAX) == Decimal("0.0000")
        assert _totals(cart)["total"] == "10.00"

    def test_non_discountable_reference_contributes_nothing(self) -> None:
        cart = _cart(
            items=[{"id": "A", "price": "10.00", "is_discountable": False}],
            discounts=[{"id": "d", "value": "5", "target": "specified", "items": {"A": 1}}],
        )
        assert _totals(cart)["discounts"] == "0.00"

    def test_negative_reference_qty_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DiscountRule(id="neg", target="specified", items={"A": -1})

    @pytest.mark.parametrize(
        ("value", "value_kind"),
        [(Decimal("0.5"), ValueKind.PERCENT), (Decimal("5"), ValueKind.FLAT)],
    )
    def test_negative_referenced_base_never_raises_total(
        self, value: Decimal, value_kind: ValueKind
    ) -> None:
        rule = DiscountRule.model_construct(
            id="neg",
            value=value,
            value_kind=value_kind,
            target=DiscountTarget.SPECIFIED,
            items={"A": Decimal(-1)},
        )
        cart = _cart(items=[{"id": "A", "price": "10.00", "qty": 2}]).with_discount(rule)
        allocation = Calculator(cart).specified_allocation(rule)
        assert allocation.item_base == Decimal("0.0000")
        assert allocation.total == Decimal("0.0000")
        totals = _totals(cart)
        assert totals["discounts"] == "0.00"
        assert totals["total"] == "20.00"

    def test_reference_qty_above_cart_qty_uses_cart_qty(self) -> None:
        cart = _cart(
            items=[{"id": "A", "price": "10.00", "qty": 2}],
            discounts=[
                {
                    "id": "half",
                    "value": "0.5",
                    "value_kind": "percent",
                    "target": "specified",
                    "items": {"A": 10},
                }
            ],
        )
        allocation = Calculator(cart).specified_allocation(cart.discounts["half"])
        assert allocation.item_base == Decimal("20.0000")
        assert allocation.items == Decimal("10.0000")
        assert _totals(cart)["total"] == "10.00"


class TestTax:
    def test_rate_on_taxable_base(self) -> None:
        cart = _cart(
            items=[{"id": "A", "price": "1000.00", "is_taxable": True}],
            include_tax=True,
            tax_rate="0.07025",
        )
        totals = _totals(cart)
        assert totals["tax"] == "70.25"
        assert totals["total"] == "1070.25"

    def test_tax_excluded(self) -> None:
        cart = _cart(
            items=[{"id": "A", "price": "100.00", "is_taxable": True}],
            include_tax=False,
            tax_rate="0.10",
        )
        assert _totals(cart)["tax"] == "0.00"

    def test_post_tax_discount_keeps_taxable_base(self) -> None:
        cart = _cart(
            items=[{"id": "A", "price": "100.00", "is_taxable": True}],
            discounts=[{"id": "d", "value": "20", "timing": "post_tax"}],
            include_tax=True,
            tax_rate="0.10",
        )
        assert _totals(cart) == {
            "items": "100.00",
            "shipments": "0.00",
            "discounts": "20.00",
            "tax": "10.00",
            "total": "90.00",
        }

    def test_worked_example_discount_first(self, sample_cart_data: dict[str, Any]) -> None:
        cart = Cart.model_validate({**sample_cart_data, "discount_taxable_last": False})
        totals = _totals(cart)
        assert totals["tax"] == "0.36"
        assert totals["total"] == "117.34"


class TestTaxPolicies:
    """Taxable item 100.00 and non-taxable item 50.00 at 10%."""

    @staticmethod
    def _mixed(discount: str, *, taxable_last: bool) -> Cart:
        return _cart(
            items=[
                {"id": "T", "price": "100.00", "is_taxable": True},
                {"id": "N", "price": "50.00"},
            ],
            discounts=[{"id": "d", "value": discount}],
            include_tax=True,
            tax_rate="0.10",
            discount_taxable_last=taxable_last,
        )

    def test_taxable_last_small_discount_spares_taxable_lines(self) -> None:
        totals = _totals(self._mixed("20", taxable_last=True))
        assert totals["tax"] == "10.00"
        assert totals["total"] == "140.00"

    def test_taxable_last_overlap_reduces_base(self) -> None:
        calc = Calculator(self._mixed("120", taxable_last=True))
        assert calc.discounted_taxable_total() == Decimal("30.0000")
        assert calc.totals().tax == "3.00"
        assert calc.totals().total == "33.00"

    def test_discount_first_small_discount(self) -> None:
        totals = _totals(self._mixed("20", taxable_last=False))
        assert totals["tax"] == "8.00"
        assert totals["total"] == "138.00"

    def test_discount_first_clamps_base_at_zero(self) -> None:
        totals = _totals(self._mixed("120", taxable_last=False))
        assert totals["tax"] == "0.00"
        assert totals["total"] == "30.00"


class TestReports:
    def test_discounted_totals(self, sample_cart_data: dict[str, Any]) -> None:
        report = Calculator(Cart.model_validate(sample_cart_data)).discounted_totals()
        assert report.items == "102.49"
        assert report.shipments == "14.49"
        assert report.tax == "0.96"
        assert report.total == "117.94"

    def test_breakdown(self, sample_cart_data: dict[str, Any]) -> None:
        breakdown = Calculator(Cart.model_validate(sample_cart_data)).breakdown()
        assert breakdown["item_total"] == "112.4900"
        assert breakdown["taxable_total"] == "11.9900"
        assert breakdown["tax_total"] == "0.9592"
        assert breakdown["total"] == "117.9392"

    def test_pure_across_calls(self, sample_cart_data: dict[str, Any]) -> None:
        calc = Calculator(Cart.model_validate(sample_cart_data))
        assert calc.totals() == calc.totals()

    def test_snapshot_updates_feed_new_calculator(self) -> None:
        cart = Cart().with_item(LineItem(id="A", price="5.00"))
        cart = cart.with_shipment(ShipmentLine(id="s", price="2.00"))
        cart = cart.with_discount(DiscountRule(id="d", value="1.00"))
        assert _totals(cart)["total"] == "6.00"
