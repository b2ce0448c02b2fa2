"""Allocation engine: subtotals, discount allocation, tax, and total.

Assumptions baked into the formula order:
  1. Shipments are never added or discounted after tax is computed.
  2. Items and shipments may each be taxable and/or discountable.
  3. Discounts apply to items, shipments, or a specified set of lines,
     before or after tax.
  4. Percentage discounts are never compounded; a bucket is a plain sum.

Every intermediate value is rounded to the cart's calculator precision
before it feeds the next formula. Only :meth:`Calculator.totals` and
:meth:`Calculator.discounted_totals` round to display precision.

The calculator is a pure function of an immutable cart snapshot and keeps
no state between calls.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from cartcalc.domain.classifier import DiscountBuckets, classify
from cartcalc.domain.entities import Cart, DiscountRule, LineItem
from cartcalc.domain.money import ZERO, format_amount, quantize, to_decimal
from cartcalc.domain.reports import DiscountedTotalsReport, TotalsReport
from cartcalc.domain.types import DiscountTarget, DiscountTiming, ValueKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpecifiedAllocation:
    """One specified discount's amount, split between items and shipments.

    Attributes:
        item_base: Discountable value of the referenced items
            (price x min(referenced qty, qty in cart)).
        shipment_base: Discountable value of the referenced shipments.
        items: Portion of the discount applied to items.
        shipments: Portion of the discount applied to shipments.
    """

    discount_id: str
    item_base: Decimal
    shipment_base: Decimal
    items: Decimal
    shipments: Decimal

    @property
    def total(self) -> Decimal:
        return self.items + self.shipments


class Calculator:
    """Compute the totals report for a cart.

    Usage::

        report = Calculator(cart).totals()
        report.total  # "117.94"
    """

    def __init__(self, cart: Cart) -> None:
        self._cart = cart
        self._buckets = classify(cart.discounts.values())

    @property
    def cart(self) -> Cart:
        return self._cart

    @property
    def buckets(self) -> DiscountBuckets:
        return self._buckets

    # ── Rounding ──────────────────────────────────────────────────────

    def currency(self, value: object) -> Decimal:
        """Round to calculator precision."""
        return quantize(value, self._cart.calculator_precision)

    def format(self, value: object) -> str:
        """Render at display precision."""
        return format_amount(value, self._cart.precision)

    def _sum(self, amounts: Iterable[Decimal]) -> Decimal:
        return self.currency(sum(amounts, ZERO))

    # ── Reports ───────────────────────────────────────────────────────

    def totals(self) -> TotalsReport:
        return TotalsReport(
            items=self.format(self.item_total()),
            shipments=self.format(self.shipment_total()),
            discounts=self.format(self.discount_total()),
            tax=self.format(self.tax_total()),
            total=self.format(self.total()),
        )

    def discounted_totals(self) -> DiscountedTotalsReport:
        return DiscountedTotalsReport(
            items=self.format(self.discounted_item_total()),
            shipments=self.format(self.discounted_shipment_total()),
            tax=self.format(self.tax_total()),
            total=self.format(self.total()),
        )

    def breakdown(self) -> dict[str, str]:
        """Every intermediate amount at calculator precision."""
        values = {
            "item_total": self.item_total(),
            "shipment_total": self.shipment_total(),
            "taxable_item_total": self.taxable_item_total(),
            "taxable_shipment_total": self.taxable_shipment_total(),
            "discountable_item_total": self.discountable_item_total(),
            "discountable_shipment_total": self.discountable_shipment_total(),
            "general_discountable_item_total": self.discountable_item_total(exclude_specified=True),
            "general_discountable_shipment_total": self.discountable_shipment_total(
                exclude_specified=True
            ),
            "pre_tax_item_discount": self.pre_tax_item_discount_total(),
            "post_tax_item_discount": self.post_tax_item_discount_total(),
            "pre_tax_shipment_discount": self.pre_tax_shipment_discount_total(),
            "post_tax_shipment_discount": self.post_tax_shipment_discount_total(),
            "pre_tax_specified_discount": self.specified_discount_total(DiscountTiming.PRE_TAX),
            "post_tax_specified_discount": self.specified_discount_total(DiscountTiming.POST_TAX),
            "item_discount_total": self.item_discount_total(),
            "shipment_discount_total": self.shipment_discount_total(),
            "discount_total": self.discount_total(),
            "taxable_total": self.discounted_taxable_total(),
            "tax_total": self.tax_total(),
            "total": self.total(),
        }
        return {key: f"{self.currency(value):f}" for key, value in values.items()}

    # ── Base totals ───────────────────────────────────────────────────

    def _line_total(self, item: LineItem, qty: Decimal | None = None) -> Decimal:
        units = item.qty if qty is None else qty
        return self.currency(self.currency(item.price) * units)

    def item_total(self) -> Decimal:
        """Sum of price x qty over all items; zero for an empty cart."""
        return self._sum(self._line_total(item) for item in self._cart.items.values())

    def shipment_total(self) -> Decimal:
        return self._sum(self.currency(s.price) for s in self._cart.shipments.values())

    def taxable_item_total(self) -> Decimal:
        return self._sum(
            self._line_total(item) for item in self._cart.items.values() if item.is_taxable
        )

    def taxable_shipment_total(self) -> Decimal:
        return self._sum(
            self.currency(s.price) for s in self._cart.shipments.values() if s.is_taxable
        )

    def taxable_total(self) -> Decimal:
        """Maximum taxable amount, before discounts."""
        return self.currency(self.taxable_item_total() + self.taxable_shipment_total())

    def discountable_item_total(self, *, exclude_specified: bool = False) -> Decimal:
        """Sum over discountable items, optionally skipping claimed ones."""
        claimed = self._buckets.claimed_items if exclude_specified else frozenset()
        return self._sum(
            self._line_total(item)
            for key, item in self._cart.items.items()
            if item.is_discountable and key not in claimed
        )

    def discountable_shipment_total(self, *, exclude_specified: bool = False) -> Decimal:
        """Sum over discountable shipments, optionally skipping claimed ones."""
        claimed = self._buckets.claimed_shipments if exclude_specified else frozenset()
        return self._sum(
            self.currency(shipment.price)
            for key, shipment in self._cart.shipments.items()
            if shipment.is_discountable and key not in claimed
        )

    # ── General (items / shipments) discounts ─────────────────────────

    def _contribution(self, rule: DiscountRule, base: Decimal) -> Decimal:
        """Amount *rule* takes from *base*; never negative.

        Percent values are ratios and are used unrounded; flat values are
        rounded to calculator precision.
        """
        if rule.value_kind is ValueKind.PERCENT:
            amount = self.currency(to_decimal(rule.value) * base)
        else:
            amount = self.currency(rule.value)
        return max(amount, ZERO)

    def _general_pool(self, target: DiscountTarget) -> Decimal:
        if target is DiscountTarget.ITEMS:
            return self.discountable_item_total(exclude_specified=True)
        return self.discountable_shipment_total(exclude_specified=True)

    def _general_discount(self, timing: DiscountTiming, target: DiscountTarget) -> Decimal:
        rules = self._buckets.for_timing(timing).for_target(target)
        if not rules:
            return self.currency(ZERO)
        pool = self._general_pool(target)
        requested = self._sum(self._contribution(rule, pool) for rule in rules)
        if requested > pool:
            logger.debug(
                "Capped %s %s discounts at %s (requested %s)", timing, target, pool, requested
            )
            return pool
        return requested

    def pre_tax_item_discount_total(self) -> Decimal:
        return self._general_discount(DiscountTiming.PRE_TAX, DiscountTarget.ITEMS)

    def post_tax_item_discount_total(self) -> Decimal:
        return self._general_discount(DiscountTiming.POST_TAX, DiscountTarget.ITEMS)

    def pre_tax_shipment_discount_total(self) -> Decimal:
        return self._general_discount(DiscountTiming.PRE_TAX, DiscountTarget.SHIPMENTS)

    def post_tax_shipment_discount_total(self) -> Decimal:
        return self._general_discount(DiscountTiming.POST_TAX, DiscountTarget.SHIPMENTS)

    def item_discount_total(self) -> Decimal:
        """General item discounts, capped at everything discountable in items."""
        total = self.pre_tax_item_discount_total() + self.post_tax_item_discount_total()
        return self.currency(min(total, self.discountable_item_total()))

    def shipment_discount_total(self) -> Decimal:
        """General shipment discounts, capped at everything discountable in shipments."""
        total = self.pre_tax_shipment_discount_total() + self.post_tax_shipment_discount_total()
        return self.currency(min(total, self.discountable_shipment_total()))

    # ── Specified discounts ───────────────────────────────────────────

    def specified_allocation(self, rule: DiscountRule) -> SpecifiedAllocation:
        """Compute *rule*'s amount from only the lines it references.

        Unresolvable and non-discountable references contribute zero. The
        amount is capped at the referenced value; a flat amount goes to the
        referenced items first and the remainder to shipments, a percentage
        applies to each side on its own.
        """
        item_amounts: list[Decimal] = []
        for key, ref_qty in rule.items.items():
            item = self._cart.get_item(key)
            if item is None:
                logger.debug("Discount %s references missing item %s", rule.id, key)
                continue
            if item.is_discountable:
                item_amounts.append(self._line_total(item, min(ref_qty, item.qty)))

        shipment_amounts: list[Decimal] = []
        for key in sorted(rule.shipments):
            shipment = self._cart.get_shipment(key)
            if shipment is None:
                logger.debug("Discount %s references missing shipment %s", rule.id, key)
                continue
            if shipment.is_discountable:
                shipment_amounts.append(self.currency(shipment.price))

        item_base = max(self._sum(item_amounts), ZERO)
        shipment_base = max(self._sum(shipment_amounts), ZERO)

        if rule.value_kind is ValueKind.PERCENT:
            items = min(self._contribution(rule, item_base), item_base)
            shipments = min(self._contribution(rule, shipment_base), shipment_base)
        else:
            amount = min(self._contribution(rule, ZERO), item_base + shipment_base)
            items = min(amount, item_base)
            shipments = amount - items

        return SpecifiedAllocation(
            discount_id=rule.id,
            item_base=item_base,
            shipment_base=shipment_base,
            items=self.currency(items),
            shipments=self.currency(shipments),
        )

    def specified_allocations(self, timing: DiscountTiming) -> list[SpecifiedAllocation]:
        return [self.specified_allocation(r) for r in self._buckets.for_timing(timing).specified]

    def specified_discount_total(self, timing: DiscountTiming) -> Decimal:
        return self._sum(a.total for a in self.specified_allocations(timing))

    def _specified_share(self, timing: DiscountTiming, target: DiscountTarget) -> Decimal:
        allocations = self.specified_allocations(timing)
        if target is DiscountTarget.ITEMS:
            return self._sum(a.items for a in allocations)
        return self._sum(a.shipments for a in allocations)

    # ── Discount totals ───────────────────────────────────────────────

    def pre_tax_discount_total(self) -> Decimal:
        return self.currency(
            self.pre_tax_item_discount_total()
            + self.pre_tax_shipment_discount_total()
            + self.specified_discount_total(DiscountTiming.PRE_TAX)
        )

    def post_tax_discount_total(self) -> Decimal:
        return self.currency(
            self.post_tax_item_discount_total()
            + self.post_tax_shipment_discount_total()
            + self.specified_discount_total(DiscountTiming.POST_TAX)
        )

    def discount_total(self) -> Decimal:
        """All discounts, never more than the cart's discountable value."""
        total = (
            self.item_discount_total()
            + self.shipment_discount_total()
            + self.specified_discount_total(DiscountTiming.PRE_TAX)
            + self.specified_discount_total(DiscountTiming.POST_TAX)
        )
        ceiling = self.discountable_item_total() + self.discountable_shipment_total()
        if total > ceiling:
            logger.debug("Capped discount total at %s (requested %s)", ceiling, total)
            total = ceiling
        return self.currency(total)

    # ── Tax ───────────────────────────────────────────────────────────

    def _pre_tax_discount_for(self, target: DiscountTarget) -> Decimal:
        general = self._general_discount(DiscountTiming.PRE_TAX, target)
        return self.currency(general + self._specified_share(DiscountTiming.PRE_TAX, target))

    def _discounted_taxable_base(
        self, taxable: Decimal, discount: Decimal, raw: Decimal
    ) -> Decimal:
        if self._cart.discount_taxable_last:
            # Discount reaches taxable lines only once non-taxable lines are used up.
            if taxable + discount > raw:
                overlap = self.currency(taxable + discount - raw)
                return self.currency(max(taxable - overlap, ZERO))
            return taxable
        return self.currency(max(taxable - discount, ZERO))

    def discounted_taxable_item_total(self) -> Decimal:
        return self._discounted_taxable_base(
            self.taxable_item_total(),
            self._pre_tax_discount_for(DiscountTarget.ITEMS),
            self.item_total(),
        )

    def discounted_taxable_shipment_total(self) -> Decimal:
        return self._discounted_taxable_base(
            self.taxable_shipment_total(),
            self._pre_tax_discount_for(DiscountTarget.SHIPMENTS),
            self.shipment_total(),
        )

    def discounted_taxable_total(self) -> Decimal:
        return self.currency(
            self.discounted_taxable_item_total() + self.discounted_taxable_shipment_total()
        )

    def tax_total(self) -> Decimal:
        """Tax on the discounted taxable base; zero when tax is not included."""
        if not self._cart.include_tax:
            return self.currency(ZERO)
        tax = self.currency(self._cart.tax_rate * self.discounted_taxable_total())
        return max(tax, self.currency(ZERO))

    # ── Grand totals ──────────────────────────────────────────────────

    def total(self) -> Decimal:
        """Items + shipments + tax - discounts.

        Post-tax discounts are part of :meth:`discount_total` and are not
        subtracted a second time.
        """
        return self.currency(
            self.item_total() + self.shipment_total() + self.tax_total() - self.discount_total()
        )

    def _net(self, target: DiscountTarget, gross: Decimal, general: Decimal) -> Decimal:
        specified = self._specified_share(DiscountTiming.PRE_TAX, target) + self._specified_share(
            DiscountTiming.POST_TAX, target
        )
        return self.currency(max(gross - general - specified, ZERO))

    def discounted_item_total(self) -> Decimal:
        return self._net(DiscountTarget.ITEMS, self.item_total(), self.item_discount_total())

    def discounted_shipment_total(self) -> Decimal:
        return self._net(
            DiscountTarget.SHIPMENTS, self.shipment_total(), self.shipment_discount_total()
        )
