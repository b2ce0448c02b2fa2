"""Discount classification by timing and target.

Pure functions, no ordering or priority: discounts in the same bucket are
summed by the calculator, never sequenced.

Lines referenced by any specified discount are *claimed*. Claimed lines
are left out of the general discountable pools so a specified discount and
a general discount never discount the same line twice.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from cartcalc.domain.entities import DiscountRule
from cartcalc.domain.types import DiscountTarget, DiscountTiming


@dataclass(frozen=True)
class TargetBuckets:
    """Discounts of one timing, split by target."""

    items: tuple[DiscountRule, ...] = ()
    shipments: tuple[DiscountRule, ...] = ()
    specified: tuple[DiscountRule, ...] = ()

    def for_target(self, target: DiscountTarget) -> tuple[DiscountRule, ...]:
        if target is DiscountTarget.ITEMS:
            return self.items
        if target is DiscountTarget.SHIPMENTS:
            return self.shipments
        return self.specified


@dataclass(frozen=True)
class DiscountBuckets:
    """Full partition of a cart's discounts."""

    pre_tax: TargetBuckets
    post_tax: TargetBuckets
    claimed_items: frozenset[str]
    claimed_shipments: frozenset[str]

    def for_timing(self, timing: DiscountTiming) -> TargetBuckets:
        return self.pre_tax if timing is DiscountTiming.PRE_TAX else self.post_tax

    def specified(self) -> tuple[DiscountRule, ...]:
        """All specified discounts, pre-tax first."""
        return self.pre_tax.specified + self.post_tax.specified


def _split(discounts: list[DiscountRule]) -> TargetBuckets:
    return TargetBuckets(
        items=tuple(d for d in discounts if d.target is DiscountTarget.ITEMS),
        shipments=tuple(d for d in discounts if d.target is DiscountTarget.SHIPMENTS),
        specified=tuple(d for d in discounts if d.target is DiscountTarget.SPECIFIED),
    )


def classify(discounts: Iterable[DiscountRule]) -> DiscountBuckets:
    """Partition *discounts* and collect the keys claimed by specified ones."""
    rules = list(discounts)
    pre = [d for d in rules if d.timing is DiscountTiming.PRE_TAX]
    post = [d for d in rules if d.timing is DiscountTiming.POST_TAX]

    claimed_items: set[str] = set()
    claimed_shipments: set[str] = set()
    for rule in rules:
        if rule.is_specified:
            claimed_items.update(rule.items)
            claimed_shipments.update(rule.shipments)

    return DiscountBuckets(
        pre_tax=_split(pre),
        post_tax=_split(post),
        claimed_items=frozenset(claimed_items),
        claimed_shipments=frozenset(claimed_shipments),
    )
