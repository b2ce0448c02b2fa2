"""Eligibility: decide which candidate discounts a cart qualifies for.

A candidate without a condition always applies. Otherwise its tree is
evaluated against every cart entity of the tree's entity type and the
discount applies when any of them satisfies it. A customer tree on a
cart with no customer does not apply.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from cartcalc.domain.calculator import Calculator
from cartcalc.domain.entities import Cart, Customer, DiscountRule, LineItem, ShipmentLine
from cartcalc.domain.errors import ConditionDepthExceeded
from cartcalc.domain.fields import resolver_for
from cartcalc.domain.rules import DEFAULT_MAX_DEPTH, evaluate
from cartcalc.domain.types import EntityType
from cartcalc.services.base import BaseService, validation_detail
from cartcalc.services.contracts import EligibilityData, dump_validated
from cartcalc.services.result import ServiceResult
from cartcalc.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)


def entities_for(
    cart: Cart, entity_type: EntityType
) -> list[tuple[str, LineItem | ShipmentLine | Customer]]:
    """Cart entities of *entity_type*, keyed the way the cart keys them."""
    if entity_type is EntityType.ITEM:
        return list(cart.items.items())
    if entity_type is EntityType.SHIPMENT:
        return list(cart.shipments.items())
    if cart.customer is None:
        return []
    return [(cart.customer.id, cart.customer)]


def matching_entities(
    cart: Cart, rule: DiscountRule, *, max_depth: int = DEFAULT_MAX_DEPTH
) -> list[str] | None:
    """Keys of entities satisfying *rule*'s condition.

    Returns None for an unconditional rule.

    Raises:
        ConditionDepthExceeded: If the condition nests deeper than *max_depth*.
    """
    if rule.condition is None:
        return None
    return [
        key
        for key, entity in entities_for(cart, rule.condition.entity_type)
        if evaluate(rule.condition, resolver_for(entity), max_depth=max_depth)
    ]


def discount_applies(cart: Cart, rule: DiscountRule, *, max_depth: int = DEFAULT_MAX_DEPTH) -> bool:
    """True when *cart* qualifies for *rule*."""
    matched = matching_entities(cart, rule, max_depth=max_depth)
    return matched is None or bool(matched)


class EligibilityService(BaseService):
    """Select auto-applied discounts and reprice the cart with them."""

    @traced
    def apply(
        self,
        cart_data: Mapping[str, Any],
        candidates: Iterable[Mapping[str, Any]],
    ) -> ServiceResult:
        """Evaluate *candidates* against the cart and price the result.

        Discounts already on the cart are kept; applied candidates are
        added (replacing any cart discount with the same id).
        """
        op = "eligible"
        try:
            cart = self._build_cart(cart_data)
        except ValidationError as exc:
            return self._invalid_cart(op, exc)

        rules: list[DiscountRule] = []
        for index, candidate in enumerate(candidates):
            try:
                rules.append(DiscountRule.model_validate(candidate))
            except ValidationError as exc:
                return self._failure(
                    op,
                    "INVALID_DISCOUNT",
                    f"Invalid discount at index {index}",
                    index=index,
                    **validation_detail(exc),
                )

        max_depth = self._config.rules.max_depth
        decisions: list[dict[str, Any]] = []
        repriced = cart
        with trace_span("evaluate") as span:
            for rule in rules:
                try:
                    matched = matching_entities(cart, rule, max_depth=max_depth)
                except ConditionDepthExceeded as exc:
                    return self._failure(
                        op, "CONDITION_DEPTH", str(exc), id=rule.id, max_depth=exc.max_depth
                    )
                decision = _decision(cart, rule, matched)
                logger.debug("Discount %s: %s", rule.id, decision["reason"])
                decisions.append(decision)
                if decision["applied"]:
                    repriced = repriced.with_discount(rule)
            if span is not None:
                span.annotate("candidates", len(rules))

        data = {
            "applied": [d["id"] for d in decisions if d["applied"]],
            "rejected": [d["id"] for d in decisions if not d["applied"]],
            "decisions": decisions,
            "totals": Calculator(repriced).totals(),
        }
        return ServiceResult(
            ok=True,
            op=op,
            data=dump_validated(EligibilityData, data),
            warnings=self._reference_warnings(repriced),
        )


def _decision(cart: Cart, rule: DiscountRule, matched: list[str] | None) -> dict[str, Any]:
    if matched is None:
        return {"id": rule.id, "applied": True, "reason": "unconditional"}
    assert rule.condition is not None
    entity_type = rule.condition.entity_type
    if matched:
        reason = "matched"
    elif entities_for(cart, entity_type):
        reason = "no_match"
    else:
        reason = "no_entities"
    return {
        "id": rule.id,
        "applied": bool(matched),
        "reason": reason,
        "entity_type": str(entity_type),
        "matched": matched,
    }
