"""PricingService: cart totals through the allocation engine."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from cartcalc.domain.calculator import Calculator
from cartcalc.services.base import BaseService
from cartcalc.services.contracts import TotalsData, dump_validated
from cartcalc.services.result import ServiceResult
from cartcalc.services.telemetry import trace_span, traced


class PricingService(BaseService):
    """Price a cart snapshot."""

    @traced
    def quote(
        self,
        cart_data: Mapping[str, Any],
        *,
        breakdown: bool = False,
        without: Sequence[str] = (),
    ) -> ServiceResult:
        """Compute totals for *cart_data*.

        Args:
            cart_data: Cart in its JSON shape.
            breakdown: Include every intermediate amount in the payload.
            without: Discount ids to remove before pricing. An id that is
                not on the cart is an ``UNKNOWN_DISCOUNT`` error.
        """
        op = "totals"
        try:
            cart = self._build_cart(cart_data)
        except ValidationError as exc:
            return self._invalid_cart(op, exc)

        for discount_id in without:
            if cart.get_discount(discount_id) is None:
                return self._failure(
                    op,
                    "UNKNOWN_DISCOUNT",
                    f"No discount with id {discount_id!r} on this cart",
                    id=discount_id,
                )
            cart = cart.without_discount(discount_id)

        with trace_span("calculate") as span:
            calc = Calculator(cart)
            data: dict[str, Any] = {
                "totals": calc.totals(),
                "discounted": calc.discounted_totals(),
                "removed": list(without),
            }
            if breakdown:
                data["breakdown"] = calc.breakdown()
            if span is not None:
                span.annotate("discounts", len(cart.discounts))

        return ServiceResult(
            ok=True,
            op=op,
            data=dump_validated(TotalsData, data),
            warnings=self._reference_warnings(cart),
        )
