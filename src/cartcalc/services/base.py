"""BaseService: shared construction and error shaping for services.

Every service receives the merged :class:`CartcalcConfig`. Pricing
defaults from ``[pricing]`` fill in cart fields that the input leaves
out; fields present in the input always win.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from cartcalc.config.models import CartcalcConfig
from cartcalc.domain.entities import Cart
from cartcalc.services.result import ServiceError, ServiceResult

logger = logging.getLogger(__name__)


def validation_detail(exc: ValidationError) -> dict[str, Any]:
    """JSON-safe summary of a pydantic ``ValidationError``."""
    return {
        "errors": [
            {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
            for err in exc.errors()
        ]
    }


class BaseService:
    """Base for service-layer classes.

    Usage::

        class PricingService(BaseService):
            def quote(self, cart_data) -> ServiceResult:
                cart = self._build_cart(cart_data)
                ...
    """

    def __init__(self, config: CartcalcConfig | None = None) -> None:
        self._config = config or CartcalcConfig()

    @property
    def config(self) -> CartcalcConfig:
        return self._config

    def _build_cart(self, cart_data: Mapping[str, Any]) -> Cart:
        """Validate *cart_data* on top of the configured pricing defaults.

        Raises:
            pydantic.ValidationError: If the cart (or a discount in it) is invalid.
        """
        payload = {**self._config.pricing.cart_defaults(), **cart_data}
        return Cart.model_validate(payload)

    @staticmethod
    def _failure(op: str, code: str, message: str, **detail: Any) -> ServiceResult:
        logger.debug("%s failed: %s %s", op, code, message)
        return ServiceResult(
            ok=False,
            op=op,
            error=ServiceError(code=code, message=message, detail=detail),
        )

    def _invalid_cart(self, op: str, exc: ValidationError) -> ServiceResult:
        """INVALID_DISCOUNT when every error is under ``discounts``, else INVALID_CART."""
        detail = validation_detail(exc)
        if all(err["loc"] and err["loc"][0] == "discounts" for err in exc.errors()):
            return self._failure(op, "INVALID_DISCOUNT", "Invalid discount in cart", **detail)
        return self._failure(op, "INVALID_CART", "Invalid cart", **detail)

    @staticmethod
    def _reference_warnings(cart: Cart) -> list[str]:
        """Warn about specified discounts that reference lines not in the cart."""
        warnings: list[str] = []
        for rule in cart.discounts.values():
            if not rule.is_specified:
                continue
            for key in rule.items:
                if cart.get_item(key) is None:
                    warnings.append(f"Discount {rule.id} references missing item {key}")
            for key in sorted(rule.shipments):
                if cart.get_shipment(key) is None:
                    warnings.append(f"Discount {rule.id} references missing shipment {key}")
        return warnings
