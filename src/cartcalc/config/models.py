"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults live here, ``cartcalc.toml`` only holds
overrides. An empty file (or none at all) prices carts with two-digit
display precision, four-digit calculator precision, and no tax.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

from cartcalc.domain.money import DEFAULT_CALCULATOR_PRECISION, DEFAULT_PRECISION, to_decimal
from cartcalc.domain.rules import DEFAULT_MAX_DEPTH


class PricingConfig(BaseModel):
    """[pricing] section. Fills cart fields the input leaves out."""

    model_config = {"frozen": True}

    precision: int = Field(default=DEFAULT_PRECISION, ge=0)
    calculator_precision: int = Field(default=DEFAULT_CALCULATOR_PRECISION, ge=0)
    include_tax: bool = False
    tax_rate: Decimal = Decimal("0")
    discount_taxable_last: bool = True

    @field_validator("tax_rate", mode="before")
    @classmethod
    def _rate(cls, value: object) -> Decimal:
        return to_decimal(value)

    @model_validator(mode="after")
    def _precision_order(self) -> PricingConfig:
        if self.calculator_precision < self.precision:
            msg = "pricing.calculator_precision must be >= pricing.precision"
            raise ValueError(msg)
        return self

    def cart_defaults(self) -> dict[str, object]:
        """Cart-level fields in the shape :class:`~cartcalc.domain.entities.Cart` accepts."""
        return self.model_dump()


class RulesConfig(BaseModel):
    """[rules] section."""

    model_config = {"frozen": True}

    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, ge=1)


class CartcalcConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    pricing: PricingConfig = Field(default_factory=PricingConfig)
    rules: RulesConfig = Field(default_factory=RulesConfig)
