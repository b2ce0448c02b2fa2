"""Report models produced by the calculator.

Values are fixed-point strings at the cart's display precision, with no
thousands separators.
"""

from __future__ import annotations

from pydantic import BaseModel


class TotalsReport(BaseModel):
    """Gross totals with the discount and tax shown separately."""

    model_config = {"frozen": True}

    items: str
    shipments: str
    discounts: str
    tax: str
    total: str


class DiscountedTotalsReport(BaseModel):
    """Totals with each line group shown net of its discounts."""

    model_config = {"frozen": True}

    items: str
    shipments: str
    tax: str
    total: str
