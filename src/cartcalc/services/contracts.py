"""Typed payload contracts for service results.

Payloads are validated before they leave the service layer, so a renamed
key fails in tests rather than in a consumer.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel

from cartcalc.domain.reports import DiscountedTotalsReport, TotalsReport


def dump_validated[T: BaseModel](model_cls: type[T], data: dict[str, Any]) -> dict[str, Any]:
    """Validate *data* against *model_cls* and return a normalized payload dict."""
    model = model_cls.model_validate(data)
    return model.model_dump(mode="json", exclude_none=True)


class TotalsData(BaseModel):
    """Payload contract for ``PricingService.quote``."""

    totals: TotalsReport
    discounted: DiscountedTotalsReport
    removed: list[str] = []
    breakdown: dict[str, str] | None = None


class EligibilityDecision(BaseModel):
    """Outcome for one candidate discount."""

    id: str
    applied: bool
    reason: Literal["unconditional", "matched", "no_match", "no_entities"]
    entity_type: str | None = None
    matched: list[str] = []


class EligibilityData(BaseModel):
    """Payload contract for ``EligibilityService.apply``."""

    applied: list[str]
    rejected: list[str]
    decisions: list[EligibilityDecision]
    totals: TotalsReport
