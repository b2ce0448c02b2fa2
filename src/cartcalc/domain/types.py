"""Closed value sets used across the pricing and rule layers."""

from __future__ import annotations

from enum import StrEnum


class ValueKind(StrEnum):
    """How a discount's ``value`` is interpreted."""

    FLAT = "flat"
    PERCENT = "percent"  # ratio, 0.25 is 25% off


class DiscountTarget(StrEnum):
    """Which lines a discount is applied to."""

    ITEMS = "items"
    SHIPMENTS = "shipments"
    SPECIFIED = "specified"


class DiscountTiming(StrEnum):
    """Whether a discount reduces the taxable base."""

    PRE_TAX = "pre_tax"
    POST_TAX = "post_tax"


class EntityType(StrEnum):
    """Entity kinds that can supply a value to a condition leaf."""

    ITEM = "item"
    SHIPMENT = "shipment"
    CUSTOMER = "customer"


class CompareOp(StrEnum):
    """Scalar comparisons supported by condition leaves."""

    EQUALS = "equals"
    EQUALS_STRICT = "equals_strict"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    IN_ARRAY = "in_array"
    ARRAY_INTERSECT = "array_intersect"


class TreeOp(StrEnum):
    """Boolean combinators for condition trees."""

    AND = "and"
    OR = "or"
