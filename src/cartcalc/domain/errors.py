"""Exception types raised by the domain layer.

Most problems in this package degrade to a conservative default instead
of raising (fail-closed rule evaluation, skipped references, amounts
clamped at zero). The exceptions below cover the remaining cases, where
the input is a misconfiguration rather than a cart that does not qualify.
"""

from __future__ import annotations


class CartcalcError(Exception):
    """Base class for cartcalc errors."""


class ConditionTypeMismatch(CartcalcError, ValueError):
    """A condition was attached to a tree of a different entity type."""

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(f"Condition entity type {actual!r} does not match tree type {expected!r}")
        self.expected = expected
        self.actual = actual


class ConditionDepthExceeded(CartcalcError):
    """A condition tree nests deeper than the configured limit."""

    def __init__(self, max_depth: int) -> None:
        super().__init__(f"Condition tree exceeds maximum depth of {max_depth}")
        self.max_depth = max_depth
