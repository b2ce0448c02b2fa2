"""Condition evaluation: leaves against a value, trees against a resolver.

Evaluation is pure and fail-closed: an unknown operator or a node with no
body evaluates to false before its own NOT is applied. Nothing here
raises on structural problems; the only exception is
:class:`ConditionDepthExceeded`, which guards against unbounded recursion.
"""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal
from typing import Any

from cartcalc.domain.conditions import BinaryPair, ChildList, ConditionLeaf, ConditionTree
from cartcalc.domain.errors import ConditionDepthExceeded
from cartcalc.domain.fields import FieldResolver
from cartcalc.domain.types import CompareOp, TreeOp

DEFAULT_MAX_DEPTH = 32

_SEQUENCE_TYPES = (list, tuple, set, frozenset)


# --- Value coercion ---


def split_csv(value: Any) -> list[str]:
    """Split a CSV value on ``,`` and trim each element.

    Sequences are taken as already split. Empty elements are dropped, so
    an empty string yields an empty list.

    Examples:
        >>> split_csv(" a, b ,c")
        ['a', 'b', 'c']
        >>> split_csv("")
        []
    """
    if value is None:
        return []
    if isinstance(value, _SEQUENCE_TYPES):
        parts = [str(v).strip() for v in value]
    else:
        parts = [part.strip() for part in str(value).split(",")]
    return [part for part in parts if part]


def as_float(value: Any) -> float:
    """Numeric coercion used by ordered comparisons. Non-numeric is 0.0."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return 0.0
    return 0.0


def _is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float, Decimal)):
        return True
    if isinstance(value, str):
        try:
            float(value.strip())
        except ValueError:
            return False
        return True
    return False


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value not in ("", "0")
    return bool(value)


def loose_equals(a: Any, b: Any) -> bool:
    """Equality across representations.

    ``None`` matches ``None`` and the empty string (and falsy non-strings),
    booleans compare by truthiness, numeric-looking values compare as
    numbers (``"12.5" == Decimal("12.50")``), everything else as strings.
    """
    if a is None or b is None:
        other = b if a is None else a
        if other is None:
            return True
        if isinstance(other, str):
            return other == ""
        return not _truthy(other)
    if isinstance(a, bool) or isinstance(b, bool):
        return _truthy(a) == _truthy(b)
    if _is_numeric(a) and _is_numeric(b):
        return as_float(a) == as_float(b)
    return str(a) == str(b)


def strict_equals(a: Any, b: Any) -> bool:
    """Same type and equal value."""
    return type(a) is type(b) and a == b


def _in_array(source: Any, compare: Any) -> bool:
    return any(loose_equals(source, member) for member in split_csv(compare))


def _array_intersect(source: Any, compare: Any) -> bool:
    return bool(set(split_csv(source)) & set(split_csv(compare)))


_COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    CompareOp.EQUALS: loose_equals,
    CompareOp.EQUALS_STRICT: strict_equals,
    CompareOp.GT: lambda s, c: as_float(s) > as_float(c),
    CompareOp.LT: lambda s, c: as_float(s) < as_float(c),
    CompareOp.GTE: lambda s, c: as_float(s) >= as_float(c),
    CompareOp.LTE: lambda s, c: as_float(s) <= as_float(c),
    CompareOp.IN_ARRAY: _in_array,
    CompareOp.ARRAY_INTERSECT: _array_intersect,
}


# --- Leaf ---


def evaluate_leaf(leaf: ConditionLeaf, source_value: Any) -> bool:
    """Evaluate ``source_value <leaf.compare_op> leaf.compare_value``.

    ``is_not`` inverts the raw result, including the false produced for an
    unknown operator.
    """
    comparator = _COMPARATORS.get(leaf.compare_op)
    result = comparator(source_value, leaf.compare_value) if comparator is not None else False
    return not result if leaf.is_not else result


# --- Tree ---


def evaluate(
    node: ConditionLeaf | ConditionTree,
    resolver: FieldResolver,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> bool:
    """Evaluate *node* against the entity behind *resolver*.

    List bodies short-circuit (``and`` stops at the first false child,
    ``or`` at the first true one); pair bodies use Python's ``and`` /
    ``or``, which short-circuit the same way.

    Raises:
        ConditionDepthExceeded: If trees nest deeper than *max_depth*.
    """
    return _evaluate(node, resolver, 0, max_depth)


def _evaluate(
    node: ConditionLeaf | ConditionTree,
    resolver: FieldResolver,
    depth: int,
    max_depth: int,
) -> bool:
    if isinstance(node, ConditionLeaf):
        return evaluate_leaf(node, resolver.resolve(node.source_field).value)
    if depth >= max_depth:
        raise ConditionDepthExceeded(max_depth)
    result = _combine(node, resolver, depth + 1, max_depth)
    return not result if node.is_not else result


def _combine(tree: ConditionTree, resolver: FieldResolver, depth: int, max_depth: int) -> bool:
    def check(operand: ConditionLeaf | ConditionTree) -> bool:
        return _evaluate(operand, resolver, depth, max_depth)

    body = tree.body
    if isinstance(body, ChildList):
        if tree.op == TreeOp.AND:
            return all(check(child) for child in body.children)
        if tree.op == TreeOp.OR:
            return any(check(child) for child in body.children)
        return False
    if isinstance(body, BinaryPair):
        if tree.op == TreeOp.AND:
            return check(body.left) and check(body.right)
        if tree.op == TreeOp.OR:
            return check(body.left) or check(body.right)
        return False
    return False
