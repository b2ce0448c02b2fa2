"""Condition leaves and trees used to decide discount eligibility.

A tree node combines its operands with ``and`` / ``or`` in one of two
mutually exclusive shapes, modelled as a tagged variant on ``body``:

- ``ChildList``: an ordered, non-empty list of operands.
- ``BinaryPair``: exactly one ``left`` and one ``right`` operand.

A node with no body is malformed and evaluates to false (before its own
NOT is applied). Every operand must share the node's ``entity_type``.

INVARIANT: The entity-type check runs once, at construction. Builder
functions raise :class:`ConditionTypeMismatch`; deserialization through
pydantic surfaces the same check as a ``ValidationError``.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from cartcalc.domain.errors import ConditionTypeMismatch
from cartcalc.domain.types import CompareOp, EntityType, TreeOp


class ConditionLeaf(BaseModel):
    """One scalar comparison: ``<entity field> <compare_op> <compare_value>``.

    ``compare_op`` is kept as a plain string so configurations carrying an
    unknown operator still load; such leaves evaluate to false.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["leaf"] = "leaf"
    id: str = ""
    name: str = ""
    entity_type: EntityType
    source_field: str
    compare_op: str
    compare_value: Any = ""
    is_not: bool = False


class ChildList(BaseModel):
    """N-ary body: operands combined left to right."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["children"] = "children"
    children: tuple[ConditionNode, ...] = Field(min_length=1)


class BinaryPair(BaseModel):
    """Binary body: ``left <op> right``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["pair"] = "pair"
    left: ConditionNode
    right: ConditionNode


class ConditionTree(BaseModel):
    """Boolean combination of leaves and sub-trees."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["tree"] = "tree"
    id: str = ""
    op: str
    is_not: bool = False
    entity_type: EntityType
    body: Annotated[ChildList | BinaryPair, Field(discriminator="kind")] | None = None

    @model_validator(mode="after")
    def _operands_share_entity_type(self) -> ConditionTree:
        for operand in self.operands():
            if operand.entity_type != self.entity_type:
                raise ConditionTypeMismatch(str(self.entity_type), str(operand.entity_type))
        return self

    def operands(self) -> tuple[ConditionNode, ...]:
        """Direct operands in evaluation order (empty for a malformed node)."""
        if isinstance(self.body, ChildList):
            return self.body.children
        if isinstance(self.body, BinaryPair):
            return (self.body.left, self.body.right)
        return ()


ConditionNode = Annotated[ConditionLeaf | ConditionTree, Field(discriminator="kind")]

ChildList.model_rebuild()
BinaryPair.model_rebuild()
ConditionTree.model_rebuild()


# --- Builders ---


def leaf(
    entity_type: EntityType | str,
    source_field: str,
    compare_op: CompareOp | str,
    compare_value: Any = "",
    *,
    is_not: bool = False,
    id: str = "",
    name: str = "",
) -> ConditionLeaf:
    """Build a condition leaf."""
    return ConditionLeaf(
        id=id,
        name=name,
        entity_type=EntityType(entity_type),
        source_field=source_field,
        compare_op=str(compare_op),
        compare_value=compare_value,
        is_not=is_not,
    )


def _checked(entity_type: EntityType, operands: tuple[ConditionLeaf | ConditionTree, ...]) -> None:
    for operand in operands:
        if operand.entity_type != entity_type:
            raise ConditionTypeMismatch(str(entity_type), str(operand.entity_type))


def _list_tree(
    op: TreeOp,
    children: tuple[ConditionLeaf | ConditionTree, ...],
    entity_type: EntityType | str | None,
    is_not: bool,
    id: str,
) -> ConditionTree:
    if not children:
        msg = f"{op} tree needs at least one condition"
        raise ValueError(msg)
    resolved = EntityType(entity_type) if entity_type is not None else children[0].entity_type
    _checked(resolved, children)
    return ConditionTree(
        id=id,
        op=str(op),
        is_not=is_not,
        entity_type=resolved,
        body=ChildList(children=children),
    )


def _pair_tree(
    op: TreeOp,
    left: ConditionLeaf | ConditionTree,
    right: ConditionLeaf | ConditionTree,
    is_not: bool,
    id: str,
) -> ConditionTree:
    _checked(left.entity_type, (right,))
    return ConditionTree(
        id=id,
        op=str(op),
        is_not=is_not,
        entity_type=left.entity_type,
        body=BinaryPair(left=left, right=right),
    )


def all_of(
    *children: ConditionLeaf | ConditionTree,
    entity_type: EntityType | str | None = None,
    is_not: bool = False,
    id: str = "",
) -> ConditionTree:
    """True when every child is true.

    The tree's entity type defaults to the first child's.

    Raises:
        ConditionTypeMismatch: If a child has a different entity type.
        ValueError: If no children are given.
    """
    return _list_tree(TreeOp.AND, children, entity_type, is_not, id)


def any_of(
    *children: ConditionLeaf | ConditionTree,
    entity_type: EntityType | str | None = None,
    is_not: bool = False,
    id: str = "",
) -> ConditionTree:
    """True when at least one child is true."""
    return _list_tree(TreeOp.OR, children, entity_type, is_not, id)


def both(
    left: ConditionLeaf | ConditionTree,
    right: ConditionLeaf | ConditionTree,
    *,
    is_not: bool = False,
    id: str = "",
) -> ConditionTree:
    """Binary ``left and right``."""
    return _pair_tree(TreeOp.AND, left, right, is_not, id)


def either(
    left: ConditionLeaf | ConditionTree,
    right: ConditionLeaf | ConditionTree,
    *,
    is_not: bool = False,
    id: str = "",
) -> ConditionTree:
    """Binary ``left or right``."""
    return _pair_tree(TreeOp.OR, left, right, is_not, id)


def tree_depth(node: ConditionLeaf | ConditionTree) -> int:
    """Nesting depth of *node*; a bare leaf has depth 0."""
    if isinstance(node, ConditionLeaf):
        return 0
    return 1 + max((tree_depth(operand) for operand in node.operands()), default=0)
