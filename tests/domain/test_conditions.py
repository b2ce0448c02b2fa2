"""Tests for condition leaves, trees, and builders."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from cartcalc.domain.conditions import (
    BinaryPair,
    ChildList,
    ConditionLeaf,
    ConditionTree,
    all_of,
    any_of,
    both,
    either,
    leaf,
    tree_depth,
)
from cartcalc.domain.errors import CartcalcError, ConditionTypeMismatch
from cartcalc.domain.types import CompareOp, EntityType


class TestLeafBuilder:
    def test_fields(self) -> None:
        node = leaf(EntityType.ITEM, "price", CompareOp.GT, 50, is_not=True, id="c1")
        assert isinstance(node, ConditionLeaf)
        assert node.entity_type is EntityType.ITEM
        assert node.compare_op == "gt"
        assert node.compare_value == 50
        assert node.is_not is True

    def test_unknown_operator_still_builds(self) -> None:
        assert leaf("item", "price", "between", "1,2").compare_op == "between"


class TestTreeBuilders:
    def test_all_of_uses_first_child_type(self) -> None:
        tree = all_of(leaf("shipment", "vendor", "equals", "ups"))
        assert tree.entity_type is EntityType.SHIPMENT
        assert tree.op == "and"
        assert isinstance(tree.body, ChildList)

    def test_any_of(self) -> None:
        tree = any_of(leaf("item", "sku", "equals", "a"), leaf("item", "sku", "equals", "b"))
        assert tree.op == "or"
        assert len(tree.operands()) == 2

    def test_pair_builders(self) -> None:
        left = leaf("customer", "group", "equals", "vip")
        right = leaf("customer", "billing_state", "equals", "NY")
        assert isinstance(both(left, right).body, BinaryPair)
        assert either(left, right).op == "or"

    def test_empty_list_rejected(self) -> None:
        with pytest.raises(ValueError, match="at least one"):
            all_of()

    def test_mismatched_child_rejected(self) -> None:
        with pytest.raises(ConditionTypeMismatch) as exc_info:
            all_of(leaf("item", "price", "gt", 1), leaf("shipment", "price", "gt", 1))
        assert exc_info.value.expected == "item"
        assert exc_info.value.actual == "shipment"
        assert isinstance(exc_info.value, CartcalcError)

    def test_explicit_type_mismatch(self) -> None:
        with pytest.raises(ConditionTypeMismatch):
            any_of(leaf("item", "price", "gt", 1), entity_type="customer")

    def test_pair_mismatch(self) -> None:
        with pytest.raises(ConditionTypeMismatch):
            both(leaf("item", "price", "gt", 1), leaf("customer", "group", "equals", "x"))


class TestValidation:
    def test_mismatch_surfaces_as_validation_error(self) -> None:
        data = {
            "kind": "tree",
            "op": "and",
            "entity_type": "item",
            "body": {
                "kind": "children",
                "children": [
                    {
                        "kind": "leaf",
                        "entity_type": "customer",
                        "source_field": "group",
                        "compare_op": "equals",
                    }
                ],
            },
        }
        with pytest.raises(ValidationError, match="does not match"):
            ConditionTree.model_validate(data)

    def test_empty_child_list_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ChildList(children=())

    def test_tree_without_body_is_allowed(self) -> None:
        tree = ConditionTree(op="and", entity_type="item")
        assert tree.body is None
        assert tree.operands() == ()

    def test_nested_discriminated_parse(self) -> None:
        original = all_of(
            leaf("item", "price", "gt", 10),
            both(leaf("item", "qty", "gte", 2), leaf("item", "sku", "equals", "X")),
        )
        parsed = ConditionTree.model_validate(original.model_dump(mode="json"))
        assert parsed == original


class TestTreeDepth:
    def test_leaf_is_zero(self) -> None:
        assert tree_depth(leaf("item", "price", "gt", 1)) == 0

    def test_nested(self) -> None:
        inner = all_of(leaf("item", "price", "gt", 1))
        assert tree_depth(any_of(inner, leaf("item", "qty", "gt", 1))) == 2
