"""Tests for value accessors and visibility evaluation."""

from datetime import date

import pytest

from forms.lib.errors import ConfigError
from forms.lib.values import as_bool, as_date, as_number, is_empty, matches_kind, values_equal
from forms.lib.visibility import evaluate_condition, is_visible, visible_fields
from forms.models import Condition, ConditionOperator, FieldDescriptor, FieldKind


class TestValuesEqual:
    """Exact equality without cross-kind coercion."""

    def test_same_type_equal(self):
        assert values_equal("a", "a")
        assert values_equal([1, 2], [1, 2])

    def test_no_coercion_between_kinds(self):
        assert not values_equal(1, 1.0)
        assert not values_equal(1, True)
        assert not values_equal("1", 1)

    def test_none_only_equals_none(self):
        assert values_equal(None, None)
        assert not values_equal(None, "")

    def test_broken_eq_compares_unequal(self):
        class Weird:
            def __eq__(self, other):
                raise RuntimeError("no")

        assert not values_equal(Weird(), Weird())


class TestAccessors:
    def test_as_number_rejects_bool_and_text(self):
        assert as_number(3) == 3
        assert as_number(2.5) == 2.5
        assert as_number(True) is None
        assert as_number("3") is None

    def test_as_bool_and_date(self):
        assert as_bool(False) is False
        assert as_bool(0) is None
        assert as_date(date(2024, 1, 1)) == date(2024, 1, 1)
        assert as_date("2024-01-01") is None

    @pytest.mark.parametrize("value", [None, "", [], {}, (), set()])
    def test_is_empty(self, value):
        assert is_empty(value)

    @pytest.mark.parametrize("value", [0, False, " ", [None]])
    def test_is_not_empty(self, value):
        assert not is_empty(value)

    def test_matches_kind(self):
        assert matches_kind(FieldKind.TEXT, "x")
        assert not matches_kind(FieldKind.TEXT, 1)
        assert matches_kind(FieldKind.BOOLEAN, None)
        assert not matches_kind(FieldKind.BOOLEAN, 1)
        assert matches_kind(FieldKind.CUSTOM, object())


class TestEvaluateCondition:
    """Each operator against matching and mismatched kinds."""

    def test_equals_and_not_equals(self):
        values = {"plan": "pro"}
        assert evaluate_condition(Condition.equals("plan", "pro"), values)
        assert not evaluate_condition(Condition.not_equals("plan", "pro"), values)
        assert evaluate_condition(Condition.not_equals("plan", "free"), values)

    def test_equals_is_exact(self):
        assert not evaluate_condition(Condition.equals("count", 1), {"count": True})
        assert not evaluate_condition(Condition.equals("count", "1"), {"count": 1})

    def test_contains_requires_text(self):
        assert evaluate_condition(Condition.contains("notes", "urgent"), {"notes": "very urgent"})
        assert not evaluate_condition(Condition.contains("notes", "1"), {"notes": 123})
        assert not evaluate_condition(Condition.contains("notes", "x"), {"notes": None})

    def test_contains_stringifies_expected(self):
        assert evaluate_condition(Condition.contains("code", 42), {"code": "A42B"})

    def test_numeric_comparisons(self):
        assert evaluate_condition(Condition.greater_than("age", 17), {"age": 18})
        assert not evaluate_condition(Condition.greater_than("age", 18), {"age": 18})
        assert evaluate_condition(Condition.less_than("age", 18.5), {"age": 18})

    def test_numeric_comparison_with_non_numbers_is_false(self):
        assert not evaluate_condition(Condition.greater_than("age", 1), {"age": "30"})
        assert not evaluate_condition(Condition.greater_than("age", 1), {"age": True})
        assert not evaluate_condition(Condition.less_than("age", 1), {"age": None})

    def test_empty_checks(self):
        assert evaluate_condition(Condition.is_empty("tags"), {"tags": []})
        assert evaluate_condition(Condition.is_empty("tags"), {})
        assert evaluate_condition(Condition.is_not_empty("tags"), {"tags": ["a"]})

    def test_operator_aliases(self):
        assert Condition("x", "notEquals", 1).operator == ConditionOperator.NOT_EQUALS
        assert Condition("x", "IS_EMPTY").operator == ConditionOperator.IS_EMPTY

    def test_unknown_operator_is_config_error(self):
        with pytest.raises(ConfigError, match="Invalid condition operator"):
            Condition("x", "between", 1)


class TestIsVisible:
    def test_no_conditions_is_visible(self):
        assert is_visible(FieldDescriptor("name"), {})

    def test_all_conditions_must_hold(self):
        field = FieldDescriptor(
            "discount",
            visible_when=[
                Condition.equals("member", True),
                Condition.greater_than("orders", 5),
            ],
        )
        assert is_visible(field, {"member": True, "orders": 6})
        assert not is_visible(field, {"member": True, "orders": 5})
        assert not is_visible(field, {"member": False, "orders": 10})

    def test_visible_fields_filters_in_order(self):
        fields = [
            FieldDescriptor("a"),
            FieldDescriptor("b", visible_when=[Condition.equals("a", "show")]),
            FieldDescriptor("c"),
        ]
        assert [f.name for f in visible_fields(fields, {"a": "hide"})] == ["a", "c"]
        assert [f.name for f in visible_fields(fields, {"a": "show"})] == ["a", "b", "c"]
