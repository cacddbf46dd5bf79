"""
Unit tests for visibility conditions.
"""

import pytest

from formflow.models.contracts.forms import VisibilityCondition
from formflow.services.visibility import (
    condition_holds,
    hidden_element_ids,
    iter_visible,
    value_as_text,
)


class TestValueAsText:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, ""),
            (True, "true"),
            (False, "false"),
            (3.0, "3"),
            (2.5, "2.5"),
            (7, "7"),
            (["a", "b"], "a,b"),
            ("IT", "IT"),
        ],
    )
    def test_conversion(self, value, expected):
        assert value_as_text(value) == expected


class TestConditionHolds:
    """Operators compare string forms"""

    def test_equals(self):
        condition = VisibilityCondition(field="dept", operator="equals", value="IT")

        assert condition_holds(condition, {"dept": "IT"}) is True
        assert condition_holds(condition, {"dept": "HR"}) is False

    def test_boolean_value(self):
        condition = VisibilityCondition.model_validate({"field": "agree", "value": True})

        assert condition_holds(condition, {"agree": True}) is True
        assert condition_holds(condition, {"agree": False}) is False

    def test_not_equals_on_missing(self):
        condition = VisibilityCondition(field="dept", operator="not_equals", value="IT")

        assert condition_holds(condition, {}) is True

    def test_contains_list_and_text(self):
        condition = VisibilityCondition(field="tags", operator="contains", value="urgent")

        assert condition_holds(condition, {"tags": ["urgent", "new"]}) is True
        assert condition_holds(condition, {"tags": ["urgently"]}) is False
        assert condition_holds(condition, {"tags": "very urgent"}) is True

    def test_starts_and_ends_with(self):
        starts = VisibilityCondition(field="code", operator="starts_with", value="AB")
        ends = VisibilityCondition(field="code", operator="ends_with", value="99")

        assert condition_holds(starts, {"code": "AB-99"}) is True
        assert condition_holds(ends, {"code": "AB-99"}) is True
        assert condition_holds(ends, {"code": "AB-98"}) is False

    def test_empty_field_always_holds(self):
        assert condition_holds(VisibilityCondition(field="", value="x"), {}) is True


class TestHiddenSubtrees:
    """Hidden containers hide everything inside them"""

    @pytest.fixture
    def tree(self, make_element):
        return [
            make_element("dropdown", "f_kind", name="kind"),
            make_element(
                "section",
                "sec_extra",
                visibilityCondition={"field": "kind", "value": "other"},
                elements=[{"id": "f_detail", "type": "text", "name": "detail", "required": True}],
            ),
        ]

    def test_iter_visible_prunes(self, tree):
        ids = [element.id for element in iter_visible(tree, {"kind": "basic"})]

        assert ids == ["f_kind"]

    def test_iter_visible_when_shown(self, tree):
        ids = [element.id for element in iter_visible(tree, {"kind": "other"})]

        assert ids == ["f_kind", "sec_extra", "f_detail"]

    def test_hidden_ids_include_descendants(self, tree):
        assert hidden_element_ids(tree, {"kind": "basic"}) == ["sec_extra", "f_detail"]
        assert hidden_element_ids(tree, {"kind": "other"}) == []
