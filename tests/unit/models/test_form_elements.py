"""
Contract tests for the form element tree models.

Covers parsing of the builder's persisted shape and the round-trip back to it.
"""

import pytest
from pydantic import ValidationError

from formflow.models.contracts.expressions import CompareExpr, FieldExpr, LiteralExpr, LogicalExpr
from formflow.models.contracts.forms import (
    ButtonAction,
    DataSourceBinding,
    FormElement,
    dump_elements,
    load_elements,
)
from formflow.models.enums import ButtonActionType, FieldType


class TestFormElementParsing:
    """Parsing builder JSON into FormElement"""

    def test_camel_case_keys_map_to_fields(self):
        """Test that camelCase keys populate snake_case attributes"""
        element = FormElement.model_validate({
            "id": "f1",
            "type": "text",
            "name": "title",
            "helpText": "Short title",
            "cssClass": "wide",
            "validation": {"minLength": 3, "maxLength": 5, "errorMessage": "Bad title"},
        })

        assert element.help_text == "Short title"
        assert element.css_class == "wide"
        assert element.validation.min_length == 3
        assert element.validation.max_length == 5
        assert element.validation.error_message == "Bad title"

    def test_presentation_keys_are_kept(self):
        """Test that type-specific keys survive as extra attributes"""
        element = FormElement.model_validate(
            {"id": "f1", "type": "textarea", "name": "notes", "rows": 4, "prefix": "$"}
        )

        dumped = element.model_dump(by_alias=True, exclude_none=True)
        assert dumped["rows"] == 4
        assert dumped["prefix"] == "$"

    def test_container_has_no_name(self):
        """Test that a container's name is dropped"""
        element = FormElement.model_validate(
            {"id": "s1", "type": "section", "name": "s1", "elements": []}
        )

        assert element.name is None
        assert element.is_container

    def test_container_slot_defaults_to_empty(self):
        """Test that a container without children gets an empty slot"""
        element = FormElement.model_validate({"id": "t1", "type": "tabs"})

        assert element.tabs == []

    def test_leaf_with_children_rejected(self):
        """Test that a leaf cannot carry child elements"""
        with pytest.raises(ValidationError) as exc_info:
            FormElement.model_validate({
                "id": "f1",
                "type": "text",
                "elements": [{"id": "f2", "type": "text", "name": "x"}],
            })

        assert "cannot have child elements" in str(exc_info.value)

    def test_container_with_wrong_slot_rejected(self):
        """Test that a section cannot populate the tabs slot"""
        with pytest.raises(ValidationError):
            FormElement.model_validate({
                "id": "s1",
                "type": "section",
                "tabs": [{"id": "t", "label": "T", "elements": []}],
            })

    def test_unknown_type_rejected(self):
        """Test that the type tag must be a known field type"""
        with pytest.raises(ValidationError):
            FormElement.model_validate({"id": "f1", "type": "hologram"})

    def test_datatable_columns_move_to_table_columns(self):
        """Test that a data table's column definitions are not treated as a container slot"""
        element = FormElement.model_validate({
            "id": "dt",
            "type": "datatable",
            "columns": [
                {"id": "c1", "header": "Name", "field": "name"},
                {"id": "c2", "header": "Age", "field": "age", "visible": False},
            ],
            "dataSource": None,
        })

        assert element.columns is None
        assert [c.field for c in element.table_columns] == ["name", "age"]
        assert element.table_columns[1].visible is False
        assert element.data_source is None

    def test_flat_data_source_keys_fold_into_binding(self):
        """Test that dataSourceId/displayField/valueField become a binding"""
        element = FormElement.model_validate({
            "id": "d1",
            "type": "dropdown",
            "name": "dept",
            "optionsSource": "dataSource",
            "dataSourceId": 7,
            "displayField": "dept",
            "valueField": "deptId",
        })

        assert element.data_source == DataSourceBinding(
            source_id="7", display_field="dept", value_field="deptId"
        )

    def test_static_options_ignore_flat_source(self):
        """Test that a static options source does not create a binding"""
        element = FormElement.model_validate({
            "id": "d1",
            "type": "dropdown",
            "name": "dept",
            "optionsSource": "static",
            "dataSourceId": 7,
            "options": [{"label": "A", "value": 1}],
        })

        assert element.data_source is None
        assert element.options[0].value == "1"

    def test_legacy_binding_shape(self):
        """Test that {id, field} bindings are normalized"""
        binding = DataSourceBinding.model_validate({"id": 3, "field": "city"})

        assert binding.source_id == "3"
        assert binding.display_field == "city"
        assert binding.single_field == "city"


class TestButtonAction:
    """Button action configuration"""

    def test_defaults(self):
        action = ButtonAction()

        assert action.action_type == ButtonActionType.SUBMIT_FORM
        assert action.require_confirmation is False
        assert action.validation_rules is None

    def test_rule_text_is_compiled(self):
        """Test that rule text becomes an expression tree"""
        action = ButtonAction.model_validate(
            {"type": "approve", "validationRules": "formData.amount > 100 && formData.dept === 'IT'"}
        )

        rule = action.validation_rules
        assert isinstance(rule, LogicalExpr)
        assert rule.op == "and"
        first = rule.operands[0]
        assert isinstance(first, CompareExpr)
        assert first.left == FieldExpr(name="amount")
        assert first.right == LiteralExpr(value=100)

    def test_blank_strings_become_none(self):
        """Test that the builder's empty strings mean 'not set'"""
        action = ButtonAction.model_validate({
            "validationRules": "",
            "onSuccess": "",
            "onError": "",
            "navigateTo": "  ",
        })

        assert action.validation_rules is None
        assert action.on_success is None
        assert action.on_error is None
        assert action.navigate_to is None

    def test_code_callbacks_rejected(self):
        """Test that callbacks must be declarative effects"""
        with pytest.raises(ValidationError) as exc_info:
            ButtonAction.model_validate({"onSuccess": "window.location = '/done'"})

        assert "list of effects" in str(exc_info.value)

    def test_unparseable_rule_rejected(self):
        with pytest.raises(ValidationError):
            ButtonAction.model_validate({"validationRules": "__import__('os').system('x')"})

    def test_deeply_nested_rule_rejected(self):
        """Test that a rule nested past the parser limit fails validation instead of crashing"""
        with pytest.raises(ValidationError) as exc_info:
            ButtonAction.model_validate({"type": "submit-form", "validationRules": "-" * 1500 + "1"})

        assert "validationRules" in str(exc_info.value) or "validation_rules" in str(exc_info.value)

    def test_unknown_action_type_still_loads(self):
        """Test that an unsupported type is kept for the dispatcher to report"""
        action = ButtonAction.model_validate({"type": "launch-rocket"})

        assert action.type == "launch-rocket"
        assert action.action_type is None

    def test_effects_parse(self):
        action = ButtonAction.model_validate({
            "onSuccess": [
                {"action": "set_field", "field": "status", "value": {"kind": "literal", "value": "done"}},
                {"action": "emit", "event": "audit", "payload": {"who": {"kind": "field", "name": "user"}}},
            ]
        })

        assert [effect.action for effect in action.on_success] == ["set_field", "emit"]


class TestRoundTrip:
    """Persisted representation round-trip"""

    def test_nested_tree_round_trips(self, nested_tree):
        """Test that section -> column -> section survives dump and reload"""
        dumped = dump_elements(nested_tree)
        reloaded = load_elements(dumped)

        assert dump_elements(reloaded) == dumped
        assert [e.id for e in reloaded] == ["sec_outer", "tabs1", "btn_submit"]

    def test_depth_three_structure_preserved(self, nested_tree):
        reloaded = load_elements(dump_elements(nested_tree))

        outer = reloaded[0]
        columns = outer.elements[1]
        inner = columns.columns[0].elements[0]
        assert outer.type == FieldType.SECTION
        assert columns.type == FieldType.COLUMN
        assert inner.type == FieldType.SECTION
        assert inner.elements[0].id == "f_email"
        assert outer.model_extra["description"] == "Who is asking"

    def test_button_rule_round_trips(self):
        element = FormElement.model_validate({
            "id": "b1",
            "type": "button",
            "buttonAction": {"type": "custom", "validationRules": "!empty(formData.comment)"},
        })

        reloaded = load_elements(dump_elements([element]))

        assert reloaded[0].button_action.validation_rules == element.button_action.validation_rules
        assert reloaded[0].button_action.action_type == ButtonActionType.CUSTOM
