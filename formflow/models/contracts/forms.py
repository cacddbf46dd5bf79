"""
Form contract models.

The element tree is persisted exactly as the builder sends it: camelCase
keys, recursive containers, and any type-specific presentation keys
(``rows``, ``format``, ``prefix``...) kept as extra attributes so a save and
reload never loses them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from formflow.models.contracts.common import CamelModel
from formflow.models.contracts.expressions import CallbackEffect, Expression
from formflow.models.enums import (
    ButtonActionType,
    ContainerSlot,
    FieldType,
    VisibilityOperator,
)


# Container types and the single child list each one populates
CONTAINER_SLOTS: dict[FieldType, ContainerSlot] = {
    FieldType.SECTION: ContainerSlot.ELEMENTS,
    FieldType.COLUMN: ContainerSlot.COLUMNS,
    FieldType.TABS: ContainerSlot.TABS,
    FieldType.ACCORDION: ContainerSlot.ITEMS,
}

# Choice fields whose options may come from a data source binding
CHOICE_TYPES: frozenset[FieldType] = frozenset({
    FieldType.DROPDOWN,
    FieldType.COMBOBOX,
    FieldType.MULTISELECT,
    FieldType.RADIO,
    FieldType.CHECKBOX,
})


# ==================== FIELD SETTINGS ====================


class ValidationRules(CamelModel):
    """Per-field validation rules"""
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    min: int | float | None = None
    max: int | float | None = None
    error_message: str | None = None


class OptionItem(CamelModel):
    """Static option for choice fields"""
    label: str
    value: str

    @field_validator("label", "value", mode="before")
    @classmethod
    def coerce_to_text(cls, v: Any) -> Any:
        if isinstance(v, bool):
            return "true" if v else "false"
        if isinstance(v, (int, float)):
            return str(v)
        return v


class DataSourceBinding(CamelModel):
    """Reference from a field to an external data source."""
    source_id: str = Field(..., min_length=1)
    display_field: str | None = None
    value_field: str | None = None

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_shape(cls, data: Any) -> Any:
        """Normalize the older ``{"id": ..., "field": ...}`` binding."""
        if not isinstance(data, dict):
            return data
        if "sourceId" in data or "source_id" in data:
            return data
        if "id" in data:
            normalized = {"sourceId": data.get("id")}
            if data.get("field"):
                normalized["displayField"] = data["field"]
            return normalized
        return data

    @field_validator("source_id", mode="before")
    @classmethod
    def coerce_source_id(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @property
    def single_field(self) -> str | None:
        """Field used for both value and label, or None when two distinct fields are bound."""
        if self.display_field and self.value_field and self.display_field != self.value_field:
            return None
        return self.display_field or self.value_field


class VisibilityCondition(CamelModel):
    """Show an element only when a sibling value matches"""
    field: str
    operator: VisibilityOperator = VisibilityOperator.EQUALS
    value: str = ""

    @field_validator("value", mode="before")
    @classmethod
    def coerce_value(cls, v: Any) -> Any:
        if v is None:
            return ""
        if isinstance(v, bool):
            return "true" if v else "false"
        if isinstance(v, (int, float)):
            return str(v)
        return v


class TableColumn(CamelModel):
    """Column of a data table element"""
    field: str
    header: str | None = None
    id: str | None = None
    visible: bool = True
    sortable: bool = True
    editable: bool = False
    width: int | None = None


class ButtonAction(CamelModel):
    """
    What a button does when clicked.

    ``type`` is kept as text so a stored form with an unsupported action still
    loads; the dispatcher reports it as UnknownActionType at click time and
    check_tree reports it when the form is saved.
    """
    type: str = ButtonActionType.SUBMIT_FORM.value
    require_confirmation: bool = False
    require_reason: bool = False
    confirmation_message: str | None = None
    validation_rules: Expression | None = None
    on_success: list[CallbackEffect] | None = None
    on_error: list[CallbackEffect] | None = None
    navigate_to: str | None = None
    notify_users: list[str] = Field(default_factory=list)

    @field_validator("validation_rules", mode="before")
    @classmethod
    def parse_rule_text(cls, v: Any) -> Any:
        """Rule text is compiled into the expression tree when the form is loaded."""
        if v is None:
            return None
        if isinstance(v, str):
            if not v.strip():
                return None
            from formflow.core.exceptions import ExpressionError
            from formflow.services.expressions import parse_expression

            try:
                return parse_expression(v)
            except ExpressionError as e:
                raise ValueError(e.message) from e
        return v

    @field_validator("on_success", "on_error", mode="before")
    @classmethod
    def reject_code_callbacks(cls, v: Any) -> Any:
        if isinstance(v, str):
            if not v.strip():
                return None
            raise ValueError("callbacks must be a list of effects, not code")
        return v

    @field_validator("navigate_to", "confirmation_message", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def action_type(self) -> ButtonActionType | None:
        """The parsed action type, or None if it is not one of the supported actions."""
        try:
            return ButtonActionType(self.type)
        except ValueError:
            return None


# ==================== ELEMENT TREE ====================


class ColumnSlot(CamelModel):
    """One column of a column container"""
    id: str
    elements: list[FormElement] = Field(default_factory=list)


class TabPane(CamelModel):
    """One tab of a tabs container"""
    id: str
    label: str = ""
    elements: list[FormElement] = Field(default_factory=list)


class AccordionItem(CamelModel):
    """One panel of an accordion container"""
    id: str
    label: str = ""
    expanded: bool = False
    elements: list[FormElement] = Field(default_factory=list)


class FormElement(CamelModel):
    """
    One node (field or container) of a form's layout tree.

    Containers populate exactly one child list depending on their type
    (section -> elements, column -> columns, tabs -> tabs, accordion -> items)
    and carry no ``name``. Leaf elements have no child lists.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str = Field(..., min_length=1)
    type: FieldType
    label: str = ""
    name: str | None = None
    placeholder: str | None = None
    help_text: str | None = None
    required: bool = False
    validation: ValidationRules | None = None
    options: list[OptionItem] | None = None
    data_source: DataSourceBinding | None = None
    default_value: Any = None
    css_class: str | None = None
    visibility_condition: VisibilityCondition | None = None

    # Recursive child containers; exactly one is populated for container types
    elements: list[FormElement] | None = None
    columns: list[ColumnSlot] | None = None
    tabs: list[TabPane] | None = None
    items: list[AccordionItem] | None = None

    table_columns: list[TableColumn] | None = None
    button_action: ButtonAction | None = None

    @model_validator(mode="before")
    @classmethod
    def normalize_builder_shapes(cls, data: Any) -> Any:
        """
        Fold the builder's flat data-source keys into ``dataSource`` and move a
        data table's column definitions out of the container ``columns`` slot.
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)
        element_type = data.get("type")

        if element_type == FieldType.DATATABLE.value and "columns" in data and "tableColumns" not in data:
            data["tableColumns"] = data.pop("columns")

        flat_source = data.pop("dataSourceId", None)
        display_field = data.pop("displayField", None)
        value_field = data.pop("valueField", None)
        options_source = data.pop("optionsSource", None)
        has_binding = data.get("dataSource") or data.get("data_source")
        if flat_source and not has_binding and options_source in (None, "dataSource"):
            data["dataSource"] = {
                "sourceId": flat_source,
                "displayField": display_field,
                "valueField": value_field,
            }
        elif data.get("dataSource", "missing") is None:
            data.pop("dataSource")
        return data

    @model_validator(mode="after")
    def check_child_slots(self) -> FormElement:
        slot = CONTAINER_SLOTS.get(self.type)
        for candidate in ContainerSlot:
            if candidate is slot:
                continue
            # Data tables keep their column definitions in table_columns, not here
            if getattr(self, candidate.value):
                raise ValueError(
                    f"{self.type.value} elements cannot have child {candidate.value}"
                )
        if slot is not None:
            if getattr(self, slot.value) is None:
                object.__setattr__(self, slot.value, [])
            # Containers contribute no value, so they carry no name
            object.__setattr__(self, "name", None)
        return self

    @property
    def is_container(self) -> bool:
        return self.type in CONTAINER_SLOTS

    @property
    def container_slot(self) -> ContainerSlot | None:
        return CONTAINER_SLOTS.get(self.type)


ColumnSlot.model_rebuild()
TabPane.model_rebuild()
AccordionItem.model_rebuild()
FormElement.model_rebuild()


# ==================== FORM MODELS ====================


class FormCreate(CamelModel):
    """Request model for creating a form"""
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    application_id: str | None = None
    elements: list[FormElement] = Field(default_factory=list)
    data_source_id: str | None = None


class FormUpdate(CamelModel):
    """Request model for updating a form"""
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    application_id: str | None = None
    elements: list[FormElement] | None = None
    data_source_id: str | None = None


class FormPublic(CamelModel):
    """Form entity (response model)"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: UUID
    name: str
    description: str | None = None
    application_id: str | None = None
    elements: list[FormElement] = Field(default_factory=list)
    data_source_id: str | None = None
    is_published: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


def dump_elements(elements: list[FormElement]) -> list[dict[str, Any]]:
    """Serialize an element tree to its persisted JSON representation."""
    return [
        element.model_dump(mode="json", by_alias=True, exclude_none=True)
        for element in elements
    ]


def load_elements(data: list[dict[str, Any]] | None) -> list[FormElement]:
    """Parse the persisted JSON representation back into an element tree."""
    return [FormElement.model_validate(item) for item in (data or [])]
