"""
Field Type Registry

Static catalog of the builder palette: for every FieldType, its palette
metadata and the default configuration fragment a freshly dropped element
starts with. Fragments are returned in the persisted (camelCase)
representation so they can be merged into a stored tree as-is.
"""

import copy
import uuid
from dataclasses import dataclass, field
from typing import Any

from formflow.models.contracts.field_types import FieldTypeInfo
from formflow.models.contracts.forms import CONTAINER_SLOTS, FormElement
from formflow.models.enums import ContainerSlot, FieldCategory, FieldType


EMAIL_PATTERN = r"^[\w.-]+@([\w-]+\.)+[\w-]{2,4}$"
PHONE_PATTERN = r"^[\+]?[(]?[0-9]{3}[)]?[-\s\.]?[0-9]{3}[-\s\.]?[0-9]{4,6}$"
URL_PATTERN = (
    r"https?:\/\/(www\.)?[-a-zA-Z0-9@:%._\+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b"
    r"([-a-zA-Z0-9()@:%_\+.~#?&//=]*)"
)

DEFAULT_CONFIRMATION_MESSAGE = "Are you sure you want to submit this form?"


def _static_options() -> list[dict[str, str]]:
    return [
        {"label": "Option 1", "value": "option1"},
        {"label": "Option 2", "value": "option2"},
        {"label": "Option 3", "value": "option3"},
    ]


@dataclass(frozen=True)
class FieldTypeSpec:
    """
    Palette entry and defaults for one field type.

    ``extensions`` is merged over the base fragment; a ``validation`` key is
    merged into the base validation rather than replacing it. String values
    containing ``{id}`` are formatted with the new element's id.
    """
    type: FieldType
    category: FieldCategory
    label: str
    icon: str
    default_label: str
    holds_value: bool = True
    extensions: dict[str, Any] = field(default_factory=dict)

    @property
    def container_slot(self) -> ContainerSlot | None:
        return CONTAINER_SLOTS.get(self.type)

    @property
    def is_container(self) -> bool:
        return self.type in CONTAINER_SLOTS


_SPECS: list[FieldTypeSpec] = [
    # Basic
    FieldTypeSpec(FieldType.TEXT, FieldCategory.BASIC, "Text Field", "font", "Text Field",
                  extensions={"placeholder": "Enter text"}),
    FieldTypeSpec(FieldType.NUMBER, FieldCategory.BASIC, "Number Field", "hashtag", "Number",
                  extensions={"placeholder": "Enter number", "validation": {"min": 0, "max": 100}}),
    FieldTypeSpec(FieldType.EMAIL, FieldCategory.BASIC, "Email Field", "mail", "Email",
                  extensions={
                      "placeholder": "name@example.com",
                      "validation": {
                          "pattern": EMAIL_PATTERN,
                          "errorMessage": "Please enter a valid email address",
                      },
                  }),
    FieldTypeSpec(FieldType.PASSWORD, FieldCategory.BASIC, "Password Field", "key", "Password",
                  extensions={
                      "placeholder": "••••••••",
                      "validation": {
                          "minLength": 8,
                          "errorMessage": "Password must be at least 8 characters",
                      },
                  }),
    FieldTypeSpec(FieldType.PHONE, FieldCategory.BASIC, "Phone Number", "phone", "Phone Number",
                  extensions={
                      "placeholder": "(123) 456-7890",
                      "validation": {
                          "pattern": PHONE_PATTERN,
                          "errorMessage": "Please enter a valid phone number",
                      },
                  }),
    FieldTypeSpec(FieldType.URL, FieldCategory.BASIC, "URL Field", "link", "URL",
                  extensions={
                      "placeholder": "https://example.com",
                      "validation": {
                          "pattern": URL_PATTERN,
                          "errorMessage": "Please enter a valid URL",
                      },
                  }),
    FieldTypeSpec(FieldType.DATE, FieldCategory.BASIC, "Date Picker", "calendar", "Date",
                  extensions={"format": "yyyy-MM-dd"}),
    FieldTypeSpec(FieldType.TIME, FieldCategory.BASIC, "Time Picker", "clock", "Time",
                  extensions={"format": "HH:mm"}),
    FieldTypeSpec(FieldType.DATETIME, FieldCategory.BASIC, "Date & Time", "calendar-clock", "Date & Time",
                  extensions={"format": "yyyy-MM-dd HH:mm"}),
    FieldTypeSpec(FieldType.TEXTAREA, FieldCategory.BASIC, "Text Area", "align-left", "Text Area",
                  extensions={"placeholder": "Enter text here", "rows": 4}),
    FieldTypeSpec(FieldType.RICHTEXT, FieldCategory.BASIC, "Rich Text Editor", "text", "Rich Text",
                  extensions={
                      "defaultValue": "",
                      "toolbar": ["bold", "italic", "underline", "link", "bulletList", "numberedList"],
                  }),
    FieldTypeSpec(FieldType.CURRENCY, FieldCategory.BASIC, "Currency Field", "dollar-sign", "Currency",
                  extensions={"placeholder": "0.00", "prefix": "$", "precision": 2, "validation": {"min": 0}}),
    FieldTypeSpec(FieldType.PERCENTAGE, FieldCategory.BASIC, "Percentage Field", "percent", "Percentage",
                  extensions={"placeholder": "0", "suffix": "%", "validation": {"min": 0, "max": 100}}),
    # Options
    FieldTypeSpec(FieldType.DROPDOWN, FieldCategory.OPTION, "Dropdown", "chevron-down-square", "Select Option",
                  extensions={"placeholder": "Select an option", "options": _static_options()}),
    FieldTypeSpec(FieldType.COMBOBOX, FieldCategory.OPTION, "Combo Box", "list-filter", "Combo Box",
                  extensions={
                      "placeholder": "Search or select...",
                      "allowCustomValue": True,
                      "options": _static_options(),
                  }),
    FieldTypeSpec(FieldType.MULTISELECT, FieldCategory.OPTION, "Multi-Select", "list-checks", "Multi-Select",
                  extensions={"placeholder": "Select options", "options": _static_options()}),
    FieldTypeSpec(FieldType.RADIO, FieldCategory.OPTION, "Radio Buttons", "circle-dot", "Radio Buttons",
                  extensions={"options": _static_options(), "layout": "vertical"}),
    FieldTypeSpec(FieldType.CHECKBOX, FieldCategory.OPTION, "Checkboxes", "check-square", "Checkboxes",
                  extensions={"options": _static_options()}),
    FieldTypeSpec(FieldType.TOGGLE, FieldCategory.OPTION, "Toggle Switch", "toggle-left", "Toggle",
                  extensions={"defaultValue": False, "onLabel": "On", "offLabel": "Off"}),
    FieldTypeSpec(FieldType.RATING, FieldCategory.OPTION, "Rating", "star", "Rating",
                  extensions={"maxRating": 5, "defaultValue": 0, "icon": "star"}),
    FieldTypeSpec(FieldType.SLIDER, FieldCategory.OPTION, "Slider", "sliders", "Slider",
                  extensions={"min": 0, "max": 100, "step": 1, "defaultValue": 50, "showMarkers": True}),
    # Layout
    FieldTypeSpec(FieldType.SECTION, FieldCategory.LAYOUT, "Section", "square", "Section", holds_value=False,
                  extensions={"elements": [], "collapsed": False, "description": "Section description"}),
    FieldTypeSpec(FieldType.COLUMN, FieldCategory.LAYOUT, "Columns", "columns", "Columns", holds_value=False,
                  extensions={
                      "columns": [
                          {"id": "col1_{id}", "elements": []},
                          {"id": "col2_{id}", "elements": []},
                      ],
                      "gapSize": "medium",
                  }),
    FieldTypeSpec(FieldType.TABS, FieldCategory.LAYOUT, "Tabs", "tab", "Tabs", holds_value=False,
                  extensions={
                      "tabs": [
                          {"id": "tab1_{id}", "label": "Tab 1", "elements": []},
                          {"id": "tab2_{id}", "label": "Tab 2", "elements": []},
                      ],
                  }),
    FieldTypeSpec(FieldType.ACCORDION, FieldCategory.LAYOUT, "Accordion", "panels-top-left", "Accordion",
                  holds_value=False,
                  extensions={
                      "items": [
                          {"id": "item1_{id}", "label": "Item 1", "elements": [], "expanded": True},
                          {"id": "item2_{id}", "label": "Item 2", "elements": [], "expanded": False},
                      ],
                  }),
    FieldTypeSpec(FieldType.DIVIDER, FieldCategory.LAYOUT, "Divider", "minus", "Divider", holds_value=False,
                  extensions={"thickness": 1, "style": "solid"}),
    FieldTypeSpec(FieldType.SPACER, FieldCategory.LAYOUT, "Spacer", "square-dot", "Spacer", holds_value=False,
                  extensions={"height": 24}),
    # Advanced
    FieldTypeSpec(FieldType.FILE, FieldCategory.ADVANCED, "File Upload", "file-up", "File Upload",
                  extensions={"multiple": False, "acceptedFileTypes": ".pdf,.doc,.docx,.txt", "maxFileSize": 5}),
    FieldTypeSpec(FieldType.IMAGE, FieldCategory.ADVANCED, "Image Upload", "image", "Image Upload",
                  extensions={
                      "multiple": False,
                      "acceptedFileTypes": ".jpg,.jpeg,.png,.gif",
                      "maxFileSize": 2,
                      "resize": True,
                  }),
    FieldTypeSpec(FieldType.SIGNATURE, FieldCategory.ADVANCED, "Signature Pad", "pencil", "Signature",
                  extensions={"penColor": "#000000", "backgroundColor": "#ffffff", "clearable": True}),
    FieldTypeSpec(FieldType.BARCODE, FieldCategory.ADVANCED, "Barcode Scanner", "barcode", "Barcode Scanner",
                  extensions={"format": "qr", "value": "", "size": "medium"}),
    FieldTypeSpec(FieldType.DATATABLE, FieldCategory.ADVANCED, "Data Table", "table", "Data Table",
                  holds_value=False,
                  extensions={
                      "tableColumns": [
                          {"id": "col1_{id}", "header": "Column 1", "field": "field1"},
                          {"id": "col2_{id}", "header": "Column 2", "field": "field2"},
                      ],
                      "pagination": True,
                      "pageSize": 10,
                  }),
    FieldTypeSpec(FieldType.CHART, FieldCategory.ADVANCED, "Chart", "bar-chart", "Chart", holds_value=False,
                  extensions={"chartType": "bar", "xAxis": "", "yAxis": "", "height": 300}),
    FieldTypeSpec(FieldType.GALLERY, FieldCategory.ADVANCED, "Gallery", "layout-grid", "Gallery", holds_value=False,
                  extensions={"template": {"elements": []}, "layout": "grid", "itemsPerRow": 3}),
    FieldTypeSpec(FieldType.BUTTON, FieldCategory.ADVANCED, "Button", "square-button", "Submit", holds_value=False,
                  extensions={
                      "buttonType": "submit",
                      "buttonVariant": "primary",
                      "size": "medium",
                      "buttonAction": {
                          "type": "submit-form",
                          "requireConfirmation": False,
                          "requireReason": False,
                          "confirmationMessage": DEFAULT_CONFIRMATION_MESSAGE,
                          "notifyUsers": [],
                      },
                  }),
    FieldTypeSpec(FieldType.HTML, FieldCategory.ADVANCED, "HTML Viewer", "code", "HTML Content", holds_value=False,
                  extensions={"content": "<p>Custom HTML content</p>"}),
]

FIELD_TYPES: dict[FieldType, FieldTypeSpec] = {spec.type: spec for spec in _SPECS}


def get_spec(field_type: FieldType | str) -> FieldTypeSpec | None:
    """Look up a field type's spec; unknown tags return None."""
    try:
        return FIELD_TYPES.get(FieldType(field_type))
    except ValueError:
        return None


def holds_value(field_type: FieldType | str) -> bool:
    """Whether elements of this type contribute a value to submission data."""
    spec = get_spec(field_type)
    return spec.holds_value if spec is not None else False


def new_element_id() -> str:
    return f"field_{uuid.uuid4().hex[:12]}"


def _format_ids(value: Any, element_id: str) -> Any:
    if isinstance(value, str):
        return value.replace("{id}", element_id)
    if isinstance(value, list):
        return [_format_ids(item, element_id) for item in value]
    if isinstance(value, dict):
        return {key: _format_ids(item, element_id) for key, item in value.items()}
    return value


def defaults_for(field_type: FieldType | str, element_id: str | None = None) -> dict[str, Any]:
    """
    Default configuration fragment for a field type.

    Pure lookup: an unknown type yields the base fragment with no
    type-specific extensions. The fragment is a fresh copy the caller may
    mutate freely.

    Args:
        field_type: Field type tag
        element_id: Id for the new element (minted when omitted)

    Returns:
        Persisted-representation dict for the element
    """
    element_id = element_id or new_element_id()
    spec = get_spec(field_type)
    type_value = spec.type.value if spec else str(field_type)

    fragment: dict[str, Any] = {
        "id": element_id,
        "type": type_value,
        "label": spec.default_label if spec else "Field",
        "name": element_id,
        "placeholder": "",
        "required": False,
        "helpText": "",
        "validation": {"minLength": 0, "maxLength": 100, "errorMessage": ""},
    }
    if spec is None:
        return fragment

    extensions = _format_ids(copy.deepcopy(spec.extensions), element_id)
    validation = extensions.pop("validation", None)
    if validation:
        fragment["validation"] = {**fragment["validation"], **validation}
    fragment.update(extensions)
    if spec.is_container:
        fragment.pop("name", None)
    return fragment


def new_element(field_type: FieldType | str, element_id: str | None = None) -> FormElement:
    """Create a parsed element with a fresh id and the type's defaults."""
    return FormElement.model_validate(defaults_for(field_type, element_id))


def palette() -> list[FieldTypeInfo]:
    """All field types in palette order, with their default fragments."""
    return [
        FieldTypeInfo(
            type=spec.type,
            category=spec.category,
            label=spec.label,
            icon=spec.icon,
            is_container=spec.is_container,
            container_slot=spec.container_slot,
            holds_value=spec.holds_value,
            defaults=defaults_for(spec.type, element_id="{id}"),
        )
        for spec in _SPECS
    ]
