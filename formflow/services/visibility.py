"""
Element visibility conditions.

A condition compares the string form of another field's live value against a
fixed string. Hiding a container hides its whole subtree.
"""

import json
from typing import Any, Iterator, Mapping

from formflow.models.contracts.forms import FormElement, VisibilityCondition
from formflow.models.enums import VisibilityOperator
from formflow.services.element_tree import child_lists


def value_as_text(value: Any) -> str:
    """String form of a form value as the builder compares it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(value_as_text(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, sort_keys=True)
    return str(value)


def condition_holds(condition: VisibilityCondition, form_data: Mapping[str, Any]) -> bool:
    if not condition.field:
        return True
    live = form_data.get(condition.field)
    actual = value_as_text(live)
    expected = condition.value

    if condition.operator == VisibilityOperator.EQUALS:
        return actual == expected
    if condition.operator == VisibilityOperator.NOT_EQUALS:
        return actual != expected
    if condition.operator == VisibilityOperator.CONTAINS:
        if isinstance(live, (list, tuple)):
            return expected in [value_as_text(item) for item in live]
        return expected in actual
    if condition.operator == VisibilityOperator.STARTS_WITH:
        return actual.startswith(expected)
    if condition.operator == VisibilityOperator.ENDS_WITH:
        return actual.endswith(expected)
    return True


def is_visible(element: FormElement, form_data: Mapping[str, Any]) -> bool:
    """Whether the element's own condition (if any) holds for the live form data."""
    if element.visibility_condition is None:
        return True
    return condition_holds(element.visibility_condition, form_data)


def iter_visible(tree: list[FormElement], form_data: Mapping[str, Any]) -> Iterator[FormElement]:
    """Every visible node, depth-first; hidden containers prune their subtree."""
    for element in tree:
        if not is_visible(element, form_data):
            continue
        yield element
        for children in child_lists(element):
            yield from iter_visible(children, form_data)


def hidden_element_ids(tree: list[FormElement], form_data: Mapping[str, Any]) -> list[str]:
    """Ids of hidden nodes and of everything inside a hidden container, in document order."""
    hidden: list[str] = []

    def visit(elements: list[FormElement], parent_hidden: bool) -> None:
        for element in elements:
            element_hidden = parent_hidden or not is_visible(element, form_data)
            if element_hidden:
                hidden.append(element.id)
            for children in child_lists(element):
                visit(children, element_hidden)

    visit(tree, False)
    return hidden
