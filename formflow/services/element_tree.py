"""
Form Element Tree

Operations over a form's recursive element tree. Trees are treated as
immutable values: every edit returns a new root list in which the edited node
and all of its ancestors are rebuilt, and untouched subtrees are reused.
"""

import logging
from typing import Any, Callable, Iterator, Mapping

from formflow.core.exceptions import ElementNotFoundError, FormDefinitionError
from formflow.models.contracts.forms import FormElement
from formflow.models.enums import ContainerSlot, FieldType
from formflow.services.field_registry import holds_value

logger = logging.getLogger(__name__)

Tree = list[FormElement]

# Builds the list that takes the place of a matched node (empty to remove it)
_Rewrite = Callable[[FormElement], list[FormElement]]


def child_lists(element: FormElement) -> list[list[FormElement]]:
    """
    The element's child lists in document order.

    A section has one list; columns, tabs and accordion items each contribute
    one list per slot. Leaves have none.
    """
    slot = element.container_slot
    if slot is None:
        return []
    if slot is ContainerSlot.ELEMENTS:
        return [element.elements or []]
    return [holder.elements for holder in getattr(element, slot.value) or []]


def iter_elements(tree: Tree) -> Iterator[FormElement]:
    """Yield every node (containers included), depth-first in document order."""
    for element in tree:
        yield element
        for children in child_lists(element):
            yield from iter_elements(children)


def flatten_leaves(tree: Tree) -> Iterator[FormElement]:
    """
    Yield every non-container element, depth-first in document order.

    Each call returns a fresh iterator, so the walk can be restarted.
    """
    for element in iter_elements(tree):
        if not element.is_container:
            yield element


def find_by_id(tree: Tree, element_id: str) -> FormElement | None:
    """Depth-first search for an element by id."""
    for element in iter_elements(tree):
        if element.id == element_id:
            return element
    return None


def get_by_id(tree: Tree, element_id: str) -> FormElement:
    """Like find_by_id, but raises ElementNotFoundError when absent."""
    element = find_by_id(tree, element_id)
    if element is None:
        raise ElementNotFoundError(element_id)
    return element


# ==================== REBUILD-ON-WRITE ====================


def _rewrite_list(elements: list[FormElement], target_id: str, rewrite: _Rewrite) -> list[FormElement] | None:
    """Return a rebuilt copy of ``elements`` with the target rewritten, or None if not found."""
    for index, element in enumerate(elements):
        if element.id == target_id:
            return elements[:index] + rewrite(element) + elements[index + 1:]
        updated = _rewrite_children(element, target_id, rewrite)
        if updated is not None:
            return elements[:index] + [updated] + elements[index + 1:]
    return None


def _rewrite_children(element: FormElement, target_id: str, rewrite: _Rewrite) -> FormElement | None:
    slot = element.container_slot
    if slot is None:
        return None

    if slot is ContainerSlot.ELEMENTS:
        children = _rewrite_list(element.elements or [], target_id, rewrite)
        if children is None:
            return None
        return element.model_copy(update={"elements": children})

    holders = getattr(element, slot.value) or []
    for index, holder in enumerate(holders):
        children = _rewrite_list(holder.elements, target_id, rewrite)
        if children is not None:
            new_holder = holder.model_copy(update={"elements": children})
            return element.model_copy(
                update={slot.value: holders[:index] + [new_holder] + holders[index + 1:]}
            )
    return None


def replace(tree: Tree, element_id: str, new_element: FormElement) -> Tree:
    """
    Return a new tree with the node at ``element_id`` replaced.

    Raises:
        ElementNotFoundError: If no node has that id
    """
    result = _rewrite_list(tree, element_id, lambda _old: [new_element])
    if result is None:
        raise ElementNotFoundError(element_id)
    return result


def remove(tree: Tree, element_id: str) -> Tree:
    """
    Return a new tree without the node at ``element_id`` (and its subtree).

    Raises:
        ElementNotFoundError: If no node has that id
    """
    result = _rewrite_list(tree, element_id, lambda _old: [])
    if result is None:
        raise ElementNotFoundError(element_id)
    return result


def _insert_at(elements: list[FormElement], element: FormElement, position: int | None) -> list[FormElement]:
    if position is None or position >= len(elements):
        return [*elements, element]
    position = max(position, 0)
    return [*elements[:position], element, *elements[position:]]


def insert(
    tree: Tree,
    element: FormElement,
    parent_id: str | None = None,
    slot_id: str | None = None,
    position: int | None = None,
) -> Tree:
    """
    Return a new tree with ``element`` added.

    Args:
        tree: Root element list
        element: Element to add; its id must not already be in the tree
        parent_id: Container to add into (None for the root list)
        slot_id: Column/tab/accordion item id for multi-slot containers
            (defaults to the first slot)
        position: Index within the target list (None appends)

    Raises:
        ElementNotFoundError: If the parent does not exist
        FormDefinitionError: If the id is taken, the parent is not a
            container, or the slot does not exist
    """
    existing = {node.id for node in iter_elements(tree)}
    clashes = existing & {node.id for node in iter_elements([element])}
    if clashes:
        raise FormDefinitionError([f"Duplicate element id: {i}" for i in sorted(clashes)])

    if parent_id is None:
        return _insert_at(tree, element, position)

    def add_child(parent: FormElement) -> list[FormElement]:
        slot = parent.container_slot
        if slot is None:
            raise FormDefinitionError([f"Element {parent.id} ({parent.type.value}) cannot contain children"])
        if slot is ContainerSlot.ELEMENTS:
            return [parent.model_copy(update={"elements": _insert_at(parent.elements or [], element, position)})]

        holders = getattr(parent, slot.value) or []
        if not holders:
            raise FormDefinitionError([f"Element {parent.id} has no {slot.value} to insert into"])
        target = 0
        if slot_id is not None:
            matches = [i for i, holder in enumerate(holders) if holder.id == slot_id]
            if not matches:
                raise FormDefinitionError([f"Element {parent.id} has no slot {slot_id}"])
            target = matches[0]
        holder = holders[target]
        new_holder = holder.model_copy(update={"elements": _insert_at(holder.elements, element, position)})
        return [parent.model_copy(update={slot.value: holders[:target] + [new_holder] + holders[target + 1:]})]

    result = _rewrite_list(tree, parent_id, add_child)
    if result is None:
        raise ElementNotFoundError(parent_id)
    return result


# ==================== FORM DATA ====================


def value_elements(tree: Tree) -> Iterator[FormElement]:
    """Leaves that contribute a ``name -> value`` entry to submission data."""
    for element in flatten_leaves(tree):
        if element.name and holds_value(element.type):
            yield element


def initial_form_data(tree: Tree, defaults: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """
    Starting form data for a fresh render.

    Every value-holding leaf gets the caller's default, else the element's
    defaultValue, else "". Caller defaults for names not in the tree are kept.
    """
    defaults = dict(defaults or {})
    data: dict[str, Any] = {}
    for element in value_elements(tree):
        if element.name in defaults:
            data[element.name] = defaults[element.name]
        elif element.default_value is not None:
            data[element.name] = element.default_value
        else:
            data[element.name] = ""
    return {**data, **defaults}


# ==================== INTEGRITY ====================


def check_tree(tree: Tree, max_depth: int | None = None) -> list[str]:
    """
    Check structural invariants of a tree and return the problems found.

    Reports duplicate ids, duplicate leaf names, nodes that appear more than
    once, buttons with an unsupported action type, and nesting deeper than
    ``max_depth`` (top-level elements are depth 1). Wrong child slots are
    already rejected when an element is parsed.
    """
    problems: list[str] = []
    seen_ids: set[str] = set()
    seen_names: dict[str, str] = {}
    seen_nodes: set[int] = set()

    def visit(elements: list[FormElement], depth: int) -> None:
        for element in elements:
            if id(element) in seen_nodes:
                problems.append(f"Element {element.id} appears more than once in the tree")
                continue
            seen_nodes.add(id(element))

            if element.id in seen_ids:
                problems.append(f"Duplicate element id: {element.id}")
            seen_ids.add(element.id)

            if max_depth is not None and depth > max_depth:
                problems.append(f"Element {element.id} is nested {depth} levels deep (max {max_depth})")

            if not element.is_container and element.name:
                owner = seen_names.get(element.name)
                if owner is not None:
                    problems.append(f"Duplicate field name '{element.name}' on {owner} and {element.id}")
                else:
                    seen_names[element.name] = element.id

            if element.type == FieldType.BUTTON:
                action = element.button_action
                if action is not None and action.action_type is None:
                    problems.append(f"Button {element.id} has unknown action type {action.type!r}")

            for children in child_lists(element):
                visit(children, depth + 1)

    visit(tree, 1)
    return problems


def ensure_valid_tree(tree: Tree, max_depth: int | None = None) -> None:
    """
    Raises:
        FormDefinitionError: If check_tree reports any problem
    """
    problems = check_tree(tree, max_depth)
    if problems:
        logger.info(f"Rejected form definition with {len(problems)} problem(s)")
        raise FormDefinitionError(problems)
