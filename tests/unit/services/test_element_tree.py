"""
Unit tests for element tree traversal and rebuild-on-write edits.
"""

import pytest

from formflow.core.exceptions import ElementNotFoundError, FormDefinitionError
from formflow.services.element_tree import (
    check_tree,
    child_lists,
    ensure_valid_tree,
    find_by_id,
    flatten_leaves,
    get_by_id,
    initial_form_data,
    insert,
    iter_elements,
    remove,
    replace,
    value_elements,
)
from formflow.models.contracts.forms import dump_elements


class TestTraversal:
    """Walking the tree"""

    def test_flatten_leaves_document_order(self, nested_tree):
        ids = [element.id for element in flatten_leaves(nested_tree)]

        assert ids == ["f_name", "f_email", "f_amount", "f_notes", "btn_submit"]

    def test_flatten_leaves_has_no_containers(self, nested_tree):
        assert not any(element.is_container for element in flatten_leaves(nested_tree))

    def test_flatten_is_restartable(self, nested_tree):
        """Test that each call walks the tree from the start"""
        first = list(flatten_leaves(nested_tree))
        second = list(flatten_leaves(nested_tree))

        assert [e.id for e in first] == [e.id for e in second]

    def test_iter_elements_includes_containers(self, nested_tree):
        ids = [element.id for element in iter_elements(nested_tree)]

        assert ids[:3] == ["sec_outer", "f_name", "cols"]
        assert "sec_inner" in ids
        assert "tabs1" in ids

    def test_child_lists_per_slot(self, nested_tree):
        columns = find_by_id(nested_tree, "cols")

        assert len(child_lists(columns)) == 2
        assert child_lists(find_by_id(nested_tree, "f_name")) == []

    def test_find_by_id(self, nested_tree):
        assert find_by_id(nested_tree, "f_amount").name == "amount"
        assert find_by_id(nested_tree, "nope") is None

    def test_get_by_id_raises(self, nested_tree):
        with pytest.raises(ElementNotFoundError) as exc_info:
            get_by_id(nested_tree, "nope")

        assert exc_info.value.element_id == "nope"

    def test_value_elements_skip_buttons(self, nested_tree):
        names = [element.name for element in value_elements(nested_tree)]

        assert names == ["name", "email", "amount", "notes"]


class TestEdits:
    """Rebuild-on-write edits"""

    def test_replace_returns_new_tree(self, nested_tree, make_element):
        before = dump_elements(nested_tree)
        updated_email = make_element("email", "f_email", name="work_email", label="Work email")

        result = replace(nested_tree, "f_email", updated_email)

        assert find_by_id(result, "f_email").name == "work_email"
        assert find_by_id(nested_tree, "f_email").name == "email"
        assert dump_elements(nested_tree) == before

    def test_replace_reuses_untouched_subtrees(self, nested_tree, make_element):
        result = replace(nested_tree, "f_email", make_element("email", "f_email", name="e2"))

        assert result[1] is nested_tree[1]
        assert result[0] is not nested_tree[0]

    def test_replace_missing_raises(self, nested_tree, make_element):
        with pytest.raises(ElementNotFoundError):
            replace(nested_tree, "nope", make_element("text", "nope"))

    def test_remove_subtree(self, nested_tree):
        result = remove(nested_tree, "cols")

        assert find_by_id(result, "f_email") is None
        assert find_by_id(result, "f_amount") is None
        assert find_by_id(nested_tree, "f_amount") is not None

    def test_remove_missing_raises(self, nested_tree):
        with pytest.raises(ElementNotFoundError):
            remove(nested_tree, "nope")

    def test_insert_at_root(self, nested_tree, make_element):
        result = insert(nested_tree, make_element("text", "f_new", name="new"), position=0)

        assert result[0].id == "f_new"
        assert len(result) == len(nested_tree) + 1

    def test_insert_into_section(self, nested_tree, make_element):
        result = insert(nested_tree, make_element("text", "f_new", name="new"), parent_id="sec_inner")

        inner = find_by_id(result, "sec_inner")
        assert [e.id for e in inner.elements] == ["f_email", "f_new"]

    def test_insert_into_named_slot(self, nested_tree, make_element):
        result = insert(
            nested_tree,
            make_element("text", "f_new", name="new"),
            parent_id="cols",
            slot_id="col2_cols",
            position=0,
        )

        columns = find_by_id(result, "cols")
        assert [e.id for e in columns.columns[1].elements] == ["f_new", "f_amount"]

    def test_insert_duplicate_id_rejected(self, nested_tree, make_element):
        with pytest.raises(FormDefinitionError) as exc_info:
            insert(nested_tree, make_element("text", "f_amount", name="other"))

        assert exc_info.value.problems == ["Duplicate element id: f_amount"]

    def test_insert_into_leaf_rejected(self, nested_tree, make_element):
        with pytest.raises(FormDefinitionError):
            insert(nested_tree, make_element("text", "f_new"), parent_id="f_name")

    def test_insert_unknown_slot_rejected(self, nested_tree, make_element):
        with pytest.raises(FormDefinitionError):
            insert(nested_tree, make_element("text", "f_new"), parent_id="cols", slot_id="col9")

    def test_insert_unknown_parent_raises(self, nested_tree, make_element):
        with pytest.raises(ElementNotFoundError):
            insert(nested_tree, make_element("text", "f_new"), parent_id="nope")


class TestInitialFormData:
    """Starting form data"""

    def test_blank_defaults(self, nested_tree):
        assert initial_form_data(nested_tree) == {"name": "", "email": "", "amount": "", "notes": ""}

    def test_default_value_and_caller_defaults(self, make_element):
        tree = [
            make_element("toggle", "t1", name="agree", defaultValue=False),
            make_element("text", "f1", name="title", defaultValue="Untitled"),
        ]

        data = initial_form_data(tree, {"title": "Given", "extra": 1})

        assert data == {"agree": False, "title": "Given", "extra": 1}


class TestCheckTree:
    """Structural integrity checks"""

    def test_valid_tree(self, nested_tree):
        assert check_tree(nested_tree, max_depth=8) == []
        ensure_valid_tree(nested_tree, max_depth=8)

    def test_duplicate_ids(self, make_element):
        tree = [make_element("text", "f1", name="a"), make_element("text", "f1", name="b")]

        assert check_tree(tree) == ["Duplicate element id: f1"]

    def test_duplicate_names(self, make_element):
        tree = [make_element("text", "f1", name="a"), make_element("text", "f2", name="a")]

        problems = check_tree(tree)

        assert problems == ["Duplicate field name 'a' on f1 and f2"]

    def test_shared_node(self, make_element):
        """Test that the same node object cannot appear twice"""
        leaf = make_element("text", "f1", name="a")

        problems = check_tree([leaf, leaf])

        assert problems == ["Element f1 appears more than once in the tree"]

    def test_depth_limit(self, nested_tree):
        problems = check_tree(nested_tree, max_depth=3)

        assert problems == ["Element f_email is nested 4 levels deep (max 3)"]

    def test_unknown_button_action(self, button_tree):
        problems = check_tree(button_tree(type="launch-rocket"))

        assert problems == ["Button btn has unknown action type 'launch-rocket'"]

    def test_ensure_valid_tree_raises(self, make_element):
        tree = [make_element("text", "f1", name="a"), make_element("text", "f1", name="b")]

        with pytest.raises(FormDefinitionError) as exc_info:
            ensure_valid_tree(tree)

        assert exc_info.value.status_code == 422
        assert "Duplicate element id: f1" in exc_info.value.message
