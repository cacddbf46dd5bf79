"""
Unit tests for rendering and the form runtime facade.
"""

from uuid import uuid4

import pytest

from formflow.core.exceptions import ElementNotFoundError
from formflow.models.contracts.forms import FormPublic
from formflow.models.enums import DispatchState
from formflow.services.button_dispatcher import DispatcherRegistry
from formflow.services.data_resolver import DataBoundFieldResolver
from formflow.services.form_runtime import FormRuntime
from formflow.services.memory_stores import InMemoryDataProvider
from formflow.services.rendering import render_form, resolve_bound_options


@pytest.fixture
def resolver():
    provider = InMemoryDataProvider({
        "depts": [
            {"dept": "HR", "deptId": 1},
            {"dept": "IT", "deptId": 2},
        ],
    })
    return DataBoundFieldResolver(provider)


@pytest.fixture
def bound_form(make_element):
    return FormPublic(
        id=uuid4(),
        name="Purchase request",
        elements=[
            make_element("text", "f_title", name="title", required=True),
            make_element(
                "dropdown", "f_dept", name="dept",
                dataSource={"sourceId": "depts", "displayField": "dept", "valueField": "deptId"},
            ),
            make_element(
                "section", "sec_more",
                visibilityCondition={"field": "dept", "value": "2"},
                elements=[{
                    "id": "f_owner",
                    "type": "combobox",
                    "name": "owner",
                    "dataSource": {"sourceId": "missing", "displayField": "name"},
                }],
            ),
            make_element("button", "btn_submit", buttonAction={"type": "submit-form"}),
            make_element("button", "btn_confirm", buttonAction={"type": "custom", "requireConfirmation": True}),
        ],
    )


@pytest.fixture
def runtime(bound_form, dispatcher, resolver):
    return FormRuntime(bound_form, dispatcher, resolver, handles=DispatcherRegistry())


class TestRendering:
    """Render projection"""

    @pytest.mark.asyncio
    async def test_bound_options_substituted(self, bound_form, resolver):
        rendered = await render_form(bound_form, resolver)

        dept = next(e for e in rendered.elements if e.id == "f_dept")
        assert [(o.value, o.label) for o in dept.options] == [("1", "HR"), ("2", "IT")]

    @pytest.mark.asyncio
    async def test_failed_binding_renders_empty_with_error(self, bound_form, resolver):
        rendered = await render_form(bound_form, resolver)

        owner = rendered.elements[2].elements[0]
        assert owner.options == []
        assert rendered.option_errors["f_owner"].kind == "ProviderError"

    @pytest.mark.asyncio
    async def test_stored_form_not_mutated(self, bound_form, resolver):
        await render_form(bound_form, resolver)

        assert bound_form.elements[1].options is None

    @pytest.mark.asyncio
    async def test_initial_data_and_hidden_ids(self, bound_form, resolver):
        rendered = await render_form(bound_form, resolver, {"dept": "1"})

        assert rendered.initial_data == {"title": "", "dept": "1", "owner": ""}
        assert rendered.hidden_element_ids == ["sec_more", "f_owner"]
        assert rendered.name == "Purchase request"

    @pytest.mark.asyncio
    async def test_shared_binding_resolved_once(self, make_element):
        calls = []

        class CountingProvider(InMemoryDataProvider):
            async def fetch(self, source_id):
                calls.append(source_id)
                return await super().fetch(source_id)

        binding = {"sourceId": "s", "displayField": "c"}
        elements = [
            make_element("dropdown", "d1", name="a", dataSource=binding),
            make_element("radio", "d2", name="b", dataSource=binding),
        ]
        resolver = DataBoundFieldResolver(CountingProvider({"s": [{"c": "x"}]}))

        tree, errors = await resolve_bound_options(elements, resolver)

        assert calls == ["s"]
        assert errors == {}
        assert [o.value for o in tree[1].options] == ["x"]


class TestFormRuntime:
    """Facade over validation and dispatch"""

    def test_validate(self, runtime):
        assert runtime.validate({"title": ""}) == {"title": "This field is required"}
        assert runtime.validate({"title": "Laptop"}) == {}

    def test_button_lookup(self, runtime):
        assert runtime.button("btn_submit").id == "btn_submit"
        with pytest.raises(ElementNotFoundError):
            runtime.button("f_title")
        with pytest.raises(ElementNotFoundError):
            runtime.button("nope")

    @pytest.mark.asyncio
    async def test_submit_blocked_by_field_errors(self, runtime, submission_store, requester):
        outcome = await runtime.click("btn_submit", {"title": ""}, requester)

        assert outcome.state == DispatchState.IDLE
        assert outcome.validation_errors == {"title": "This field is required"}
        assert outcome.error.kind == "FormValidationError"
        assert await submission_store.list_for_form(runtime.form.id) == []

    @pytest.mark.asyncio
    async def test_submit_valid_form(self, runtime, submission_store, requester):
        outcome = await runtime.click("btn_submit", {"title": "Laptop"}, requester)

        assert outcome.succeeded
        assert len(await submission_store.list_for_form(runtime.form.id)) == 1
        assert len(runtime.handles) == 0

    @pytest.mark.asyncio
    async def test_confirmation_survives_between_calls(self, runtime, requester):
        """Test that the confirming handle is kept until confirm"""
        first = await runtime.click("btn_confirm", {}, requester)
        assert first.state == DispatchState.CONFIRMING
        assert len(runtime.handles) == 1

        confirmed = await runtime.confirm("btn_confirm", requester)

        assert confirmed.succeeded
        assert len(runtime.handles) == 0

    @pytest.mark.asyncio
    async def test_cancel(self, runtime, requester):
        await runtime.click("btn_confirm", {}, requester)

        outcome = runtime.cancel("btn_confirm", requester)

        assert outcome.state == DispatchState.IDLE
        assert len(runtime.handles) == 0
