"""
Render projection.

Turns a stored form into what the rendering layer draws: data-bound choice
fields get their resolved options substituted, and hidden elements and the
starting form data are computed up front.
"""

import logging
from typing import Any, Mapping

from formflow.models.contracts.common import ErrorDetail
from formflow.models.contracts.forms import CHOICE_TYPES, FormElement, FormPublic
from formflow.models.contracts.rendering import RenderedForm
from formflow.services.data_resolver import DataBoundFieldResolver
from formflow.services.element_tree import initial_form_data, iter_elements, replace
from formflow.services.visibility import hidden_element_ids

logger = logging.getLogger(__name__)


async def resolve_bound_options(
    elements: list[FormElement],
    resolver: DataBoundFieldResolver,
) -> tuple[list[FormElement], dict[str, ErrorDetail]]:
    """
    Substitute resolved options into every data-bound choice field.

    Each distinct binding is resolved once. A failed resolution leaves that
    element with no options and records the error under its id.
    """
    resolved: dict[tuple[str, str | None, str | None], Any] = {}
    errors: dict[str, ErrorDetail] = {}
    tree = elements

    bound = [
        element for element in iter_elements(elements)
        if element.type in CHOICE_TYPES and element.data_source is not None
    ]
    for element in bound:
        binding = element.data_source
        key = (binding.source_id, binding.display_field, binding.value_field)
        if key not in resolved:
            resolved[key] = await resolver.resolve_options(binding)
        result = resolved[key]
        if result.error is not None:
            errors[element.id] = result.error
        tree = replace(tree, element.id, element.model_copy(update={"options": list(result.options)}))

    return tree, errors


async def render_form(
    form: FormPublic,
    resolver: DataBoundFieldResolver,
    form_data: Mapping[str, Any] | None = None,
) -> RenderedForm:
    """Build the render-ready projection of a form for the given live data."""
    data = initial_form_data(form.elements, form_data)
    elements, option_errors = await resolve_bound_options(form.elements, resolver)
    if option_errors:
        logger.debug(f"Form {form.id} rendered with {len(option_errors)} option error(s)")
    return RenderedForm(
        form_id=form.id,
        name=form.name,
        description=form.description,
        elements=elements,
        option_errors=option_errors,
        hidden_element_ids=hidden_element_ids(form.elements, data),
        initial_data=data,
    )
