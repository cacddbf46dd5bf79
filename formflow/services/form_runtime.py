"""
Form Runtime

Facade the rendering layer talks to for one published form: render it,
validate live data, and drive its buttons.
"""

import logging
from typing import Any, Mapping

from formflow.config import Settings, get_settings
from formflow.core.auth import Actor
from formflow.core.exceptions import ElementNotFoundError, FormValidationError
from formflow.models.contracts.common import ErrorDetail
from formflow.models.contracts.dispatch import DispatchOutcome
from formflow.models.contracts.forms import FormElement, FormPublic
from formflow.models.contracts.rendering import RenderedForm
from formflow.models.enums import ButtonActionType, FieldType
from formflow.services.button_dispatcher import ButtonDispatcher, ButtonHandle, DispatcherRegistry
from formflow.services.data_resolver import DataBoundFieldResolver
from formflow.services.element_tree import get_by_id
from formflow.services.rendering import render_form
from formflow.services.validation import validate_form

logger = logging.getLogger(__name__)

# Actions that create a submission and so require the form to be valid first
_VALIDATED_ACTIONS = {ButtonActionType.SUBMIT_FORM, ButtonActionType.REQUEST_APPROVAL}


class FormRuntime:
    def __init__(
        self,
        form: FormPublic,
        dispatcher: ButtonDispatcher,
        resolver: DataBoundFieldResolver,
        handles: DispatcherRegistry | None = None,
        settings: Settings | None = None,
    ):
        self.form = form
        self.dispatcher = dispatcher
        self.resolver = resolver
        self.handles = handles or DispatcherRegistry()
        self.settings = settings or get_settings()

    async def render(self, form_data: Mapping[str, Any] | None = None) -> RenderedForm:
        return await render_form(self.form, self.resolver, form_data)

    def validate(self, form_data: Mapping[str, Any]) -> dict[str, str]:
        """Live error map; empty when the form is valid."""
        return validate_form(self.form.elements, form_data, self.settings.default_required_message)

    def button(self, button_id: str) -> FormElement:
        """
        Raises:
            ElementNotFoundError: If the id is missing or not a button
        """
        element = get_by_id(self.form.elements, button_id)
        if element.type != FieldType.BUTTON:
            raise ElementNotFoundError(button_id)
        return element

    def handle(self, button_id: str, actor: Actor) -> ButtonHandle:
        return self.handles.handle_for(actor, self.form.id, self.button(button_id))

    async def click(self, button_id: str, form_data: Mapping[str, Any], actor: Actor) -> DispatchOutcome:
        """
        Click a button.

        Submit and request-approval buttons validate the whole form first; a
        form with errors returns them without touching the handle's state.
        """
        handle = self.handle(button_id, actor)
        try:
            if handle.is_idle and handle.action.action_type in _VALIDATED_ACTIONS:
                errors = self.validate(form_data)
                if errors:
                    logger.debug(f"Button {button_id} blocked by {len(errors)} field error(s)")
                    return DispatchOutcome(
                        button_id=button_id,
                        state=handle.state,
                        action_type=handle.action.type,
                        error=ErrorDetail.from_error(FormValidationError(errors)),
                        validation_errors=errors,
                    )
            return await self.dispatcher.click(handle, form_data, actor)
        finally:
            self.handles.release(actor, self.form.id, button_id)

    async def confirm(self, button_id: str, actor: Actor, reason: str | None = None) -> DispatchOutcome:
        handle = self.handle(button_id, actor)
        try:
            return await self.dispatcher.confirm(handle, reason)
        finally:
            self.handles.release(actor, self.form.id, button_id)

    def cancel(self, button_id: str, actor: Actor) -> DispatchOutcome:
        handle = self.handle(button_id, actor)
        try:
            return self.dispatcher.cancel(handle)
        finally:
            self.handles.release(actor, self.form.id, button_id)
