"""
Button dispatch contract models.

A DispatchOutcome is what every click/confirm/cancel returns: the handle's
state after the call plus whatever the UI needs to react (errors to show, a
confirmation prompt, a navigation target, a form data patch).
"""

from typing import Any

from pydantic import Field

from formflow.models.contracts.common import CamelModel, ErrorDetail
from formflow.models.enums import DispatchState


class ConfirmationPrompt(CamelModel):
    """Shown while a handle waits in the confirming state"""
    message: str
    require_reason: bool = False


class EmittedEvent(CamelModel):
    """Event emitted during a dispatch (delivery belongs to subscribers)"""
    name: str
    payload: dict[str, Any] = Field(default_factory=dict)


class DispatchOutcome(CamelModel):
    """Result of one dispatch step for a button"""
    button_id: str
    state: DispatchState
    action_type: str | None = None
    ignored: bool = Field(default=False, description="True when the call was dropped because the handle was busy")
    result: dict[str, Any] = Field(default_factory=dict)
    error: ErrorDetail | None = None
    validation_errors: dict[str, str] = Field(default_factory=dict)
    confirmation: ConfirmationPrompt | None = None
    navigate_to: str | None = None
    navigate_external: bool = False
    data_patch: dict[str, Any] = Field(default_factory=dict)
    events: list[EmittedEvent] = Field(default_factory=list)
    effect_errors: list[str] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state == DispatchState.SUCCESS


class ClickRequest(CamelModel):
    """Request model for clicking a button"""
    form_data: dict[str, Any] = Field(default_factory=dict)


class ConfirmRequest(CamelModel):
    """Request model for confirming a pending button action"""
    reason: str | None = None
