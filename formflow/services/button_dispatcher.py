"""
Button Action Dispatcher

Drives one button click through

    idle -> validating -> [confirming] -> executing -> success | failed

and performs the button's configured action against the submission and
approval stores. Each button has a ButtonHandle holding its state and an
in-flight flag; a click that arrives while the handle is busy is ignored, so
a double click creates exactly one submission.

Every failure (rule, store, provider, configuration) becomes a failed
DispatchOutcome; nothing raised by a collaborator escapes a dispatch.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping
from uuid import UUID

from formflow.core.auth import Actor
from formflow.core.exceptions import (
    ActionValidationFailed,
    FormflowError,
    MissingSubmissionError,
    NotFoundError,
    StoreError,
    UnknownActionType,
)
from formflow.models.contracts.common import ErrorDetail
from formflow.models.contracts.dispatch import ConfirmationPrompt, DispatchOutcome, EmittedEvent
from formflow.models.contracts.forms import ButtonAction, FormElement
from formflow.models.enums import ApprovalStatus, ButtonActionType, DispatchState
from formflow.services.approvals import ApprovalWorkflow
from formflow.services.events import BUTTON_NOTIFY, EventSink, publish
from formflow.services.expressions import EffectResult, evaluate_rule, run_effects
from formflow.services.field_registry import DEFAULT_CONFIRMATION_MESSAGE
from formflow.services.protocol import SubmissionStore
from formflow.services.store_calls import call_store
from formflow.services.submissions import record_submission

logger = logging.getLogger(__name__)


@dataclass
class _PendingConfirmation:
    form_data: dict[str, Any]
    actor: Actor


@dataclass
class ButtonHandle:
    """
    Observable per-button dispatch state.

    ``busy`` is set synchronously before the first await of a dispatch, so
    a second click scheduled while the first is executing sees it.
    """
    form_id: UUID
    button: FormElement
    state: DispatchState = DispatchState.IDLE
    busy: bool = False
    _pending: _PendingConfirmation | None = field(default=None, repr=False)

    @property
    def button_id(self) -> str:
        return self.button.id

    @property
    def action(self) -> ButtonAction:
        return self.button.button_action or ButtonAction()

    @property
    def is_idle(self) -> bool:
        return self.state == DispatchState.IDLE and not self.busy

    def _move(self, state: DispatchState) -> None:
        logger.debug(f"Button {self.button_id}: {self.state.value} -> {state.value}")
        self.state = state


class ButtonDispatcher:
    """
    Executes button actions for one form.

    Stores are per-request collaborators; handles outlive requests (see
    DispatcherRegistry), so a handle never keeps a reference to them.
    """

    def __init__(
        self,
        submissions: SubmissionStore,
        approvals: ApprovalWorkflow,
        events: EventSink | None = None,
    ):
        self.submissions = submissions
        self.approvals = approvals
        self.events = events

    # ==================== HANDLE PROTOCOL ====================

    async def click(self, handle: ButtonHandle, form_data: Mapping[str, Any], actor: Actor) -> DispatchOutcome:
        """Start a dispatch. Ignored while the handle is executing or awaiting confirmation."""
        if handle.busy or handle.state != DispatchState.IDLE:
            logger.debug(f"Ignoring click on busy button {handle.button_id} ({handle.state.value})")
            return self._ignored(handle)

        handle.busy = True
        snapshot = dict(form_data)
        try:
            handle._move(DispatchState.VALIDATING)
            action = handle.action
            if action.action_type is None:
                return await self._fail(handle, UnknownActionType(action.type), snapshot, actor)

            if not evaluate_rule(action.validation_rules, snapshot):
                error = ActionValidationFailed("Button validation rules were not satisfied")
                return await self._fail(handle, error, snapshot, actor)

            if action.require_confirmation:
                handle._pending = _PendingConfirmation(form_data=snapshot, actor=actor)
                handle._move(DispatchState.CONFIRMING)
                return self._outcome(handle, confirmation=self._prompt(action))

            return await self._execute(handle, snapshot, actor, reason=None)
        finally:
            handle.busy = False

    async def confirm(self, handle: ButtonHandle, reason: str | None = None) -> DispatchOutcome:
        """
        Confirm a dispatch waiting in the confirming state.

        A missing required reason keeps the handle confirming and reports
        ActionValidationFailed.
        """
        if handle.busy or handle.state != DispatchState.CONFIRMING or handle._pending is None:
            return self._ignored(handle)

        action = handle.action
        reason = reason.strip() if isinstance(reason, str) else None
        if action.require_reason and not reason:
            error = ActionValidationFailed("A reason is required to continue")
            return self._outcome(
                handle,
                error=ErrorDetail.from_error(error),
                confirmation=self._prompt(action),
            )

        pending = handle._pending
        handle._pending = None
        handle.busy = True
        try:
            return await self._execute(handle, pending.form_data, pending.actor, reason=reason or None)
        finally:
            handle.busy = False

    def cancel(self, handle: ButtonHandle) -> DispatchOutcome:
        """Abandon a confirmation and return the handle to idle."""
        if handle.state != DispatchState.CONFIRMING or handle.busy:
            return self._ignored(handle)
        handle._pending = None
        handle._move(DispatchState.IDLE)
        return self._outcome(handle)

    # ==================== EXECUTION ====================

    async def _execute(
        self,
        handle: ButtonHandle,
        form_data: dict[str, Any],
        actor: Actor,
        reason: str | None,
    ) -> DispatchOutcome:
        handle._move(DispatchState.EXECUTING)
        try:
            result = await self.perform(handle.form_id, handle.action, form_data, actor, reason)
        except FormflowError as e:
            return await self._fail(handle, e, form_data, actor)
        except Exception as e:
            logger.exception(f"Unexpected failure executing button {handle.button_id}")
            return await self._fail(handle, StoreError(str(e)), form_data, actor)
        return await self._succeed(handle, result, form_data, actor)

    async def perform(
        self,
        form_id: UUID,
        action: ButtonAction,
        form_data: Mapping[str, Any],
        actor: Actor,
        reason: str | None = None,
    ) -> dict[str, Any]:
        """
        Perform the store call for an action type.

        Returns:
            Ids of whatever was created or resolved, keyed for the UI

        Raises:
            UnknownActionType: For a type outside the supported set
            MissingSubmissionError: approve/reject without a resolvable submission
            FormflowError: Whatever the stores or workflow raise
        """
        action_type = action.action_type
        if action_type is None:
            raise UnknownActionType(action.type)

        if action_type == ButtonActionType.SUBMIT_FORM:
            submission = await record_submission(self.submissions, self.events, form_id, form_data, actor.id)
            return {"submissionId": str(submission.id)}

        if action_type == ButtonActionType.REQUEST_APPROVAL:
            submission_id = _submission_id_from(form_data)
            if submission_id is not None:
                existing = await call_store("get submission", self.submissions.get(submission_id))
                if existing is None:
                    raise NotFoundError(f"Submission {submission_id} not found")
                if existing.form_id != form_id:
                    raise MissingSubmissionError(f"Submission {submission_id} belongs to another form")
            else:
                submission = await record_submission(self.submissions, self.events, form_id, form_data, actor.id)
                submission_id = submission.id
            request = await self.approvals.request(submission_id, actor)
            return {"submissionId": str(submission_id), "approvalRequestId": str(request.id)}

        if action_type in (ButtonActionType.APPROVE, ButtonActionType.REJECT):
            submission_id = _submission_id_from(form_data)
            if submission_id is None:
                raise MissingSubmissionError("No submission id was provided for this approval action")
            existing = await call_store("get submission", self.submissions.get(submission_id))
            if existing is None:
                raise MissingSubmissionError(f"Submission {submission_id} does not exist")
            status = ApprovalStatus.APPROVED if action_type == ButtonActionType.APPROVE else ApprovalStatus.REJECTED
            resolved = await self.approvals.resolve_for_submission(
                submission_id,
                status,
                actor,
                reason=reason if action.require_reason else None,
            )
            return {
                "submissionId": str(submission_id),
                "approvalRequestId": str(resolved.id),
                "status": resolved.status.value,
            }

        # custom: no built-in store call, onSuccess/onError do the work
        return {}

    # ==================== OUTCOMES ====================

    async def _succeed(
        self,
        handle: ButtonHandle,
        result: dict[str, Any],
        form_data: dict[str, Any],
        actor: Actor,
    ) -> DispatchOutcome:
        handle._move(DispatchState.SUCCESS)
        action = handle.action
        scope_data = {**form_data, **result}
        effects = run_effects(action.on_success, scope_data)
        events = await self._publish_effects(effects)

        if action.notify_users:
            payload = {
                "recipients": list(action.notify_users),
                "formId": str(handle.form_id),
                "buttonId": handle.button_id,
                "actorId": actor.id,
                **result,
            }
            await publish(self.events, BUTTON_NOTIFY, payload)
            events.append(EmittedEvent(name=BUTTON_NOTIFY, payload=payload))

        outcome = self._outcome(
            handle,
            result=result,
            navigate_to=action.navigate_to,
            data_patch=effects.data_patch,
            events=events,
            effect_errors=effects.errors,
        )
        handle._move(DispatchState.IDLE)
        return outcome

    async def _fail(
        self,
        handle: ButtonHandle,
        error: FormflowError,
        form_data: dict[str, Any],
        actor: Actor,
    ) -> DispatchOutcome:
        handle._move(DispatchState.FAILED)
        handle._pending = None
        logger.info(f"Button {handle.button_id} failed for {actor.id}: {error.message}")
        effects = run_effects(handle.action.on_error, form_data, error=error.message)
        events = await self._publish_effects(effects)
        outcome = self._outcome(
            handle,
            error=ErrorDetail.from_error(error),
            data_patch=effects.data_patch,
            events=events,
            effect_errors=effects.errors,
        )
        handle._move(DispatchState.IDLE)
        return outcome

    async def _publish_effects(self, effects: EffectResult) -> list[EmittedEvent]:
        emitted = []
        for name, payload in effects.events:
            await publish(self.events, name, payload)
            emitted.append(EmittedEvent(name=name, payload=payload))
        return emitted

    def _prompt(self, action: ButtonAction) -> ConfirmationPrompt:
        return ConfirmationPrompt(
            message=action.confirmation_message or DEFAULT_CONFIRMATION_MESSAGE,
            require_reason=action.require_reason,
        )

    def _ignored(self, handle: ButtonHandle) -> DispatchOutcome:
        confirmation = None
        if handle.state == DispatchState.CONFIRMING:
            confirmation = self._prompt(handle.action)
        return self._outcome(handle, ignored=True, confirmation=confirmation)

    def _outcome(self, handle: ButtonHandle, **kwargs: Any) -> DispatchOutcome:
        navigate_to = kwargs.pop("navigate_to", None)
        return DispatchOutcome(
            button_id=handle.button_id,
            state=handle.state,
            action_type=handle.action.type,
            navigate_to=navigate_to,
            navigate_external=bool(navigate_to and navigate_to.startswith(("http://", "https://"))),
            **kwargs,
        )


def _submission_id_from(form_data: Mapping[str, Any]) -> UUID | None:
    """
    The submissionId carried in form data, or None when absent or blank.

    Raises:
        MissingSubmissionError: If a value is present but is not a UUID
    """
    raw = form_data.get("submissionId")
    if raw is None or raw == "":
        return None
    if isinstance(raw, UUID):
        return raw
    try:
        return UUID(str(raw))
    except ValueError:
        raise MissingSubmissionError(f"Invalid submission id: {raw!r}")


# ==================== HANDLE REGISTRY ====================


class DispatcherRegistry:
    """
    Keeps button handles alive across requests.

    Handles are keyed by (actor id, form id, button id). Only non-idle
    handles (executing or awaiting confirmation) are kept: a handle that
    returns to idle is evicted by release().
    """

    def __init__(self) -> None:
        self._handles: dict[tuple[str, UUID, str], ButtonHandle] = {}

    def __len__(self) -> int:
        return len(self._handles)

    def handle_for(self, actor: Actor, form_id: UUID, button: FormElement) -> ButtonHandle:
        key = (actor.id, form_id, button.id)
        handle = self._handles.get(key)
        if handle is None or (handle.is_idle and handle.button != button):
            handle = ButtonHandle(form_id=form_id, button=button)
            self._handles[key] = handle
        return handle

    def release(self, actor: Actor, form_id: UUID, button_id: str) -> None:
        key = (actor.id, form_id, button_id)
        handle = self._handles.get(key)
        if handle is not None and handle.is_idle:
            del self._handles[key]

    def prune(self) -> int:
        """Drop every idle handle; returns how many were removed."""
        idle = [key for key, handle in self._handles.items() if handle.is_idle]
        for key in idle:
            del self._handles[key]
        return len(idle)
