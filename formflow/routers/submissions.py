"""
Submissions Router

Direct submissions and the button dispatch protocol for a form. Button
endpoints return the handle's state after each call so the UI can disable or
spin the control; a click that arrives while the button is busy comes back
with ``ignored: true``.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from formflow.config import get_settings
from formflow.core.auth import CurrentActor, CurrentAdmin
from formflow.core.database import DbSession
from formflow.core.dependencies import DispatchHandles, Dispatcher, Events, Resolver, raise_http
from formflow.core.exceptions import FormflowError, FormValidationError
from formflow.models.contracts.dispatch import ClickRequest, ConfirmRequest, DispatchOutcome
from formflow.models.contracts.submissions import FormSubmissionPublic, SubmissionCreate
from formflow.repositories.submissions import SubmissionRepository
from formflow.routers.forms import load_form
from formflow.services.form_runtime import FormRuntime
from formflow.services.submissions import record_submission
from formflow.services.validation import validate_form

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/forms", tags=["Submissions"])


@router.get(
    "/{form_id}/submissions",
    response_model=list[FormSubmissionPublic],
    summary="List submissions for a form",
)
async def list_submissions(form_id: UUID, db: DbSession, actor: CurrentAdmin) -> list[FormSubmissionPublic]:
    await load_form(db, form_id, actor)
    return await SubmissionRepository(db).list_for_form(form_id)


@router.post(
    "/{form_id}/submissions",
    response_model=FormSubmissionPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Submit form data",
    description="Validates the data against the form and records one submission",
)
async def create_submission(
    form_id: UUID,
    request: SubmissionCreate,
    db: DbSession,
    actor: CurrentActor,
    events: Events,
) -> FormSubmissionPublic:
    form = await load_form(db, form_id, actor)
    errors = validate_form(form.elements, request.data, get_settings().default_required_message)
    if errors:
        raise_http(FormValidationError(errors))
    try:
        return await record_submission(SubmissionRepository(db), events, form_id, request.data, actor.id)
    except FormflowError as e:
        raise_http(e)


async def _runtime(
    form_id: UUID,
    db: DbSession,
    actor: CurrentActor,
    dispatcher: Dispatcher,
    resolver: Resolver,
    handles: DispatchHandles,
) -> FormRuntime:
    form = await load_form(db, form_id, actor)
    return FormRuntime(form, dispatcher, resolver, handles=handles, settings=get_settings())


def _button_not_found(button_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Button not found: {button_id}",
    )


@router.post(
    "/{form_id}/buttons/{button_id}/click",
    response_model=DispatchOutcome,
    summary="Click a button",
)
async def click_button(
    form_id: UUID,
    button_id: str,
    request: ClickRequest,
    db: DbSession,
    actor: CurrentActor,
    dispatcher: Dispatcher,
    resolver: Resolver,
    handles: DispatchHandles,
) -> DispatchOutcome:
    runtime = await _runtime(form_id, db, actor, dispatcher, resolver, handles)
    try:
        runtime.button(button_id)
    except FormflowError:
        raise _button_not_found(button_id)
    return await runtime.click(button_id, request.form_data, actor)


@router.post(
    "/{form_id}/buttons/{button_id}/confirm",
    response_model=DispatchOutcome,
    summary="Confirm a button action",
)
async def confirm_button(
    form_id: UUID,
    button_id: str,
    request: ConfirmRequest,
    db: DbSession,
    actor: CurrentActor,
    dispatcher: Dispatcher,
    resolver: Resolver,
    handles: DispatchHandles,
) -> DispatchOutcome:
    runtime = await _runtime(form_id, db, actor, dispatcher, resolver, handles)
    try:
        runtime.button(button_id)
    except FormflowError:
        raise _button_not_found(button_id)
    return await runtime.confirm(button_id, actor, request.reason)


@router.post(
    "/{form_id}/buttons/{button_id}/cancel",
    response_model=DispatchOutcome,
    summary="Cancel a pending confirmation",
)
async def cancel_button(
    form_id: UUID,
    button_id: str,
    db: DbSession,
    actor: CurrentActor,
    dispatcher: Dispatcher,
    resolver: Resolver,
    handles: DispatchHandles,
) -> DispatchOutcome:
    runtime = await _runtime(form_id, db, actor, dispatcher, resolver, handles)
    try:
        runtime.button(button_id)
    except FormflowError:
        raise _button_not_found(button_id)
    return runtime.cancel(button_id, actor)
