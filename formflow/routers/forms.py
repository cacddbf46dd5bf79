"""
Forms Router

Form definition CRUD for builders, plus the render and live validation
endpoints the form viewer uses. Unpublished forms are visible to admins only.
"""

import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, HTTPException, Query, status

from formflow.config import get_settings
from formflow.core.auth import Actor, CurrentActor, CurrentAdmin
from formflow.core.database import DbSession
from formflow.core.dependencies import Resolver, raise_http
from formflow.core.exceptions import FormDefinitionError
from formflow.models.contracts.forms import (
    FormCreate,
    FormElement,
    FormPublic,
    FormUpdate,
    dump_elements,
)
from formflow.models.contracts.rendering import RenderedForm, ValidationResult
from formflow.models.orm import Form as FormORM
from formflow.repositories.forms import FormRepository
from formflow.services.element_tree import ensure_valid_tree
from formflow.services.rendering import render_form
from formflow.services.validation import validate_form

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/forms", tags=["Forms"])


async def load_form(db: DbSession, form_id: UUID, actor: Actor) -> FormPublic:
    """
    Load a form the actor may see.

    Args:
        db: Database session
        form_id: Form UUID
        actor: Current actor

    Returns:
        FormPublic with a parsed element tree

    Raises:
        HTTPException: 404 if missing, or unpublished and the actor is not an admin
    """
    form = await FormRepository(db).get_form(form_id)
    if form is None or (not form.is_published and not actor.is_admin):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Form not found",
        )
    return FormPublic.model_validate(form)


def _checked_elements(elements: list[FormElement]) -> list[dict[str, Any]]:
    """Check tree integrity and return the persisted representation."""
    try:
        ensure_valid_tree(elements, get_settings().max_form_depth)
    except FormDefinitionError as e:
        raise_http(e)
    return dump_elements(elements)


@router.get(
    "",
    response_model=list[FormPublic],
    summary="List forms",
    description="Admins see every form; other users see published forms only",
)
async def list_forms(
    db: DbSession,
    actor: CurrentActor,
    application_id: str | None = Query(default=None, alias="applicationId"),
) -> list[FormPublic]:
    forms = await FormRepository(db).list_forms(
        published_only=not actor.is_admin,
        application_id=application_id,
    )
    return [FormPublic.model_validate(f) for f in forms]


@router.post(
    "",
    response_model=FormPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Create a form",
)
async def create_form(request: FormCreate, db: DbSession, actor: CurrentAdmin) -> FormPublic:
    elements = _checked_elements(request.elements)
    form = await FormRepository(db).add(
        FormORM(
            name=request.name,
            description=request.description,
            application_id=request.application_id,
            elements=elements,
            data_source_id=request.data_source_id,
            created_by=actor.id,
        )
    )
    logger.info(f"Created form {form.id} ({form.name}) by {actor.id}")
    return FormPublic.model_validate(form)


@router.get("/{form_id}", response_model=FormPublic, summary="Get a form")
async def get_form(form_id: UUID, db: DbSession, actor: CurrentActor) -> FormPublic:
    return await load_form(db, form_id, actor)


@router.patch("/{form_id}", response_model=FormPublic, summary="Update a form")
async def update_form(
    form_id: UUID,
    request: FormUpdate,
    db: DbSession,
    actor: CurrentAdmin,
) -> FormPublic:
    repo = FormRepository(db)
    form = await repo.get_form(form_id)
    if form is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found")

    values = request.model_dump(exclude_unset=True, exclude={"elements"})
    if request.elements is not None:
        values["elements"] = _checked_elements(request.elements)
    form = await repo.update_fields(form, values)
    logger.info(f"Updated form {form_id} by {actor.id}")
    return FormPublic.model_validate(form)


@router.delete("/{form_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a form")
async def delete_form(form_id: UUID, db: DbSession, actor: CurrentAdmin) -> None:
    repo = FormRepository(db)
    form = await repo.get_form(form_id)
    if form is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found")
    await repo.delete(form)
    logger.info(f"Deleted form {form_id} by {actor.id}")


@router.post("/{form_id}/publish", response_model=FormPublic, summary="Publish or unpublish a form")
async def publish_form(
    form_id: UUID,
    db: DbSession,
    actor: CurrentAdmin,
    published: bool = Query(default=True),
) -> FormPublic:
    repo = FormRepository(db)
    form = await repo.get_form(form_id)
    if form is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found")
    form = await repo.update_fields(form, {"is_published": published})
    logger.info(f"Form {form_id} {'published' if published else 'unpublished'} by {actor.id}")
    return FormPublic.model_validate(form)


@router.get(
    "/{form_id}/render",
    response_model=RenderedForm,
    summary="Render-ready form",
    description="Element tree with data-bound options resolved, hidden elements and initial data",
)
async def get_rendered_form(
    form_id: UUID,
    db: DbSession,
    actor: CurrentActor,
    resolver: Resolver,
) -> RenderedForm:
    form = await load_form(db, form_id, actor)
    return await render_form(form, resolver)


@router.post("/{form_id}/validate", response_model=ValidationResult, summary="Validate form data")
async def validate_form_data(
    form_id: UUID,
    db: DbSession,
    actor: CurrentActor,
    form_data: dict[str, Any] = Body(...),
) -> ValidationResult:
    form = await load_form(db, form_id, actor)
    errors = validate_form(form.elements, form_data, get_settings().default_required_message)
    return ValidationResult(valid=not errors, errors=errors)
