"""
Field Types Router

The builder palette and per-type default configuration.
"""

from typing import Any

from fastapi import APIRouter, HTTPException, status

from formflow.core.auth import CurrentActor
from formflow.models.contracts.field_types import FieldTypeInfo
from formflow.services.field_registry import defaults_for, get_spec, palette

router = APIRouter(prefix="/api/field-types", tags=["Field Types"])


@router.get(
    "",
    response_model=list[FieldTypeInfo],
    summary="List field types",
    description="All palette entries with their default configuration",
)
async def list_field_types(actor: CurrentActor) -> list[FieldTypeInfo]:
    return palette()


@router.get(
    "/{field_type}/defaults",
    summary="Default element for a field type",
    description="A new element fragment with a fresh id",
)
async def get_field_type_defaults(field_type: str, actor: CurrentActor) -> dict[str, Any]:
    if get_spec(field_type) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown field type: {field_type}",
        )
    return defaults_for(field_type)
