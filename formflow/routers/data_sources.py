"""
Data Sources Router

Options, table rows and cell updates for data-bound fields. Provider
failures are reported inside the result body, never as 5xx responses.
"""

import logging

from fastapi import APIRouter, Query

from formflow.config import get_settings
from formflow.core.auth import CurrentActor
from formflow.core.dependencies import Resolver
from formflow.models.contracts.data_sources import (
    CellUpdateRequest,
    OptionsResult,
    RowsQuery,
    RowsResult,
    UpdateResult,
)
from formflow.models.contracts.forms import DataSourceBinding

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/data-sources", tags=["Data Sources"])


@router.get(
    "/{source_id}/options",
    response_model=OptionsResult,
    summary="Resolve options for a bound field",
)
async def get_options(
    source_id: str,
    actor: CurrentActor,
    resolver: Resolver,
    display_field: str | None = Query(default=None, alias="displayField"),
    value_field: str | None = Query(default=None, alias="valueField"),
) -> OptionsResult:
    binding = DataSourceBinding(source_id=source_id, display_field=display_field, value_field=value_field)
    return await resolver.resolve_options(binding)


@router.post(
    "/{source_id}/rows",
    response_model=RowsResult,
    summary="Search, sort and page table rows",
)
async def query_rows(
    source_id: str,
    query: RowsQuery,
    actor: CurrentActor,
    resolver: Resolver,
) -> RowsResult:
    return await resolver.resolve_table_rows(
        source_id,
        search=query.search,
        sort_field=query.sort_field,
        sort_direction=query.sort_direction,
        columns=query.columns,
        page=query.page,
        page_size=query.page_size or get_settings().table_page_size,
    )


@router.patch(
    "/{source_id}/rows/{row_index}",
    response_model=UpdateResult,
    summary="Update cells of one row",
)
async def update_row(
    source_id: str,
    row_index: int,
    request: CellUpdateRequest,
    actor: CurrentActor,
    resolver: Resolver,
) -> UpdateResult:
    result = await resolver.update_cell(source_id, row_index, request.patch)
    if not result.ok:
        logger.info(f"Row update on {source_id}[{row_index}] by {actor.id} failed")
    return result
