"""
Data-bound field contract models (options, table rows, cell updates).
"""

from typing import Any

from pydantic import Field

from formflow.models.contracts.common import CamelModel, ErrorDetail
from formflow.models.contracts.forms import OptionItem, TableColumn
from formflow.models.enums import SortDirection


class OptionsResult(CamelModel):
    """Resolved options for a data-bound choice field"""
    source_id: str
    options: list[OptionItem] = Field(default_factory=list)
    error: ErrorDetail | None = None


class RowsQuery(CamelModel):
    """Request model for filtered/sorted/paged table rows"""
    columns: list[TableColumn] | None = None
    search: str | None = None
    sort_field: str | None = None
    sort_direction: SortDirection = SortDirection.ASC
    page: int = Field(default=1, ge=1)
    page_size: int | None = Field(default=None, ge=1, le=1000)


class IndexedRow(CamelModel):
    """A row tagged with its index in the source's row list"""
    index: int
    values: dict[str, Any] = Field(default_factory=dict)


class RowsResult(CamelModel):
    """One page of table rows after search and sort"""
    source_id: str
    rows: list[IndexedRow] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int | None = None
    error: ErrorDetail | None = None


class CellUpdateRequest(CamelModel):
    """Request model for editing cells of one source row"""
    patch: dict[str, Any] = Field(..., min_length=1)


class UpdateResult(CamelModel):
    """Outcome of a cell update pass-through"""
    source_id: str
    row_index: int
    ok: bool
    error: ErrorDetail | None = None
