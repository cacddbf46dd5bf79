"""
Data-Bound Field Resolver

Resolves option lists and table rows for fields bound to an external data
source. Provider failures never propagate into the render path: they come
back as an empty result carrying the error.
"""

import json
import logging
from typing import Any, Callable, Iterable

from formflow.core.exceptions import FormflowError, ProviderError
from formflow.models.contracts.common import ErrorDetail
from formflow.models.contracts.data_sources import IndexedRow, OptionsResult, RowsResult, UpdateResult
from formflow.models.contracts.forms import DataSourceBinding, OptionItem, TableColumn
from formflow.models.enums import SortDirection
from formflow.services.protocol import DataProvider, Row
from formflow.services.visibility import value_as_text

logger = logging.getLogger(__name__)


class DataProviderRegistry(DataProvider):
    """
    Routes fetch/update calls to the connector registered for a source id.

    A default provider, when set, serves every source without its own entry.
    """

    def __init__(self, default: DataProvider | None = None):
        self._providers: dict[str, DataProvider] = {}
        self._default = default

    def register(self, source_id: str, provider: DataProvider) -> None:
        self._providers[str(source_id)] = provider
        logger.debug(f"Registered data provider for source {source_id}")

    def set_default(self, provider: DataProvider | None) -> None:
        self._default = provider

    def provider_for(self, source_id: str) -> DataProvider:
        """
        Raises:
            ProviderError: If no provider serves the source
        """
        provider = self._providers.get(str(source_id), self._default)
        if provider is None:
            raise ProviderError(f"No data provider registered for source {source_id}", source_id=source_id)
        return provider

    async def fetch(self, source_id: str) -> list[Row]:
        return await self.provider_for(source_id).fetch(source_id)

    async def update(self, source_id: str, row_index: int, patch: Row) -> None:
        await self.provider_for(source_id).update(source_id, row_index, patch)


# ==================== VALUE HELPERS ====================


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _option_text(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return value_as_text(value)


def _sort_key(values: Iterable[Any]) -> Callable[[Any], Any]:
    """Numeric key when every value is a number, else lowercase text for all of them."""
    if all(_is_number(v) for v in values):
        return lambda value: value
    return lambda value: value_as_text(value).lower()


def derive_options(rows: Iterable[Row], binding: DataSourceBinding) -> list[OptionItem]:
    """
    Build options from source rows.

    With one field (or display == value): project it, drop nulls, dedupe and
    sort (numerically when every value is a number, else case-insensitively).
    With two distinct fields: keep the first row per distinct value, in
    source order.
    """
    single = binding.single_field
    if single is not None:
        values: dict[str, Any] = {}
        for row in rows:
            value = row.get(single)
            if value is None:
                continue
            key = _option_text(value)
            if key not in values:
                values[key] = value

        if values and all(_is_number(v) for v in values.values()):
            ordered = sorted(values.items(), key=lambda item: item[1])
        else:
            ordered = sorted(values.items(), key=lambda item: (item[0].casefold(), item[0]))
        return [OptionItem(value=key, label=key) for key, _ in ordered]

    options: list[OptionItem] = []
    seen: set[str] = set()
    for row in rows:
        value = row.get(binding.value_field)
        if value is None:
            continue
        key = _option_text(value)
        if key in seen:
            continue
        seen.add(key)
        label = row.get(binding.display_field)
        options.append(OptionItem(value=key, label=key if label is None else _option_text(label)))
    return options


def filter_rows(rows: list[IndexedRow], search: str | None, columns: list[TableColumn] | None) -> list[IndexedRow]:
    """Case-insensitive substring match on any visible column (any value when no columns)."""
    term = (search or "").strip().lower()
    if not term:
        return rows
    fields = [c.field for c in columns or [] if c.visible]

    def matches(row: IndexedRow) -> bool:
        values = [row.values.get(f) for f in fields] if fields else list(row.values.values())
        return any(term in value_as_text(v).lower() for v in values if v is not None)

    return [row for row in rows if matches(row)]


def sort_rows(rows: list[IndexedRow], sort_field: str | None, direction: SortDirection) -> list[IndexedRow]:
    """
    Stable sort on one field. Nulls come first ascending and last descending.
    A column holding only numbers sorts numerically; any other mix sorts as
    case-insensitive text.
    """
    if not sort_field:
        return rows
    present = [row for row in rows if row.values.get(sort_field) is not None]
    missing = [row for row in rows if row.values.get(sort_field) is None]
    key = _sort_key(row.values[sort_field] for row in present)
    ordered = sorted(
        present,
        key=lambda row: key(row.values[sort_field]),
        reverse=direction == SortDirection.DESC,
    )
    if direction == SortDirection.DESC:
        return ordered + missing
    return missing + ordered


# ==================== RESOLVER ====================


class DataBoundFieldResolver:
    """
    Fetches rows through a DataProvider and derives options/rows from them.

    Keeps the last fetched rows per source. A successful cell update is
    applied to that copy; a failed one leaves it as it was until the next
    fetch.
    """

    def __init__(self, provider: DataProvider):
        self.provider = provider
        self._snapshots: dict[str, list[Row]] = {}

    def snapshot(self, source_id: str) -> list[Row] | None:
        rows = self._snapshots.get(source_id)
        return None if rows is None else [dict(row) for row in rows]

    async def fetch_rows(self, source_id: str, refresh: bool = True) -> list[Row]:
        """
        Fetch a source's rows (or reuse the snapshot when refresh is False).

        Raises:
            ProviderError: If the provider fails or returns something that is
                not a list of records
        """
        if not refresh and source_id in self._snapshots:
            return self._snapshots[source_id]
        try:
            rows = await self.provider.fetch(source_id)
        except ProviderError:
            raise
        except FormflowError as e:
            raise ProviderError(e.message, source_id=source_id) from e
        except Exception as e:
            raise ProviderError(f"Failed to fetch data source {source_id}: {e}", source_id=source_id) from e

        if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
            raise ProviderError(f"Data source {source_id} returned malformed rows", source_id=source_id)
        self._snapshots[source_id] = rows
        return rows

    async def resolve_options(self, binding: DataSourceBinding, refresh: bool = True) -> OptionsResult:
        """Options for a bound choice field; provider failures give no options plus the error."""
        try:
            rows = await self.fetch_rows(binding.source_id, refresh=refresh)
        except ProviderError as e:
            logger.warning(f"Could not resolve options from {binding.source_id}: {e.message}")
            return OptionsResult(source_id=binding.source_id, error=ErrorDetail.from_error(e))
        return OptionsResult(source_id=binding.source_id, options=derive_options(rows, binding))

    async def resolve_table_rows(
        self,
        source_id: str,
        search: str | None = None,
        sort_field: str | None = None,
        sort_direction: SortDirection = SortDirection.ASC,
        columns: list[TableColumn] | None = None,
        page: int = 1,
        page_size: int | None = None,
        refresh: bool = True,
    ) -> RowsResult:
        """
        Filtered, sorted and paged rows, each tagged with its source index.

        ``total`` counts the rows after filtering, before paging. Without a
        page_size every matching row is returned.
        """
        try:
            rows = await self.fetch_rows(source_id, refresh=refresh)
        except ProviderError as e:
            logger.warning(f"Could not load rows from {source_id}: {e.message}")
            return RowsResult(source_id=source_id, page=page, page_size=page_size, error=ErrorDetail.from_error(e))

        indexed = [IndexedRow(index=i, values=row) for i, row in enumerate(rows)]
        matching = sort_rows(filter_rows(indexed, search, columns), sort_field, sort_direction)

        page = max(page, 1)
        if page_size:
            start = (page - 1) * page_size
            visible = matching[start:start + page_size]
        else:
            visible = matching
        return RowsResult(
            source_id=source_id,
            rows=visible,
            total=len(matching),
            page=page,
            page_size=page_size,
        )

    async def update_cell(self, source_id: str, row_index: int, patch: Row) -> UpdateResult:
        """
        Pass a row patch through to the provider. No retry, no reconciliation.
        """
        try:
            await self.provider.update(source_id, row_index, dict(patch))
        except Exception as e:
            error = e if isinstance(e, ProviderError) else ProviderError(
                f"Failed to update row {row_index} of {source_id}: {e}", source_id=source_id
            )
            logger.warning(f"Cell update failed for {source_id}[{row_index}]: {error.message}")
            return UpdateResult(
                source_id=source_id,
                row_index=row_index,
                ok=False,
                error=ErrorDetail.from_error(error),
            )

        rows = self._snapshots.get(source_id)
        if rows is not None and 0 <= row_index < len(rows):
            rows[row_index] = {**rows[row_index], **patch}
        return UpdateResult(source_id=source_id, row_index=row_index, ok=True)
