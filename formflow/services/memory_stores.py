"""
In-memory collaborator implementations.

Used for form preview (nothing is persisted) and in tests. Each store method
completes without yielding between its check and its write, so the
single-pending and compare-and-swap guarantees hold under asyncio.
"""

import copy
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from formflow.core.exceptions import InvalidStateTransition, NotFoundError, ProviderError
from formflow.models.contracts.submissions import ApprovalRequestPublic, FormSubmissionPublic
from formflow.models.enums import ApprovalStatus
from formflow.services.protocol import ApprovalStore, DataProvider, Row, SubmissionStore


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemorySubmissionStore(SubmissionStore):
    def __init__(self) -> None:
        self._submissions: dict[UUID, FormSubmissionPublic] = {}

    async def create(
        self,
        form_id: UUID,
        data: dict[str, Any],
        submitted_by: str | None = None,
    ) -> FormSubmissionPublic:
        submission = FormSubmissionPublic(
            id=uuid4(),
            form_id=form_id,
            data=copy.deepcopy(dict(data)),
            submitted_by=submitted_by,
            created_at=_now(),
        )
        self._submissions[submission.id] = submission
        return submission

    async def get(self, submission_id: UUID) -> FormSubmissionPublic | None:
        return self._submissions.get(submission_id)

    async def list_for_form(self, form_id: UUID) -> list[FormSubmissionPublic]:
        return [s for s in self._submissions.values() if s.form_id == form_id]


class InMemoryApprovalStore(ApprovalStore):
    def __init__(self) -> None:
        self._requests: dict[UUID, ApprovalRequestPublic] = {}

    async def create(self, submission_id: UUID, requester_id: str) -> ApprovalRequestPublic:
        now = _now()
        request = ApprovalRequestPublic(
            id=uuid4(),
            form_submission_id=submission_id,
            requester_id=requester_id,
            status=ApprovalStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        self._requests[request.id] = request
        return request

    async def resolve(
        self,
        request_id: UUID,
        status: ApprovalStatus,
        approver_id: str,
        reason: str | None = None,
    ) -> ApprovalRequestPublic:
        current = self._requests.get(request_id)
        if current is None:
            raise NotFoundError(f"Approval request {request_id} not found")
        if current.status != ApprovalStatus.PENDING:
            raise InvalidStateTransition(
                f"Approval request {request_id} is already {current.status.value}",
                current_status=current.status.value,
            )
        resolved = current.model_copy(
            update={
                "status": status,
                "approved_by_id": approver_id,
                "reason": reason,
                "updated_at": _now(),
            }
        )
        self._requests[request_id] = resolved
        return resolved

    async def get(self, request_id: UUID) -> ApprovalRequestPublic | None:
        return self._requests.get(request_id)

    async def list_requests(self, status: ApprovalStatus | None = None) -> list[ApprovalRequestPublic]:
        requests = [r for r in self._requests.values() if status is None or r.status == status]
        return list(reversed(requests))

    async def list_for_submission(self, submission_id: UUID) -> list[ApprovalRequestPublic]:
        return [r for r in self._requests.values() if r.form_submission_id == submission_id]


class InMemoryDataProvider(DataProvider):
    """Serves rows from a dict of ``source_id -> rows``."""

    def __init__(self, sources: dict[str, list[Row]] | None = None) -> None:
        self._sources: dict[str, list[Row]] = {
            source_id: [dict(row) for row in rows] for source_id, rows in (sources or {}).items()
        }

    def set_rows(self, source_id: str, rows: list[Row]) -> None:
        self._sources[source_id] = [dict(row) for row in rows]

    async def fetch(self, source_id: str) -> list[Row]:
        if source_id not in self._sources:
            raise ProviderError(f"Unknown data source: {source_id}", source_id=source_id)
        return copy.deepcopy(self._sources[source_id])

    async def update(self, source_id: str, row_index: int, patch: Row) -> None:
        rows = self._sources.get(source_id)
        if rows is None:
            raise ProviderError(f"Unknown data source: {source_id}", source_id=source_id)
        if row_index < 0 or row_index >= len(rows):
            raise ProviderError(f"Row {row_index} does not exist in {source_id}", source_id=source_id)
        rows[row_index] = {**rows[row_index], **patch}
