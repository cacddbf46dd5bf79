"""
Collaborator interfaces consumed by the engine.

The engine never owns storage or data-source connectors. It talks to them
through these narrow interfaces; the SQLAlchemy repositories and the
in-memory stores are the shipped implementations.
"""

from abc import ABC, abstractmethod
from typing import Any
from uuid import UUID

from formflow.models.contracts.submissions import ApprovalRequestPublic, FormSubmissionPublic
from formflow.models.enums import ApprovalStatus

Row = dict[str, Any]


class SubmissionStore(ABC):
    """Creates and reads form submissions. Submission data is immutable."""

    @abstractmethod
    async def create(
        self,
        form_id: UUID,
        data: dict[str, Any],
        submitted_by: str | None = None,
    ) -> FormSubmissionPublic:
        """Persist a new submission and return it (with its id)."""
        ...

    @abstractmethod
    async def get(self, submission_id: UUID) -> FormSubmissionPublic | None:
        ...

    @abstractmethod
    async def list_for_form(self, form_id: UUID) -> list[FormSubmissionPublic]:
        ...


class ApprovalStore(ABC):
    """
    Creates, reads and resolves approval requests.

    resolve() must be atomic with respect to the pending check: when two
    callers race, exactly one sees the pending request and the other gets
    InvalidStateTransition.
    """

    @abstractmethod
    async def create(self, submission_id: UUID, requester_id: str) -> ApprovalRequestPublic:
        """Create a pending request for a submission."""
        ...

    @abstractmethod
    async def resolve(
        self,
        request_id: UUID,
        status: ApprovalStatus,
        approver_id: str,
        reason: str | None = None,
    ) -> ApprovalRequestPublic:
        """
        Move a pending request to ``status``.

        Raises:
            NotFoundError: If the request does not exist
            InvalidStateTransition: If the request is no longer pending
        """
        ...

    @abstractmethod
    async def get(self, request_id: UUID) -> ApprovalRequestPublic | None:
        ...

    @abstractmethod
    async def list_requests(self, status: ApprovalStatus | None = None) -> list[ApprovalRequestPublic]:
        """All requests, newest first, optionally filtered by status."""
        ...

    @abstractmethod
    async def list_for_submission(self, submission_id: UUID) -> list[ApprovalRequestPublic]:
        """Requests for one submission, oldest first."""
        ...


class DataProvider(ABC):
    """
    Opaque tabular data source (database table, list, spreadsheet...).

    Implementations raise ProviderError for failures they recognise; any
    other exception is converted to ProviderError by the resolver.
    """

    @abstractmethod
    async def fetch(self, source_id: str) -> list[Row]:
        """Return all rows of a source."""
        ...

    @abstractmethod
    async def update(self, source_id: str, row_index: int, patch: Row) -> None:
        """Apply ``patch`` to the row at ``row_index``."""
        ...
