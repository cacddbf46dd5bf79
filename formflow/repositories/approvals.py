"""
Approval Repository

ApprovalStore backed by the approval_requests table. Resolution is a single
conditional UPDATE on ``status = 'pending'`` so concurrent reviewers are
serialized by the database: exactly one update matches, the other caller
gets InvalidStateTransition.
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from formflow.core.exceptions import InvalidStateTransition, NotFoundError
from formflow.models.contracts.submissions import ApprovalRequestPublic
from formflow.models.enums import ApprovalStatus
from formflow.models.orm import ApprovalRequest
from formflow.repositories.base import BaseRepository
from formflow.services.protocol import ApprovalStore

logger = logging.getLogger(__name__)


class ApprovalRepository(BaseRepository[ApprovalRequest], ApprovalStore):
    model = ApprovalRequest

    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def create(self, submission_id: UUID, requester_id: str) -> ApprovalRequestPublic:
        request = await self.add(
            ApprovalRequest(
                form_submission_id=submission_id,
                requester_id=requester_id,
                status=ApprovalStatus.PENDING.value,
            )
        )
        return ApprovalRequestPublic.model_validate(request)

    async def resolve(
        self,
        request_id: UUID,
        status: ApprovalStatus,
        approver_id: str,
        reason: str | None = None,
    ) -> ApprovalRequestPublic:
        result = await self.session.execute(
            update(self.model)
            .where(self.model.id == request_id)
            .where(self.model.status == ApprovalStatus.PENDING.value)
            .values(
                status=status.value,
                approved_by_id=approver_id,
                reason=reason,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            current = await self._fetch(request_id)
            if current is None:
                raise NotFoundError(f"Approval request {request_id} not found")
            logger.info(f"Lost resolve race on approval request {request_id} (now {current.status})")
            raise InvalidStateTransition(
                f"Approval request {request_id} is already {current.status}",
                current_status=current.status,
            )

        resolved = await self._fetch(request_id)
        return ApprovalRequestPublic.model_validate(resolved)

    async def get(self, request_id: UUID) -> ApprovalRequestPublic | None:
        request = await self._fetch(request_id)
        return ApprovalRequestPublic.model_validate(request) if request else None

    async def list_requests(self, status: ApprovalStatus | None = None) -> list[ApprovalRequestPublic]:
        query = select(self.model)
        if status is not None:
            query = query.where(self.model.status == status.value)
        query = query.order_by(self.model.created_at.desc())
        result = await self.session.execute(query)
        return [ApprovalRequestPublic.model_validate(row) for row in result.scalars().all()]

    async def list_for_submission(self, submission_id: UUID) -> list[ApprovalRequestPublic]:
        result = await self.session.execute(
            select(self.model)
            .where(self.model.form_submission_id == submission_id)
            .order_by(self.model.created_at)
        )
        return [ApprovalRequestPublic.model_validate(row) for row in result.scalars().all()]

    async def _fetch(self, request_id: UUID) -> ApprovalRequest | None:
        """Load a row bypassing the identity map so a concurrent update is seen."""
        result = await self.session.execute(
            select(self.model)
            .where(self.model.id == request_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()
