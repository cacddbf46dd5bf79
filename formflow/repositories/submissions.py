"""
Submission Repository

SubmissionStore backed by the form_submissions table.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from formflow.models.contracts.submissions import FormSubmissionPublic
from formflow.models.orm import FormSubmission
from formflow.repositories.base import BaseRepository
from formflow.services.protocol import SubmissionStore


class SubmissionRepository(BaseRepository[FormSubmission], SubmissionStore):
    model = FormSubmission

    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def create(
        self,
        form_id: UUID,
        data: dict[str, Any],
        submitted_by: str | None = None,
    ) -> FormSubmissionPublic:
        submission = await self.add(
            FormSubmission(form_id=form_id, data=dict(data), submitted_by=submitted_by)
        )
        return FormSubmissionPublic.model_validate(submission)

    async def get(self, submission_id: UUID) -> FormSubmissionPublic | None:
        submission = await self.get_by_id(submission_id)
        return FormSubmissionPublic.model_validate(submission) if submission else None

    async def list_for_form(self, form_id: UUID) -> list[FormSubmissionPublic]:
        result = await self.session.execute(
            select(self.model)
            .where(self.model.form_id == form_id)
            .order_by(self.model.created_at.desc())
        )
        return [FormSubmissionPublic.model_validate(row) for row in result.scalars().all()]
