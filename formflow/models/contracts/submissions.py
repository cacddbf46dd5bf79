"""
Submission and approval request contract models.
"""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from formflow.models.contracts.common import CamelModel
from formflow.models.enums import ApprovalStatus


# ==================== SUBMISSIONS ====================


class SubmissionCreate(CamelModel):
    """Request model for submitting form data directly"""
    data: dict[str, Any] = Field(default_factory=dict)


class FormSubmissionPublic(CamelModel):
    """Form submission (response model)"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: UUID
    form_id: UUID
    data: dict[str, Any] = Field(default_factory=dict)
    submitted_by: str | None = None
    created_at: datetime | None = None


# ==================== APPROVAL REQUESTS ====================


class ApprovalRequestPublic(CamelModel):
    """Approval request (response model)"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: UUID
    form_submission_id: UUID
    requester_id: str
    status: ApprovalStatus
    approved_by_id: str | None = None
    reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == ApprovalStatus.PENDING


class ApprovalRequestCreate(CamelModel):
    """Request model for opening an approval request on a submission"""
    form_submission_id: UUID


class ApprovalResolveRequest(CamelModel):
    """Request model for approving or rejecting a pending request"""
    status: Literal["approved", "rejected"]
    reason: str | None = Field(default=None, max_length=2000)

    @field_validator("reason", mode="before")
    @classmethod
    def blank_reason_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v
