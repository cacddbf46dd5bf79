"""
FormSubmission and ApprovalRequest ORM models.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from formflow.models.enums import ApprovalStatus
from formflow.models.orm.base import Base, JSONType

if TYPE_CHECKING:
    from formflow.models.orm.forms import Form


class FormSubmission(Base):
    """Form submission database table. ``data`` is never updated after insert."""

    __tablename__ = "form_submissions"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    form_id: Mapped[UUID] = mapped_column(
        ForeignKey("forms.id", ondelete="CASCADE"), nullable=False, index=True
    )
    data: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    submitted_by: Mapped[str | None] = mapped_column(String(100), default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), server_default=func.now()
    )

    # Relationships
    form: Mapped["Form"] = relationship(back_populates="submissions")
    approval_requests: Mapped[list["ApprovalRequest"]] = relationship(
        back_populates="submission", cascade="all, delete-orphan", passive_deletes=True
    )


class ApprovalRequest(Base):
    """Approval request database table."""

    __tablename__ = "approval_requests"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    form_submission_id: Mapped[UUID] = mapped_column(
        ForeignKey("form_submissions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    requester_id: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=ApprovalStatus.PENDING.value, nullable=False, index=True
    )
    approved_by_id: Mapped[str | None] = mapped_column(String(100), default=None)
    reason: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    submission: Mapped["FormSubmission"] = relationship(back_populates="approval_requests")
