"""
Form ORM model.

The element tree is stored as a single JSON document in its persisted
camelCase representation rather than one row per field, so nested
containers round-trip without a join per level.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from formflow.models.orm.base import Base, JSONType

if TYPE_CHECKING:
    from formflow.models.orm.submissions import FormSubmission


class Form(Base):
    """Form database table."""

    __tablename__ = "forms"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text, default=None)
    application_id: Mapped[str | None] = mapped_column(String(100), default=None, index=True)
    elements: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list)
    data_source_id: Mapped[str | None] = mapped_column(String(100), default=None)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False)
    created_by: Mapped[str | None] = mapped_column(String(100), default=None)
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
    submissions: Mapped[list["FormSubmission"]] = relationship(
        back_populates="form", cascade="all, delete-orphan", passive_deletes=True
    )
