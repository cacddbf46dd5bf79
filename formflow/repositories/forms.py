"""
Form Repository

CRUD for form definitions. The element tree is validated by the caller and
stored in its persisted JSON representation.
"""

from uuid import UUID

from sqlalchemy import select

from formflow.models.orm import Form as FormORM
from formflow.repositories.base import BaseRepository


class FormRepository(BaseRepository[FormORM]):
    model = FormORM

    async def list_forms(
        self,
        published_only: bool = False,
        application_id: str | None = None,
    ) -> list[FormORM]:
        """
        List forms ordered by name.

        Args:
            published_only: If True, only return published forms
            application_id: Optional application filter

        Returns:
            List of Form ORM objects
        """
        query = select(self.model)
        if published_only:
            query = query.where(self.model.is_published.is_(True))
        if application_id is not None:
            query = query.where(self.model.application_id == application_id)
        query = query.order_by(self.model.name)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_form(self, form_id: UUID) -> FormORM | None:
        return await self.get_by_id(form_id)
