"""
Field type palette contract models.
"""

from typing import Any

from pydantic import Field

from formflow.models.contracts.common import CamelModel
from formflow.models.enums import ContainerSlot, FieldCategory, FieldType


class FieldTypeInfo(CamelModel):
    """Palette entry for one field type (response model)"""
    type: FieldType
    category: FieldCategory
    label: str
    icon: str
    is_container: bool = False
    container_slot: ContainerSlot | None = None
    holds_value: bool = True
    defaults: dict[str, Any] = Field(default_factory=dict)
