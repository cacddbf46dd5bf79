"""
Render-ready form projection.
"""

from typing import Any
from uuid import UUID

from pydantic import Field

from formflow.models.contracts.common import CamelModel, ErrorDetail
from formflow.models.contracts.forms import FormElement


class RenderedForm(CamelModel):
    """
    Form as handed to the rendering layer.

    Data-bound choice fields already carry their resolved ``options``;
    option_errors holds the provider error per element id when resolution
    failed (that element renders with no options).
    """
    form_id: UUID | None = None
    name: str = ""
    description: str | None = None
    elements: list[FormElement] = Field(default_factory=list)
    option_errors: dict[str, ErrorDetail] = Field(default_factory=dict)
    hidden_element_ids: list[str] = Field(default_factory=list)
    initial_data: dict[str, Any] = Field(default_factory=dict)


class ValidationResult(CamelModel):
    """Live validation result for a form"""
    valid: bool
    errors: dict[str, str] = Field(default_factory=dict)
