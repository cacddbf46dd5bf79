"""
Common contract models (base config, error payloads).
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from formflow.core.exceptions import FormflowError


class CamelModel(BaseModel):
    """Base for models persisted or exchanged with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ==================== ERROR MODELS ====================


class ErrorDetail(CamelModel):
    """Engine error carried inside a result instead of being raised"""
    kind: str = Field(..., description="Error class, e.g. ProviderError")
    message: str
    details: dict[str, Any] | None = None

    @classmethod
    def from_error(cls, error: FormflowError) -> "ErrorDetail":
        payload = error.to_dict()
        kind = payload.pop("kind")
        message = payload.pop("message")
        return cls(kind=kind, message=message, details=payload or None)
