"""
Formflow Models

ORM models (database tables):
    from formflow.models import Form, FormSubmission
    from formflow.models.orm.submissions import ApprovalRequest  # Granular access

Pydantic contracts (API request/response and the element tree):
    from formflow.models.contracts.forms import FormElement, FormPublic

Enums:
    from formflow.models import FieldType
    from formflow.models.enums import FieldType
"""

# ORM models (database tables)
from formflow.models.orm import ApprovalRequest, Base, Form, FormSubmission

# Enums
from formflow.models.enums import (
    ActorRole,
    ApprovalStatus,
    ButtonActionType,
    ContainerSlot,
    DispatchState,
    FieldCategory,
    FieldType,
    SortDirection,
    VisibilityOperator,
)

__all__ = [
    # ORM
    "Base",
    "Form",
    "FormSubmission",
    "ApprovalRequest",
    # Enums
    "ActorRole",
    "ApprovalStatus",
    "ButtonActionType",
    "ContainerSlot",
    "DispatchState",
    "FieldCategory",
    "FieldType",
    "SortDirection",
    "VisibilityOperator",
]
