"""
SQLAlchemy ORM Models for Formflow

Pure database models using SQLAlchemy 2.0 declarative style.
For API schemas (Create/Update/Public), see formflow.models.contracts.
"""

from formflow.models.orm.base import Base
from formflow.models.orm.forms import Form
from formflow.models.orm.submissions import ApprovalRequest, FormSubmission

__all__ = [
    "Base",
    "Form",
    "FormSubmission",
    "ApprovalRequest",
]
