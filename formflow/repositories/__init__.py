"""
Repositories

SQLAlchemy implementations of the engine's stores.
"""

from formflow.repositories.approvals import ApprovalRepository
from formflow.repositories.base import BaseRepository
from formflow.repositories.forms import FormRepository
from formflow.repositories.submissions import SubmissionRepository

__all__ = [
    "BaseRepository",
    "FormRepository",
    "SubmissionRepository",
    "ApprovalRepository",
]
