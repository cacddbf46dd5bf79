"""
Submission recording shared by the submit button and the submissions API.
"""

import logging
from typing import Any, Mapping
from uuid import UUID

from formflow.models.contracts.submissions import FormSubmissionPublic
from formflow.services.events import SUBMISSION_CREATED, EventSink, publish
from formflow.services.protocol import SubmissionStore
from formflow.services.store_calls import call_store

logger = logging.getLogger(__name__)


async def record_submission(
    store: SubmissionStore,
    events: EventSink | None,
    form_id: UUID,
    form_data: Mapping[str, Any],
    submitted_by: str | None = None,
) -> FormSubmissionPublic:
    """
    Create exactly one submission holding a snapshot of the form data.

    Raises:
        StoreError: If the store fails
    """
    submission = await call_store(
        "create submission",
        store.create(form_id, dict(form_data), submitted_by),
    )
    logger.info(f"Created submission {submission.id} for form {form_id}")
    await publish(
        events,
        SUBMISSION_CREATED,
        {"submissionId": str(submission.id), "formId": str(form_id), "submittedBy": submitted_by},
    )
    return submission
