"""
Approval Workflow

Lifecycle of approval requests: pending -> approved | rejected. Terminal
states are immutable; resolving a request that is no longer pending raises
InvalidStateTransition so the caller re-fetches the truth.

The store serializes racing reviewers (compare-and-swap on the pending
status); the checks here only give a clearer error before reaching it.
"""

import logging
from uuid import UUID

from formflow.config import Settings, get_settings
from formflow.core.auth import Actor
from formflow.core.exceptions import (
    ApprovalNotPermitted,
    DuplicatePendingRequest,
    InvalidStateTransition,
    NotFoundError,
)
from formflow.models.contracts.submissions import ApprovalRequestPublic
from formflow.models.enums import ApprovalStatus
from formflow.services.events import (
    APPROVAL_APPROVED,
    APPROVAL_REJECTED,
    APPROVAL_REQUESTED,
    EventSink,
    publish,
)
from formflow.services.protocol import ApprovalStore
from formflow.services.store_calls import call_store

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({ApprovalStatus.APPROVED, ApprovalStatus.REJECTED})


def check_transition(current: ApprovalStatus, target: ApprovalStatus) -> None:
    """
    Raises:
        InvalidStateTransition: Unless current is pending and target is terminal
    """
    if target not in TERMINAL_STATUSES:
        raise InvalidStateTransition(
            f"Cannot move an approval request to {target.value}",
            current_status=current.value,
        )
    if current != ApprovalStatus.PENDING:
        raise InvalidStateTransition(
            f"Approval request is already {current.value}",
            current_status=current.value,
        )


class ApprovalWorkflow:
    """Requests and resolves approvals on top of an ApprovalStore."""

    def __init__(
        self,
        store: ApprovalStore,
        events: EventSink | None = None,
        settings: Settings | None = None,
    ):
        self.store = store
        self.events = events
        self.settings = settings or get_settings()

    async def request(self, submission_id: UUID, requester: Actor) -> ApprovalRequestPublic:
        """
        Open a pending request on a submission.

        Raises:
            DuplicatePendingRequest: If the duplicate policy is ``reject`` and
                the submission already has a pending request
        """
        if self.settings.approval_duplicate_policy == "reject":
            existing = await self.list_for_submission(submission_id)
            if any(r.status == ApprovalStatus.PENDING for r in existing):
                raise DuplicatePendingRequest(
                    f"Submission {submission_id} already has a pending approval request"
                )

        request = await call_store(
            "create approval request",
            self.store.create(submission_id, requester.id),
        )
        logger.info(f"Approval request {request.id} opened on submission {submission_id} by {requester.id}")
        await publish(
            self.events,
            APPROVAL_REQUESTED,
            {
                "approvalRequestId": str(request.id),
                "submissionId": str(submission_id),
                "requesterId": requester.id,
            },
        )
        return request

    async def resolve(
        self,
        request_id: UUID,
        status: ApprovalStatus,
        actor: Actor,
        reason: str | None = None,
    ) -> ApprovalRequestPublic:
        """
        Approve or reject a pending request.

        Raises:
            NotFoundError: If the request does not exist
            InvalidStateTransition: If it is not pending (checked again by the store)
            ApprovalNotPermitted: If the actor is the requester and lacks the
                override capability
        """
        current = await self.get(request_id)
        check_transition(current.status, status)

        override = self.settings.approval_override_capability
        if current.requester_id == actor.id and not actor.has_capability(override):
            raise ApprovalNotPermitted(
                f"Requester {actor.id} may not resolve their own approval request"
            )

        resolved = await call_store(
            "resolve approval request",
            self.store.resolve(request_id, status, actor.id, reason),
        )
        logger.info(f"Approval request {request_id} {status.value} by {actor.id}")
        await publish(
            self.events,
            APPROVAL_APPROVED if status == ApprovalStatus.APPROVED else APPROVAL_REJECTED,
            {
                "approvalRequestId": str(request_id),
                "submissionId": str(resolved.form_submission_id),
                "requesterId": resolved.requester_id,
                "approvedById": actor.id,
                "reason": reason,
            },
        )
        return resolved

    async def resolve_for_submission(
        self,
        submission_id: UUID,
        status: ApprovalStatus,
        actor: Actor,
        reason: str | None = None,
    ) -> ApprovalRequestPublic:
        """
        Resolve the submission's pending request (the newest one if several).

        Raises:
            NotFoundError: If the submission has no approval requests
            InvalidStateTransition: If none of them is pending
        """
        requests = await self.list_for_submission(submission_id)
        if not requests:
            raise NotFoundError(f"Submission {submission_id} has no approval request")
        pending = [r for r in requests if r.status == ApprovalStatus.PENDING]
        if not pending:
            latest = requests[-1]
            raise InvalidStateTransition(
                f"Approval request for submission {submission_id} is already {latest.status.value}",
                current_status=latest.status.value,
            )
        return await self.resolve(pending[-1].id, status, actor, reason)

    async def get(self, request_id: UUID) -> ApprovalRequestPublic:
        """
        Raises:
            NotFoundError: If the request does not exist
        """
        request = await call_store("get approval request", self.store.get(request_id))
        if request is None:
            raise NotFoundError(f"Approval request {request_id} not found")
        return request

    async def list_requests(self, status: ApprovalStatus | None = None) -> list[ApprovalRequestPublic]:
        return await call_store("list approval requests", self.store.list_requests(status))

    async def list_for_submission(self, submission_id: UUID) -> list[ApprovalRequestPublic]:
        return await call_store(
            "list approval requests for submission",
            self.store.list_for_submission(submission_id),
        )
