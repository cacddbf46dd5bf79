"""
Approval Requests Router

Listing and resolving approval requests. Whether an actor may review at all
is decided upstream; the engine only refuses self-resolution without the
override capability.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Query

from formflow.core.auth import CurrentActor
from formflow.core.dependencies import Approvals, raise_http
from formflow.core.exceptions import FormflowError
from formflow.models.contracts.submissions import ApprovalRequestPublic, ApprovalResolveRequest
from formflow.models.enums import ApprovalStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/approval-requests", tags=["Approval Requests"])


@router.get(
    "",
    response_model=list[ApprovalRequestPublic],
    summary="List approval requests",
)
async def list_approval_requests(
    actor: CurrentActor,
    approvals: Approvals,
    status_filter: ApprovalStatus | None = Query(default=None, alias="status"),
) -> list[ApprovalRequestPublic]:
    try:
        return await approvals.list_requests(status_filter)
    except FormflowError as e:
        raise_http(e)


@router.get(
    "/pending",
    response_model=list[ApprovalRequestPublic],
    summary="List pending approval requests",
)
async def list_pending_approval_requests(
    actor: CurrentActor,
    approvals: Approvals,
) -> list[ApprovalRequestPublic]:
    try:
        return await approvals.list_requests(ApprovalStatus.PENDING)
    except FormflowError as e:
        raise_http(e)


@router.get(
    "/{request_id}",
    response_model=ApprovalRequestPublic,
    summary="Get an approval request",
)
async def get_approval_request(
    request_id: UUID,
    actor: CurrentActor,
    approvals: Approvals,
) -> ApprovalRequestPublic:
    try:
        return await approvals.get(request_id)
    except FormflowError as e:
        raise_http(e)


@router.patch(
    "/{request_id}",
    response_model=ApprovalRequestPublic,
    summary="Approve or reject a request",
    description="Fails with 409 if the request was already resolved",
)
async def resolve_approval_request(
    request_id: UUID,
    request: ApprovalResolveRequest,
    actor: CurrentActor,
    approvals: Approvals,
) -> ApprovalRequestPublic:
    try:
        return await approvals.resolve(request_id, ApprovalStatus(request.status), actor, request.reason)
    except FormflowError as e:
        raise_http(e)
