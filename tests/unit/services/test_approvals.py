"""
Unit tests for the approval workflow state machine.
"""

from uuid import uuid4

import pytest

from formflow.config import get_settings
from formflow.core.auth import Actor
from formflow.core.exceptions import (
    ApprovalNotPermitted,
    DuplicatePendingRequest,
    InvalidStateTransition,
    NotFoundError,
    StoreError,
)
from formflow.models.enums import ApprovalStatus
from formflow.services.approvals import ApprovalWorkflow, check_transition
from formflow.services.memory_stores import InMemoryApprovalStore


class FlakyApprovalStore(InMemoryApprovalStore):
    async def list_for_submission(self, submission_id):
        raise ConnectionError("database unavailable")


class TestCheckTransition:
    @pytest.mark.parametrize("target", [ApprovalStatus.APPROVED, ApprovalStatus.REJECTED])
    def test_pending_to_terminal(self, target):
        check_transition(ApprovalStatus.PENDING, target)

    @pytest.mark.parametrize("current", [ApprovalStatus.APPROVED, ApprovalStatus.REJECTED])
    def test_terminal_is_final(self, current):
        with pytest.raises(InvalidStateTransition) as exc_info:
            check_transition(current, ApprovalStatus.APPROVED)

        assert exc_info.value.current_status == current.value

    def test_cannot_return_to_pending(self):
        with pytest.raises(InvalidStateTransition):
            check_transition(ApprovalStatus.PENDING, ApprovalStatus.PENDING)


class TestRequest:
    """Opening approval requests"""

    @pytest.mark.asyncio
    async def test_request_is_pending(self, workflow, events, requester):
        submission_id = uuid4()

        request = await workflow.request(submission_id, requester)

        assert request.status == ApprovalStatus.PENDING
        assert request.is_pending
        assert request.requester_id == requester.id
        assert request.form_submission_id == submission_id
        assert request.approved_by_id is None
        assert events.names() == ["approval.requested"]

    @pytest.mark.asyncio
    async def test_duplicates_allowed_by_default(self, workflow, requester):
        submission_id = uuid4()

        await workflow.request(submission_id, requester)
        await workflow.request(submission_id, requester)

        assert len(await workflow.list_for_submission(submission_id)) == 2

    @pytest.mark.asyncio
    async def test_duplicates_rejected_by_policy(self, approval_store, events, requester, monkeypatch):
        monkeypatch.setenv("FORMFLOW_APPROVAL_DUPLICATE_POLICY", "reject")
        get_settings.cache_clear()
        workflow = ApprovalWorkflow(approval_store, events=events)
        submission_id = uuid4()
        await workflow.request(submission_id, requester)

        with pytest.raises(DuplicatePendingRequest):
            await workflow.request(submission_id, requester)

    @pytest.mark.asyncio
    async def test_reject_policy_allows_after_resolution(
        self, approval_store, events, requester, reviewer, monkeypatch
    ):
        monkeypatch.setenv("FORMFLOW_APPROVAL_DUPLICATE_POLICY", "reject")
        get_settings.cache_clear()
        workflow = ApprovalWorkflow(approval_store, events=events)
        submission_id = uuid4()
        first = await workflow.request(submission_id, requester)
        await workflow.resolve(first.id, ApprovalStatus.REJECTED, reviewer, reason="Incomplete")

        second = await workflow.request(submission_id, requester)

        assert second.is_pending

    @pytest.mark.asyncio
    async def test_store_failure_wrapped(self, events, requester, monkeypatch):
        monkeypatch.setenv("FORMFLOW_APPROVAL_DUPLICATE_POLICY", "reject")
        get_settings.cache_clear()
        workflow = ApprovalWorkflow(FlakyApprovalStore(), events=events)

        with pytest.raises(StoreError) as exc_info:
            await workflow.request(uuid4(), requester)

        assert "database unavailable" in exc_info.value.message


class TestResolve:
    """Approving and rejecting"""

    @pytest.mark.asyncio
    async def test_approve(self, workflow, events, requester, reviewer):
        request = await workflow.request(uuid4(), requester)

        resolved = await workflow.resolve(request.id, ApprovalStatus.APPROVED, reviewer)

        assert resolved.status == ApprovalStatus.APPROVED
        assert resolved.approved_by_id == reviewer.id
        assert resolved.reason is None
        assert events.names() == ["approval.requested", "approval.approved"]
        assert events.events[-1].payload["approvedById"] == reviewer.id

    @pytest.mark.asyncio
    async def test_reject_with_reason(self, workflow, events, requester, reviewer):
        request = await workflow.request(uuid4(), requester)

        resolved = await workflow.resolve(request.id, ApprovalStatus.REJECTED, reviewer, reason="No budget")

        assert resolved.status == ApprovalStatus.REJECTED
        assert resolved.reason == "No budget"
        assert events.names()[-1] == "approval.rejected"

    @pytest.mark.asyncio
    async def test_resolve_twice(self, workflow, requester, reviewer):
        """Test that a terminal request cannot be resolved again"""
        request = await workflow.request(uuid4(), requester)
        await workflow.resolve(request.id, ApprovalStatus.APPROVED, reviewer)

        with pytest.raises(InvalidStateTransition) as exc_info:
            await workflow.resolve(request.id, ApprovalStatus.REJECTED, reviewer)

        assert exc_info.value.current_status == "approved"
        assert (await workflow.get(request.id)).status == ApprovalStatus.APPROVED

    @pytest.mark.asyncio
    async def test_store_rejects_stale_resolve(self, approval_store, requester):
        """Test that the store itself refuses a second resolve"""
        request = await approval_store.create(uuid4(), requester.id)
        await approval_store.resolve(request.id, ApprovalStatus.APPROVED, "a")

        with pytest.raises(InvalidStateTransition):
            await approval_store.resolve(request.id, ApprovalStatus.REJECTED, "b")

    @pytest.mark.asyncio
    async def test_self_resolution_denied(self, workflow, requester):
        request = await workflow.request(uuid4(), requester)

        with pytest.raises(ApprovalNotPermitted):
            await workflow.resolve(request.id, ApprovalStatus.APPROVED, requester)

    @pytest.mark.asyncio
    async def test_self_resolution_with_override(self, workflow, requester, overriding_requester):
        request = await workflow.request(uuid4(), requester)

        resolved = await workflow.resolve(request.id, ApprovalStatus.APPROVED, overriding_requester)

        assert resolved.status == ApprovalStatus.APPROVED

    @pytest.mark.asyncio
    async def test_admin_role_alone_is_not_override(self, workflow):
        """Test that only the capability, not the role, allows self-resolution"""
        admin = Actor(id="admin-1", role="admin")
        request = await workflow.request(uuid4(), admin)

        with pytest.raises(ApprovalNotPermitted):
            await workflow.resolve(request.id, ApprovalStatus.APPROVED, admin)

    @pytest.mark.asyncio
    async def test_unknown_request(self, workflow, reviewer):
        with pytest.raises(NotFoundError):
            await workflow.resolve(uuid4(), ApprovalStatus.APPROVED, reviewer)


class TestResolveForSubmission:
    @pytest.mark.asyncio
    async def test_resolves_newest_pending(self, workflow, requester, reviewer):
        submission_id = uuid4()
        await workflow.request(submission_id, requester)
        newest = await workflow.request(submission_id, requester)

        resolved = await workflow.resolve_for_submission(submission_id, ApprovalStatus.APPROVED, reviewer)

        assert resolved.id == newest.id

    @pytest.mark.asyncio
    async def test_no_requests(self, workflow, reviewer):
        with pytest.raises(NotFoundError):
            await workflow.resolve_for_submission(uuid4(), ApprovalStatus.APPROVED, reviewer)

    @pytest.mark.asyncio
    async def test_none_pending(self, workflow, requester, reviewer):
        submission_id = uuid4()
        request = await workflow.request(submission_id, requester)
        await workflow.resolve(request.id, ApprovalStatus.REJECTED, reviewer)

        with pytest.raises(InvalidStateTransition) as exc_info:
            await workflow.resolve_for_submission(submission_id, ApprovalStatus.APPROVED, reviewer)

        assert exc_info.value.current_status == "rejected"


class TestQueries:
    @pytest.mark.asyncio
    async def test_list_filters_by_status(self, workflow, requester, reviewer):
        first = await workflow.request(uuid4(), requester)
        second = await workflow.request(uuid4(), requester)
        await workflow.resolve(first.id, ApprovalStatus.APPROVED, reviewer)

        pending = await workflow.list_requests(ApprovalStatus.PENDING)
        everything = await workflow.list_requests()

        assert [r.id for r in pending] == [second.id]
        assert [r.id for r in everything] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_get_unknown(self, workflow):
        with pytest.raises(NotFoundError):
            await workflow.get(uuid4())
