"""
Engine Dependencies

FastAPI dependencies that hand routers the engine's collaborators. Long-lived
pieces (event sink, data resolver, button handle registry) live on
``app.state``; stores are built per request on the request's session.
"""

import logging
from typing import Annotated, NoReturn

from fastapi import Depends, HTTPException, Request

from formflow.config import get_settings
from formflow.core.database import DbSession
from formflow.core.exceptions import FormflowError
from formflow.repositories.approvals import ApprovalRepository
from formflow.repositories.submissions import SubmissionRepository
from formflow.services.approvals import ApprovalWorkflow
from formflow.services.button_dispatcher import ButtonDispatcher, DispatcherRegistry
from formflow.services.data_resolver import DataBoundFieldResolver
from formflow.services.events import EventSink

logger = logging.getLogger(__name__)


def raise_http(error: FormflowError) -> NoReturn:
    """Translate an engine error into an HTTPException carrying its payload."""
    raise HTTPException(status_code=error.status_code, detail=error.to_dict()) from error


def get_event_sink(request: Request) -> EventSink:
    return request.app.state.event_sink


def get_resolver(request: Request) -> DataBoundFieldResolver:
    return request.app.state.data_resolver


def get_dispatch_handles(request: Request) -> DispatcherRegistry:
    return request.app.state.dispatch_handles


Events = Annotated[EventSink, Depends(get_event_sink)]
Resolver = Annotated[DataBoundFieldResolver, Depends(get_resolver)]
DispatchHandles = Annotated[DispatcherRegistry, Depends(get_dispatch_handles)]


def get_approval_workflow(db: DbSession, events: Events) -> ApprovalWorkflow:
    return ApprovalWorkflow(ApprovalRepository(db), events=events, settings=get_settings())


Approvals = Annotated[ApprovalWorkflow, Depends(get_approval_workflow)]


def get_button_dispatcher(db: DbSession, events: Events, approvals: Approvals) -> ButtonDispatcher:
    return ButtonDispatcher(SubmissionRepository(db), approvals, events=events)


Dispatcher = Annotated[ButtonDispatcher, Depends(get_button_dispatcher)]
