"""
Core Exceptions

Error taxonomy for the form engine. Every failure that crosses an engine
boundary (provider, store, expression evaluation, configuration) is converted
to one of these before it reaches a caller.
"""

from typing import Any


class FormflowError(Exception):
    """
    Base class for all engine errors.

    status_code is the HTTP status routers use when the error reaches the API.
    """

    status_code: int = 400

    def __init__(self, message: str = "Form engine error"):
        self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": type(self).__name__, "message": self.message}


class FormValidationError(FormflowError):
    """
    Field-level validation failed.

    Recoverable: the caller shows errors inline next to each field.
    """

    status_code = 422

    def __init__(self, errors: dict[str, str], message: str = "Form has validation errors"):
        self.errors = dict(errors)
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["errors"] = self.errors
        return payload


class ActionValidationFailed(FormflowError):
    """A button's own rule failed, or its confirmation input was incomplete."""

    status_code = 422


class MissingSubmissionError(ActionValidationFailed):
    """approve/reject clicked without a resolvable submission id."""


class ProviderError(FormflowError):
    """An external data source was unreachable or rejected the call."""

    status_code = 502

    def __init__(self, message: str, source_id: str | None = None):
        self.source_id = source_id
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["source_id"] = self.source_id
        return payload


class StoreError(ProviderError):
    """The submission or approval store failed."""


class InvalidStateTransition(FormflowError):
    """
    An approval request is no longer pending.

    Callers must re-fetch the request to learn how it was resolved.
    """

    status_code = 409

    def __init__(self, message: str, current_status: str | None = None):
        self.current_status = current_status
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["current_status"] = self.current_status
        return payload


class UnknownActionType(FormflowError):
    """A button is configured with an action outside the supported set."""

    status_code = 422

    def __init__(self, action_type: str):
        self.action_type = action_type
        super().__init__(f"Unknown button action type: {action_type!r}")


class ExpressionError(FormflowError):
    """Rule text could not be parsed, or evaluating it raised."""

    status_code = 422


class FormDefinitionError(FormflowError):
    """A form element tree violates structural invariants."""

    status_code = 422

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        super().__init__("Invalid form definition: " + "; ".join(self.problems))

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["problems"] = self.problems
        return payload


class NotFoundError(FormflowError):
    """A form, submission or approval request does not exist."""

    status_code = 404


class ElementNotFoundError(NotFoundError):
    """No element with the given id exists in the tree."""

    def __init__(self, element_id: str):
        self.element_id = element_id
        super().__init__(f"Element not found: {element_id}")


class ApprovalNotPermitted(FormflowError):
    """The actor may not resolve this approval request."""

    status_code = 403


class DuplicatePendingRequest(FormflowError):
    """A pending approval request already exists for the submission."""

    status_code = 409
