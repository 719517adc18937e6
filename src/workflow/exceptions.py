"""Workflow errors surfaced to transition callers."""

from typing import Optional


class WorkflowError(Exception):
    """Base class for workflow errors."""

    error_code = "WORKFLOW_ERROR"


class InvalidTransition(WorkflowError):
    """
    Raised when a requested status change violates the workflow rules.

    No event is emitted and nothing is written when this is raised.
    """

    error_code = "INVALID_TRANSITION"

    def __init__(
        self,
        message: str,
        current_status: Optional[str] = None,
        target_status: Optional[str] = None,
    ):
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(message)


class EntityNotFound(WorkflowError):
    """Raised when an order, task or user id does not resolve."""

    error_code = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")
