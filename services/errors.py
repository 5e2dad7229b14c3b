"""
Error taxonomy shared by the workflow components.

NotFound, InvalidTransition, Validation and Storage errors abort the primary
operation and reach the caller. SideEffectError is raised by post-commit
effects and is only ever logged by the workflow.
"""
from __future__ import annotations


class WorkflowError(Exception):
    """Base class for every error raised by the application workflow."""


class NotFoundError(WorkflowError):
    def __init__(self, resource_type: str, resource_id: str):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type.capitalize()} {resource_id} not found")


class InvalidTransitionError(WorkflowError):
    def __init__(self, current: str, target: str, reason: str | None = None):
        self.current = current
        self.target = target
        msg = f"Cannot move application from '{current}' to '{target}'"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class ValidationError(WorkflowError):
    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class StorageError(WorkflowError):
    """The record store could not complete a read or write."""


class SideEffectError(WorkflowError):
    """An audit, notification or statistics write failed after the primary commit."""
