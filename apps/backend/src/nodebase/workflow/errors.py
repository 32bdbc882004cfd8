"""Error taxonomy for workflow execution.

Anything derived from ``NonRetriableError`` tells the job runner to stop the
run immediately. Every other exception raised from a step (for example
``httpx.HTTPError``) is treated as transient and left to the runner's retry
policy.
"""

from __future__ import annotations


class WorkflowError(Exception):
    """Base class for errors raised by the execution core."""

    def __init__(self, message: str, error_type: str = "workflow_error"):
        self.error_type = error_type
        super().__init__(message)


class NonRetriableError(WorkflowError):
    """Signals the job runner must not re-attempt the failing step."""

    def __init__(self, message: str, error_type: str = "non_retriable"):
        super().__init__(message, error_type)


class NodeConfigurationError(NonRetriableError):
    """A node is missing a required field or has an invalid one."""

    def __init__(self, message: str):
        super().__init__(message, "configuration_error")


class TemplateResolutionError(NonRetriableError):
    """A template could not be resolved against the context."""

    def __init__(self, message: str):
        super().__init__(message, "template_error")


class BodyValidationError(NonRetriableError):
    """A request body did not resolve to valid JSON."""

    def __init__(self, message: str):
        super().__init__(message, "body_validation_error")


class CycleDetectedError(NonRetriableError):
    """The workflow's connections contain a cycle."""

    def __init__(self, node_ids: list[str]):
        self.node_ids = node_ids
        super().__init__(
            f"Cycle detected in workflow connections involving nodes: {', '.join(node_ids)}",
            "cycle_detected",
        )


class UnknownNodeTypeError(NonRetriableError):
    """No executor is registered for a node's type tag."""

    def __init__(self, node_type: str):
        self.node_type = node_type
        super().__init__(f"No executor found for node type: {node_type}", "unknown_node_type")


class WorkflowNotFoundError(NonRetriableError):
    def __init__(self, workflow_id: str):
        self.workflow_id = workflow_id
        super().__init__(f"Workflow not found: {workflow_id}", "workflow_not_found")
