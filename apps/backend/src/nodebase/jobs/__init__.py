"""Job runner adapter and the background functions it dispatches."""

from .functions import execute_workflow_function
from .runner import (
    EXECUTE_WORKFLOW_EVENT,
    JobContext,
    JobFunction,
    LocalJobRunner,
    LocalStep,
    RunResult,
    send_workflow_execution,
)

__all__ = [
    "EXECUTE_WORKFLOW_EVENT",
    "JobContext",
    "JobFunction",
    "LocalJobRunner",
    "LocalStep",
    "RunResult",
    "execute_workflow_function",
    "send_workflow_execution",
]
