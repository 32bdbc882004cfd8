"""Background functions registered with the job runner."""

from __future__ import annotations

from ..workflow.executor import WorkflowExecutor
from .runner import EXECUTE_WORKFLOW_EVENT, JobFunction


def execute_workflow_function(executor: WorkflowExecutor) -> JobFunction:
    return JobFunction(
        id="execute-workflow",
        event=EXECUTE_WORKFLOW_EVENT,
        handler=executor.handle,
        on_failure=executor.on_failure,
    )
