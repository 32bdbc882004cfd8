"""Workflow execution: order the graph, then fold the context through each node."""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any

from .context import WorkflowContext
from .errors import NonRetriableError, WorkflowNotFoundError
from .report import Execution
from .schema import Node, WorkflowEvent
from .sorter import topological_sort
from .store import WorkflowStore

if TYPE_CHECKING:
    from ..executions.registry import ExecutorRegistry
    from ..jobs.runner import JobContext, Publisher, StepRunner

logger = logging.getLogger(__name__)


class WorkflowExecutor:
    """Executes a stored workflow in topological order.

    Nodes run one after another even when the graph would allow parallel
    branches. The first failing node ends the run; effects of nodes that
    already ran are not undone. The execution record shares its ID with the
    triggering event.
    """

    def __init__(self, store: WorkflowStore, registry: ExecutorRegistry):
        self.store = store
        self.registry = registry

    async def handle(self, ctx: JobContext) -> dict[str, Any]:
        """Job runner entry point."""
        return await self.execute(ctx.event, ctx.step, ctx.publish)

    async def execute(
        self,
        event: WorkflowEvent,
        step: StepRunner,
        publish: Publisher,
    ) -> dict[str, Any]:
        workflow_id = event.workflow_id
        if not workflow_id:
            raise NonRetriableError("Workflow ID is missing from the event", "missing_workflow_id")
        execution_id = event.id or uuid.uuid4().hex

        execution: Execution = await step.run(
            "save-execution", lambda: self._start_execution(workflow_id, execution_id)
        )
        logger.info("Execution %s of workflow %s started", execution.id, workflow_id)

        sorted_nodes: list[Node] = await step.run(
            "prepare-workflow", lambda: self._prepare(workflow_id)
        )

        context = WorkflowContext.from_initial(event.initial_data)
        for node in sorted_nodes:
            executor = self.registry.get(node.type)
            logger.info("Execution %s: running node %s (%s)", execution.id, node.id, node.type.value)
            context = await executor(
                data=node.data,
                node_id=node.id,
                context=context,
                step=step,
                publish=publish,
            )

        result = context.to_dict()
        await step.run(
            "complete-execution", lambda: self.store.complete_execution(execution.id, result)
        )
        logger.info("Execution %s of workflow %s completed", execution.id, workflow_id)

        return {"workflowId": workflow_id, "executionId": execution.id, "result": result}

    async def on_failure(self, event: WorkflowEvent, error: BaseException) -> None:
        """Mark the run's execution record failed once the runner gives up."""
        logger.error("Workflow %s run %s failed: %s", event.workflow_id, event.id, error)
        if event.id:
            self.store.fail_execution(
                event.id, str(error), getattr(error, "error_type", type(error).__name__)
            )

    def _start_execution(self, workflow_id: str, execution_id: str) -> Execution:
        if not self.store.exists(workflow_id):
            raise WorkflowNotFoundError(workflow_id)
        return self.store.create_execution(workflow_id, execution_id)

    def _prepare(self, workflow_id: str) -> list[Node]:
        nodes, connections = self.store.load_graph(workflow_id)
        return topological_sort(nodes, connections)
