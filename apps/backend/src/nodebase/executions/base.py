"""Executor interface shared by every node type."""

from __future__ import annotations

from typing import Any, Protocol

from ..jobs.runner import Publisher, StepRunner
from ..workflow.context import WorkflowContext


class NodeExecutor(Protocol):
    """Runs one node and returns the context for the next one.

    Implementations publish ``loading`` before doing any work and ``success``
    or ``error`` once they finish, on their node type's channel.
    """

    async def __call__(
        self,
        *,
        data: dict[str, Any],
        node_id: str,
        context: WorkflowContext,
        step: StepRunner,
        publish: Publisher,
    ) -> WorkflowContext: ...
