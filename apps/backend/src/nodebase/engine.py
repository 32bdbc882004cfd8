"""Wires the store, executors, realtime hub and job runner together."""

from __future__ import annotations

import httpx

from .config import Settings
from .executions.registry import ExecutorRegistry, build_registry
from .jobs import LocalJobRunner, execute_workflow_function
from .realtime.hub import RealtimeHub
from .workflow.executor import WorkflowExecutor
from .workflow.store import WorkflowStore


class Engine:
    """Everything one process needs to run workflows.

    Built explicitly and handed to whoever needs it; nothing here is a
    module-level singleton.
    """

    def __init__(
        self,
        store: WorkflowStore,
        http_client: httpx.AsyncClient,
        hub: RealtimeHub,
        max_attempts: int = 4,
        registry: ExecutorRegistry | None = None,
    ):
        self.store = store
        self.http = http_client
        self.hub = hub
        self.registry = registry or build_registry(http_client)
        self.executor = WorkflowExecutor(store, self.registry)
        self.runner = LocalJobRunner(publish=hub.publish, max_attempts=max_attempts)
        self.runner.register(execute_workflow_function(self.executor))

    async def aclose(self) -> None:
        await self.http.aclose()
        self.store.close()


def create_engine(settings: Settings) -> Engine:
    return Engine(
        store=WorkflowStore(settings.database_path),
        http_client=httpx.AsyncClient(timeout=settings.http_timeout),
        hub=RealtimeHub(queue_size=settings.realtime_queue_size),
        max_attempts=settings.max_attempts,
    )
