"""In-process job runner with durable-step semantics.

Handlers receive a ``JobContext`` holding the triggering event, a ``step``
object and a ``publish`` callable. ``step.run(name, fn)`` memoizes the result
of ``fn`` under ``name`` for the lifetime of the run, so when a retriable
error makes the runner re-invoke the handler, completed steps are replayed
from memory instead of being executed again.
"""

from __future__ import annotations

import inspect
import logging
import uuid
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal, Protocol

from pydantic import BaseModel

from ..realtime.channels import StatusEvent
from ..workflow.errors import NonRetriableError
from ..workflow.schema import WorkflowEvent

logger = logging.getLogger(__name__)

EXECUTE_WORKFLOW_EVENT = "workflows/execute.workflow"

Publisher = Callable[[StatusEvent], Awaitable[None]]


class StepRunner(Protocol):
    async def run(self, name: str, fn: Callable[[], Any]) -> Any: ...


class LocalStep:
    """Step runner backed by a per-run memo table."""

    def __init__(self, memo: dict[str, Any]):
        self._memo = memo
        self._seen: set[str] = set()

    async def run(self, name: str, fn: Callable[[], Any]) -> Any:
        if name in self._seen:
            raise NonRetriableError(f"Duplicate step name in one run: {name}", "duplicate_step")
        self._seen.add(name)

        if name in self._memo:
            logger.debug("Replaying memoized step %s", name)
            return self._memo[name]

        result = fn()
        if inspect.isawaitable(result):
            result = await result
        self._memo[name] = result
        return result


@dataclass
class JobContext:
    event: WorkflowEvent
    step: StepRunner
    publish: Publisher
    run_id: str
    attempt: int


@dataclass
class JobFunction:
    """A handler bound to an event name, with an optional failure hook."""

    id: str
    event: str
    handler: Callable[[JobContext], Awaitable[Any]]
    on_failure: Callable[[WorkflowEvent, BaseException], Awaitable[None]] | None = None


class RunResult(BaseModel):
    run_id: str
    function_id: str
    status: Literal["completed", "failed"]
    attempts: int
    output: Any = None
    error: str | None = None
    error_type: str | None = None


class LocalJobRunner:
    """Dispatches events to registered functions and retries transient failures."""

    def __init__(self, publish: Publisher, max_attempts: int = 4):
        self.publish = publish
        self.max_attempts = max(1, max_attempts)
        self._functions: dict[str, list[JobFunction]] = defaultdict(list)

    def register(self, function: JobFunction) -> JobFunction:
        self._functions[function.event].append(function)
        return function

    async def send(self, event: WorkflowEvent) -> list[RunResult]:
        if not event.id:
            event = event.model_copy(update={"id": uuid.uuid4().hex})
        functions = self._functions.get(event.name, [])
        if not functions:
            logger.warning("No functions registered for event %s", event.name)
        return [await self.invoke(function, event) for function in functions]

    async def invoke(self, function: JobFunction, event: WorkflowEvent) -> RunResult:
        run_id = uuid.uuid4().hex
        memo: dict[str, Any] = {}
        last_error: BaseException | None = None
        attempt = 0

        while attempt < self.max_attempts:
            attempt += 1
            ctx = JobContext(
                event=event,
                step=LocalStep(memo),
                publish=self.publish,
                run_id=run_id,
                attempt=attempt,
            )
            try:
                output = await function.handler(ctx)
            except NonRetriableError as e:
                logger.error("Run %s of %s failed permanently: %s", run_id, function.id, e)
                last_error = e
                break
            except Exception as e:
                logger.warning(
                    "Run %s of %s attempt %d/%d failed: %s",
                    run_id,
                    function.id,
                    attempt,
                    self.max_attempts,
                    e,
                )
                last_error = e
                continue
            return RunResult(
                run_id=run_id,
                function_id=function.id,
                status="completed",
                attempts=attempt,
                output=output,
            )

        if last_error is None:
            raise RuntimeError(f"Run {run_id} of {function.id} ended without an attempt")
        if function.on_failure is not None:
            await function.on_failure(event, last_error)

        return RunResult(
            run_id=run_id,
            function_id=function.id,
            status="failed",
            attempts=attempt,
            error=str(last_error),
            error_type=getattr(last_error, "error_type", type(last_error).__name__),
        )


async def send_workflow_execution(
    runner: LocalJobRunner,
    workflow_id: str,
    initial_data: dict[str, Any] | None = None,
    event_id: str | None = None,
) -> list[RunResult]:
    """Fire the event that executes a workflow."""
    event = WorkflowEvent(
        name=EXECUTE_WORKFLOW_EVENT,
        id=event_id or "",
        data={"workflowId": workflow_id, "initialData": initial_data or {}},
    )
    return await runner.send(event)
