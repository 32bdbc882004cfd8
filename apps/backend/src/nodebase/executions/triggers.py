"""Trigger node executors.

Triggers do no work of their own: whatever started the run (the editor's
execute button, a Google Form submission, a Stripe webhook) already put its
payload into the initial context. They exist so the run reports a status for
the entry node.
"""

from __future__ import annotations

from typing import Any

from ..jobs.runner import Publisher, StepRunner
from ..realtime.channels import (
    Channel,
    google_form_trigger_channel,
    manual_trigger_channel,
    stripe_trigger_channel,
)
from ..workflow.context import WorkflowContext
from .base import NodeExecutor


def passthrough_executor(channel: Channel, step_prefix: str) -> NodeExecutor:
    """Build an executor that returns its context unchanged."""

    async def execute(
        *,
        data: dict[str, Any],
        node_id: str,
        context: WorkflowContext,
        step: StepRunner,
        publish: Publisher,
    ) -> WorkflowContext:
        await publish(channel.status(node_id, "loading"))
        try:
            result = await step.run(f"{step_prefix}-{node_id}", lambda: context)
        except Exception:
            await publish(channel.status(node_id, "error"))
            raise
        await publish(channel.status(node_id, "success"))
        return result

    execute.__name__ = f"{step_prefix.replace('-', '_')}_executor"
    return execute


manual_trigger_executor = passthrough_executor(manual_trigger_channel, "manual-trigger")
google_form_trigger_executor = passthrough_executor(google_form_trigger_channel, "google-form-trigger")
stripe_trigger_executor = passthrough_executor(stripe_trigger_channel, "stripe-trigger")
