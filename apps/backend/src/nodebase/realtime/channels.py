"""Per node type status channels."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

from ..workflow.schema import NodeType

STATUS_TOPIC = "status"

NodeStatus = Literal["loading", "success", "error"]


class StatusEvent(BaseModel):
    """A node status update pushed to editor subscribers."""

    channel: str
    topic: str = STATUS_TOPIC
    node_id: str
    status: NodeStatus
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Channel(BaseModel):
    """A named channel whose ``status`` topic carries node status events."""

    name: str

    def status(self, node_id: str, status: NodeStatus) -> StatusEvent:
        return StatusEvent(channel=self.name, node_id=node_id, status=status)


manual_trigger_channel = Channel(name="manual-trigger-execution")
http_request_channel = Channel(name="http-request-execution")
google_form_trigger_channel = Channel(name="google-form-trigger-execution")
stripe_trigger_channel = Channel(name="stripe-trigger-execution")

CHANNELS: dict[NodeType, Channel] = {
    NodeType.INITIAL: manual_trigger_channel,
    NodeType.MANUAL_TRIGGER: manual_trigger_channel,
    NodeType.HTTP_REQUEST: http_request_channel,
    NodeType.GOOGLE_FORM_TRIGGER: google_form_trigger_channel,
    NodeType.STRIPE_TRIGGER: stripe_trigger_channel,
}

CHANNEL_NAMES = sorted({channel.name for channel in CHANNELS.values()})


def channel_for(node_type: NodeType) -> Channel:
    return CHANNELS[node_type]


def latest_status(
    events: Iterable[StatusEvent],
    channel: str,
    topic: str,
    node_id: str,
) -> str:
    """Most recent status for one node, or ``"initial"`` when nothing matched."""
    matching = [
        (e.created_at, i, e)
        for i, e in enumerate(events)
        if e.channel == channel and e.topic == topic and e.node_id == node_id
    ]
    if not matching:
        return "initial"
    # Equal timestamps fall back to arrival order
    return max(matching, key=lambda item: item[:2])[2].status
