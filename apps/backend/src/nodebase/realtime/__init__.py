"""Realtime node status channels."""

from .channels import CHANNELS, STATUS_TOPIC, Channel, StatusEvent, channel_for, latest_status
from .hub import RealtimeHub

__all__ = [
    "CHANNELS",
    "STATUS_TOPIC",
    "Channel",
    "StatusEvent",
    "RealtimeHub",
    "channel_for",
    "latest_status",
]
