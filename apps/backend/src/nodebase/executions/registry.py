"""Executor registry: maps node types to executors."""

from __future__ import annotations

import httpx

from ..workflow.errors import UnknownNodeTypeError
from ..workflow.schema import NodeType
from .base import NodeExecutor
from .http_request import HttpRequestExecutor
from .triggers import (
    google_form_trigger_executor,
    manual_trigger_executor,
    stripe_trigger_executor,
)


class ExecutorRegistry:
    """Lookup table from ``NodeType`` to executor.

    The table must cover every ``NodeType`` member; an incomplete table is
    rejected when the registry is built, not when a run reaches the node.
    """

    def __init__(self, executors: dict[NodeType, NodeExecutor]):
        missing = [t.value for t in NodeType if t not in executors]
        if missing:
            raise ValueError(f"No executor registered for node types: {', '.join(missing)}")
        self._executors = dict(executors)

    def get(self, node_type: NodeType | str) -> NodeExecutor:
        try:
            key = NodeType(node_type)
        except ValueError:
            raise UnknownNodeTypeError(str(node_type)) from None
        return self._executors[key]

    def node_types(self) -> list[NodeType]:
        return list(self._executors)


def build_registry(http_client: httpx.AsyncClient) -> ExecutorRegistry:
    """Register the built-in executors. Adding a node type means adding it here."""
    return ExecutorRegistry(
        {
            NodeType.INITIAL: manual_trigger_executor,
            NodeType.MANUAL_TRIGGER: manual_trigger_executor,
            NodeType.HTTP_REQUEST: HttpRequestExecutor(http_client),
            NodeType.GOOGLE_FORM_TRIGGER: google_form_trigger_executor,
            NodeType.STRIPE_TRIGGER: stripe_trigger_executor,
        }
    )
