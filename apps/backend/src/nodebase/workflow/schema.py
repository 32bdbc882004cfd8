"""Pydantic models defining the workflow graph structure."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NodeType(str, Enum):
    """Closed set of node kinds. Every member must have a registered executor."""

    INITIAL = "INITIAL"
    MANUAL_TRIGGER = "MANUAL_TRIGGER"
    HTTP_REQUEST = "HTTP_REQUEST"
    GOOGLE_FORM_TRIGGER = "GOOGLE_FORM_TRIGGER"
    STRIPE_TRIGGER = "STRIPE_TRIGGER"


class Position(BaseModel):
    """Editor canvas coordinates. Not used during execution."""

    x: float = 0
    y: float = 0


class Node(BaseModel):
    """A single unit of work in the workflow graph."""

    id: str
    type: NodeType
    data: dict[str, Any] = {}
    workflow_id: str = ""
    position: Position = Position()


class Connection(BaseModel):
    """A directed dependency edge: ``from_node_id`` runs before ``to_node_id``."""

    from_node_id: str
    to_node_id: str
    from_output: str = "main"
    to_input: str = "main"


class Workflow(BaseModel):
    """A workflow and its graph."""

    id: str
    name: str
    nodes: list[Node] = []
    connections: list[Connection] = []
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class WorkflowEvent(BaseModel):
    """The event that starts a workflow run."""

    name: str = "workflows/execute.workflow"
    id: str = ""
    data: dict[str, Any] = {}

    @property
    def workflow_id(self) -> str | None:
        return self.data.get("workflowId")

    @property
    def initial_data(self) -> dict[str, Any]:
        return self.data.get("initialData") or {}
