"""API models for Nodebase."""

from typing import Any, Optional

from pydantic import BaseModel, Field

from .workflow.schema import Connection, Node


class CreateWorkflowRequest(BaseModel):
    name: Optional[str] = Field(None, description="Workflow name; a random one is used if omitted")


class RenameWorkflowRequest(BaseModel):
    name: str = Field(..., min_length=1)


class SaveWorkflowRequest(BaseModel):
    """Full graph as currently shown in the editor."""

    nodes: list[Node]
    connections: list[Connection] = []


class ExecuteWorkflowRequest(BaseModel):
    initial_data: dict[str, Any] = Field(
        default_factory=dict,
        alias="initialData",
        description="Payload the run's context starts from",
    )

    model_config = {"populate_by_name": True}


class ExecuteWorkflowResponse(BaseModel):
    success: bool = True
    execution_id: str = Field(..., serialization_alias="executionId")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str = "Nodebase Backend"
