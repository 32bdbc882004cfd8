"""Execution record model with markdown rendering."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel


class ExecutionStatus(str, Enum):
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class Execution(BaseModel):
    """One run of a workflow."""

    id: str
    workflow_id: str
    status: ExecutionStatus = ExecutionStatus.RUNNING
    output: dict[str, Any] | None = None
    error: str | None = None
    error_type: str | None = None
    started_at: datetime
    completed_at: datetime | None = None

    def to_markdown(self) -> str:
        lines = [
            f"# Execution `{self.id}`",
            "",
            f"**Workflow ID:** `{self.workflow_id}`",
            f"**Status:** {self.status.value}",
            f"**Started:** {self.started_at.isoformat()}",
        ]
        if self.completed_at:
            duration = (self.completed_at - self.started_at).total_seconds()
            lines.append(f"**Completed:** {self.completed_at.isoformat()}")
            lines.append(f"**Duration:** {duration:.2f}s")
        lines.append("")

        if self.error:
            lines.append("## Error")
            lines.append(f"`{self.error_type or 'error'}`: {self.error}")
            lines.append("")

        if self.output:
            lines.append("## Context")
            lines.append("")
            lines.append("| Key | Value |")
            lines.append("|-----|-------|")
            for key, value in self.output.items():
                detail = str(value)
                if len(detail) > 80:
                    detail = detail[:77] + "..."
                lines.append(f"| `{key}` | {detail} |")

        return "\n".join(lines)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")
