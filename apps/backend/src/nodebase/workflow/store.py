"""SQLite backed workflow storage."""

from __future__ import annotations

import json
import sqlite3
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .database import init_db
from .errors import UnknownNodeTypeError
from .report import Execution, ExecutionStatus
from .schema import Connection, Node, NodeType, Position, Workflow


def _now() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowStore:
    """Stores workflows, their graphs and their execution history."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn = init_db(db_path)
        self._lock = threading.Lock()

    def close(self) -> None:
        self._conn.close()

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    def create(self, name: str) -> Workflow:
        """Create an empty workflow holding a single INITIAL node."""
        workflow_id = uuid.uuid4().hex
        workflow = Workflow(
            id=workflow_id,
            name=name,
            nodes=[Node(id=uuid.uuid4().hex, type=NodeType.INITIAL, workflow_id=workflow_id)],
        )
        self.save(workflow)
        return workflow

    def save(self, workflow: Workflow) -> str:
        """Insert or replace a workflow and its whole graph. Returns the ID."""
        now = _now().isoformat()
        with self._lock, self._conn:
            self._conn.execute(
                """
                INSERT INTO workflows (id, name, created_at, updated_at) VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET name = excluded.name, updated_at = excluded.updated_at
                """,
                (workflow.id, workflow.name, workflow.created_at.isoformat(), now),
            )
            self._conn.execute("DELETE FROM connections WHERE workflow_id = ?", (workflow.id,))
            self._conn.execute("DELETE FROM nodes WHERE workflow_id = ?", (workflow.id,))
            self._conn.executemany(
                """
                INSERT INTO nodes (id, workflow_id, type, data, position_x, position_y, ordinal)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        node.id,
                        workflow.id,
                        node.type.value,
                        json.dumps(node.data),
                        node.position.x,
                        node.position.y,
                        ordinal,
                    )
                    for ordinal, node in enumerate(workflow.nodes)
                ],
            )
            self._conn.executemany(
                """
                INSERT INTO connections (workflow_id, from_node_id, to_node_id, from_output, to_input)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (workflow.id, c.from_node_id, c.to_node_id, c.from_output, c.to_input)
                    for c in workflow.connections
                ],
            )
        return workflow.id

    def load(self, workflow_id: str) -> Workflow | None:
        """Load a workflow with its nodes and connections."""
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM workflows WHERE id = ?", (workflow_id,)
            ).fetchone()
        if row is None:
            return None
        nodes, connections = self.load_graph(workflow_id)
        return Workflow(
            id=row["id"],
            name=row["name"],
            nodes=nodes,
            connections=connections,
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def exists(self, workflow_id: str) -> bool:
        with self._lock:
            row = self._conn.execute(
                "SELECT 1 FROM workflows WHERE id = ?", (workflow_id,)
            ).fetchone()
        return row is not None

    def load_graph(self, workflow_id: str) -> tuple[list[Node], list[Connection]]:
        """Return the nodes (in saved order) and connections of a workflow."""
        with self._lock:
            node_rows = self._conn.execute(
                "SELECT * FROM nodes WHERE workflow_id = ? ORDER BY ordinal", (workflow_id,)
            ).fetchall()
            conn_rows = self._conn.execute(
                "SELECT * FROM connections WHERE workflow_id = ? ORDER BY id", (workflow_id,)
            ).fetchall()
        nodes = [_row_to_node(row) for row in node_rows]
        connections = [
            Connection(
                from_node_id=row["from_node_id"],
                to_node_id=row["to_node_id"],
                from_output=row["from_output"],
                to_input=row["to_input"],
            )
            for row in conn_rows
        ]
        return nodes, connections

    def list_workflows(self) -> list[Workflow]:
        """List all workflows, most recently updated first. Graphs are not loaded."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM workflows ORDER BY updated_at DESC"
            ).fetchall()
        return [
            Workflow(
                id=row["id"],
                name=row["name"],
                created_at=datetime.fromisoformat(row["created_at"]),
                updated_at=datetime.fromisoformat(row["updated_at"]),
            )
            for row in rows
        ]

    def rename(self, workflow_id: str, name: str) -> bool:
        with self._lock, self._conn:
            cur = self._conn.execute(
                "UPDATE workflows SET name = ?, updated_at = ? WHERE id = ?",
                (name, _now().isoformat(), workflow_id),
            )
        return cur.rowcount > 0

    def delete(self, workflow_id: str) -> bool:
        """Delete a workflow and everything it owns. Returns True if it existed."""
        with self._lock, self._conn:
            cur = self._conn.execute("DELETE FROM workflows WHERE id = ?", (workflow_id,))
        return cur.rowcount > 0

    def delete_node(self, workflow_id: str, node_id: str) -> bool:
        """Delete one node; its connections go with it."""
        with self._lock, self._conn:
            cur = self._conn.execute(
                "DELETE FROM nodes WHERE id = ? AND workflow_id = ?", (node_id, workflow_id)
            )
        return cur.rowcount > 0

    # ------------------------------------------------------------------
    # Executions
    # ------------------------------------------------------------------

    def create_execution(self, workflow_id: str, execution_id: str | None = None) -> Execution:
        execution = Execution(
            id=execution_id or uuid.uuid4().hex,
            workflow_id=workflow_id,
            started_at=_now(),
        )
        with self._lock, self._conn:
            self._conn.execute(
                """
                INSERT INTO executions (id, workflow_id, status, started_at) VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO NOTHING
                """,
                (execution.id, workflow_id, execution.status.value, execution.started_at.isoformat()),
            )
        return execution

    def complete_execution(self, execution_id: str, output: dict[str, Any]) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE executions SET status = ?, output = ?, completed_at = ? WHERE id = ?",
                (
                    ExecutionStatus.SUCCESS.value,
                    json.dumps(output, default=str),
                    _now().isoformat(),
                    execution_id,
                ),
            )

    def fail_execution(self, execution_id: str, error: str, error_type: str | None = None) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                """
                UPDATE executions SET status = ?, error = ?, error_type = ?, completed_at = ?
                WHERE id = ?
                """,
                (ExecutionStatus.FAILED.value, error, error_type, _now().isoformat(), execution_id),
            )

    def get_execution(self, execution_id: str) -> Execution | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM executions WHERE id = ?", (execution_id,)
            ).fetchone()
        return _row_to_execution(row) if row is not None else None

    def list_executions(self, workflow_id: str | None = None) -> list[Execution]:
        """List executions, most recent first."""
        with self._lock:
            if workflow_id is None:
                rows = self._conn.execute(
                    "SELECT * FROM executions ORDER BY started_at DESC"
                ).fetchall()
            else:
                rows = self._conn.execute(
                    "SELECT * FROM executions WHERE workflow_id = ? ORDER BY started_at DESC",
                    (workflow_id,),
                ).fetchall()
        return [_row_to_execution(row) for row in rows]


def _row_to_node(row: sqlite3.Row) -> Node:
    try:
        node_type = NodeType(row["type"])
    except ValueError:
        raise UnknownNodeTypeError(row["type"]) from None
    return Node(
        id=row["id"],
        type=node_type,
        data=json.loads(row["data"]),
        workflow_id=row["workflow_id"],
        position=Position(x=row["position_x"], y=row["position_y"]),
    )


def _row_to_execution(row: sqlite3.Row) -> Execution:
    return Execution(
        id=row["id"],
        workflow_id=row["workflow_id"],
        status=ExecutionStatus(row["status"]),
        output=json.loads(row["output"]) if row["output"] else None,
        error=row["error"],
        error_type=row["error_type"],
        started_at=datetime.fromisoformat(row["started_at"]),
        completed_at=datetime.fromisoformat(row["completed_at"]) if row["completed_at"] else None,
    )
