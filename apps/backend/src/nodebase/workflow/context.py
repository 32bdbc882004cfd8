"""The key-value state threaded through a workflow run."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)

TRIGGER_WRITER = "trigger"


class ContextWrite(BaseModel):
    """One recorded write: which node put which value under which key."""

    key: str
    value: Any
    written_by: str


class WorkflowContext(Mapping[str, Any]):
    """Append-only, ordered record of context writes.

    The mapping view exposes the latest value per key. The full write history
    is kept so ``provenance`` can answer who wrote a key, including keys that
    were later overwritten by another node.
    """

    __slots__ = ("_writes", "_view")

    def __init__(self, writes: tuple[ContextWrite, ...] = ()):
        self._writes = writes
        view: dict[str, Any] = {}
        for write in writes:
            view[write.key] = write.value
        self._view = view

    @classmethod
    def from_initial(cls, initial_data: Mapping[str, Any] | None) -> WorkflowContext:
        """Seed a context from a trigger payload."""
        writes = tuple(
            ContextWrite(key=key, value=value, written_by=TRIGGER_WRITER)
            for key, value in (initial_data or {}).items()
        )
        return cls(writes)

    def with_value(self, key: str, value: Any, written_by: str) -> WorkflowContext:
        """Return a new context with ``key`` set. The receiver is unchanged."""
        if key in self._view:
            previous = self.provenance(key)
            if previous != written_by:
                logger.warning(
                    "Context key %r written by %s overwrites value from %s",
                    key,
                    written_by,
                    previous,
                )
        return WorkflowContext(self._writes + (ContextWrite(key=key, value=value, written_by=written_by),))

    def provenance(self, key: str) -> str | None:
        """Return the id of the node that last wrote ``key``."""
        for write in reversed(self._writes):
            if write.key == key:
                return write.written_by
        return None

    def history(self, key: str | None = None) -> list[ContextWrite]:
        if key is None:
            return list(self._writes)
        return [w for w in self._writes if w.key == key]

    def to_dict(self) -> dict[str, Any]:
        return dict(self._view)

    def __getitem__(self, key: str) -> Any:
        return self._view[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._view)

    def __len__(self) -> int:
        return len(self._view)

    def __repr__(self) -> str:
        return f"WorkflowContext({self._view!r})"
