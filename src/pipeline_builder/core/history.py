"""Linear undo/redo history of graph snapshots."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from pipeline_builder.core.datatypes import Connection, PipelineNode
from pipeline_builder.core.triggers import Triggers

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 200


@dataclass(frozen=True)
class Snapshot:
    """An immutable copy of the graph state at one point in time."""

    nodes: tuple[PipelineNode, ...]
    connections: tuple[Connection, ...]
    triggers: Triggers
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def capture(
        cls,
        nodes: list[PipelineNode] | tuple[PipelineNode, ...],
        connections: list[Connection] | tuple[Connection, ...],
        triggers: Triggers,
    ) -> Snapshot:
        """Copy the given state into a snapshot that shares no mutable config."""
        return cls(
            nodes=tuple(node.detached() for node in nodes),
            connections=tuple(connections),
            triggers=triggers,
        )


class History:
    """Append-only snapshot list with a cursor.

    Pushing drops every snapshot after the cursor, then appends; once the
    list exceeds *limit* the oldest snapshot is discarded.  The cursor is
    always a valid index.

    Args:
        initial: The snapshot the history starts from.
        limit: Maximum number of retained snapshots.
    """

    def __init__(self, initial: Snapshot, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        """Initialise the history with a single snapshot.

        Args:
            initial: Starting snapshot (the state undo returns to at most).
            limit: Maximum number of retained snapshots, at least 1.
        """
        if limit < 1:
            msg = f"History limit must be at least 1, got {limit}"
            raise ValueError(msg)
        self._limit = limit
        self._snapshots: list[Snapshot] = [initial]
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._snapshots)

    @property
    def limit(self) -> int:
        """Return the retention cap."""
        return self._limit

    @property
    def cursor(self) -> int:
        """Return the index of the current snapshot."""
        return self._cursor

    @property
    def current(self) -> Snapshot:
        """Return the snapshot at the cursor."""
        return self._snapshots[self._cursor]

    @property
    def can_undo(self) -> bool:
        """Return ``True`` if there is an older snapshot to go back to."""
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        """Return ``True`` if a newer snapshot exists after the cursor."""
        return self._cursor < len(self._snapshots) - 1

    def push(self, snapshot: Snapshot) -> None:
        """Record *snapshot* as the new current state."""
        del self._snapshots[self._cursor + 1 :]
        self._snapshots.append(snapshot)
        if len(self._snapshots) > self._limit:
            self._snapshots.pop(0)
            logger.debug("History limit %d reached, dropped oldest snapshot", self._limit)
        self._cursor = len(self._snapshots) - 1

    def undo(self) -> Snapshot | None:
        """Move the cursor back one step and return that snapshot, or ``None``."""
        if not self.can_undo:
            return None
        self._cursor -= 1
        return self._snapshots[self._cursor]

    def redo(self) -> Snapshot | None:
        """Move the cursor forward one step and return that snapshot, or ``None``."""
        if not self.can_redo:
            return None
        self._cursor += 1
        return self._snapshots[self._cursor]

    def reset(self, initial: Snapshot) -> None:
        """Discard every snapshot and start again from *initial*."""
        self._snapshots = [initial]
        self._cursor = 0
