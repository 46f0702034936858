"""GraphStore — the single owner of the pipeline graph and its undo history.

Every mutation goes through the store.  Structural changes (adding or
removing nodes and connections) schedule a *quick* checkpoint; continuous
edits (node updates, trigger edits) schedule a *slow* one.  Both tiers
share one pending checkpoint, so a burst of mixed edits becomes a single
history entry.
"""

from __future__ import annotations

import copy
import logging
import random
import string
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import fields, replace
from typing import Any

from pipeline_builder.core.config import BuilderSettings
from pipeline_builder.core.datatypes import Connection, NodeTemplate, PipelineNode, Position
from pipeline_builder.core.document import PipelineDocument
from pipeline_builder.core.events import (
    CONNECTION_PENDING,
    HISTORY_CHANGED,
    SELECTION_CHANGED,
    STORE_CHANGED,
    EventBus,
)
from pipeline_builder.core.exceptions import ValidationError
from pipeline_builder.core.history import History, Snapshot
from pipeline_builder.core.timing import Debouncer, TimerFactory
from pipeline_builder.core.triggers import DEFAULT_TRIGGERS, Triggers, ensure_enabled

logger = logging.getLogger(__name__)

IdFactory = Callable[[str], str]

# Node fields ``update_node`` may change.
_UPDATABLE_FIELDS = frozenset(f.name for f in fields(PipelineNode)) - {"id"}

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id(prefix: str) -> str:
    """Return ``<prefix>-<epoch ms>-<9 random characters>``."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


class GraphStore:
    """Holds nodes, connections, triggers, selection and undo history.

    Args:
        settings: Builder settings (history cap and checkpoint delays).
        event_bus: Bus the store publishes change notifications on.
        timer_factory: Timer factory for the checkpoint debouncers.
        id_factory: Generates ids from a ``"node"``/``"conn"`` prefix.
    """

    def __init__(
        self,
        *,
        settings: BuilderSettings | None = None,
        event_bus: EventBus | None = None,
        timer_factory: TimerFactory | None = None,
        id_factory: IdFactory | None = None,
    ) -> None:
        """Initialise an empty graph with the default trigger set.

        Args:
            settings: Builder settings; defaults if ``None``.
            event_bus: Event bus; a private one if ``None``.
            timer_factory: Timer factory; threads if ``None``.
            id_factory: Id generator; ``generate_id`` if ``None``.
        """
        self._settings = settings or BuilderSettings()
        self.event_bus = event_bus or EventBus()
        self._new_id = id_factory or generate_id
        self._lock = threading.RLock()

        self._nodes: list[PipelineNode] = []
        self._connections: list[Connection] = []
        self._triggers: Triggers = DEFAULT_TRIGGERS
        self._selected: str | None = None
        self._connecting_from: str | None = None
        self._replaying = False

        self._history = History(
            Snapshot.capture(self._nodes, self._connections, self._triggers),
            limit=self._settings.history_limit,
        )
        self._quick = Debouncer(self._settings.quick_delay, self._checkpoint, timer_factory=timer_factory)
        self._slow = Debouncer(self._settings.slow_delay, self._checkpoint, timer_factory=timer_factory)

    # ── read access ───────────────────────────────────────────

    @property
    def nodes(self) -> tuple[PipelineNode, ...]:
        """Return the nodes in insertion order."""
        return tuple(self._nodes)

    @property
    def connections(self) -> tuple[Connection, ...]:
        """Return the connections in insertion order."""
        return tuple(self._connections)

    @property
    def triggers(self) -> Triggers:
        """Return the current trigger configuration."""
        return self._triggers

    @property
    def selected_node(self) -> str | None:
        """Return the id of the selected node, if any."""
        return self._selected

    @property
    def connecting_from(self) -> str | None:
        """Return the source node id of the pending connection gesture."""
        return self._connecting_from

    @property
    def history(self) -> History:
        """Return the undo history."""
        return self._history

    @property
    def can_undo(self) -> bool:
        """Return ``True`` if an older snapshot exists."""
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        """Return ``True`` if a newer snapshot exists."""
        return self._history.can_redo

    @property
    def checkpoint_pending(self) -> bool:
        """Return ``True`` while a checkpoint is scheduled but not yet committed."""
        return self._quick.pending or self._slow.pending

    def get_node(self, node_id: str) -> PipelineNode | None:
        """Return the node with *node_id*, or ``None``."""
        return next((node for node in self._nodes if node.id == node_id), None)

    def find_connection(self, source: str, target: str) -> Connection | None:
        """Return the connection from *source* to *target*, if one exists."""
        return next(
            (conn for conn in self._connections if conn.source == source and conn.target == target),
            None,
        )

    # ── nodes ─────────────────────────────────────────────────

    def add_node(
        self,
        node_type: str,
        name: str,
        position: Position,
        config: Mapping[str, Any] | None = None,
        inputs: tuple[str, ...] = (),
        outputs: tuple[str, ...] = (),
    ) -> PipelineNode:
        """Insert a new node with a fresh id.

        Args:
            node_type: Template tag of the node.
            name: Display name.
            position: Canvas position.
            config: Initial configuration; copied, never shared.
            inputs: Placeholder input slots.
            outputs: Placeholder output slots.

        Returns:
            The inserted node.
        """
        with self._lock:
            node = PipelineNode(
                id=self._new_id("node"),
                type=node_type,
                name=name,
                position=position,
                config=copy.deepcopy(dict(config or {})),
                inputs=tuple(inputs),
                outputs=tuple(outputs),
            )
            self._nodes.append(node)
            logger.debug("Added node %s (%s)", node.id, node.type)
            self._changed(quick=True)
            return node

    def add_node_from_template(self, template: NodeTemplate, position: Position) -> PipelineNode:
        """Insert a node built from a catalog template at *position*."""
        return self.add_node(template.type, template.name, position, template.config)

    def update_node(self, node_id: str, **changes: Any) -> bool:
        """Replace fields of a node.

        Args:
            node_id: The node to update.
            **changes: New values for ``name``, ``type``, ``position``,
                ``config``, ``inputs`` or ``outputs``.

        Returns:
            ``True`` if the node existed and was updated.

        Raises:
            ValidationError: If *changes* names a field nodes do not have.
        """
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            msg = f"Cannot update node field(s): {', '.join(sorted(unknown))}"
            raise ValidationError(msg)
        if "config" in changes:
            changes["config"] = copy.deepcopy(dict(changes["config"]))

        with self._lock:
            for index, node in enumerate(self._nodes):
                if node.id == node_id:
                    self._nodes[index] = replace(node, **changes)
                    self._changed(quick=False)
                    return True
        return False

    def move_node(self, node_id: str, position: Position) -> bool:
        """Move a node; shorthand for ``update_node(node_id, position=...)``."""
        return self.update_node(node_id, position=position)

    def delete_node(self, node_id: str) -> bool:
        """Remove a node and every connection touching it.

        Returns:
            ``True`` if the node existed.
        """
        with self._lock:
            node = self.get_node(node_id)
            if node is None:
                return False
            self._nodes.remove(node)
            self._connections = [conn for conn in self._connections if not conn.touches(node_id)]
            if self._connecting_from == node_id:
                self._connecting_from = None
                self.event_bus.emit(CONNECTION_PENDING, node_id=None)
            if self._selected == node_id:
                self._set_selection(None)
            logger.debug("Deleted node %s", node_id)
            self._changed(quick=True)
            return True

    def select_node(self, node_id: str | None) -> None:
        """Select a node, or clear the selection with ``None``."""
        with self._lock:
            if node_id is not None and self.get_node(node_id) is None:
                node_id = None
            if node_id != self._selected:
                self._set_selection(node_id)

    # ── connections ───────────────────────────────────────────

    def add_connection(
        self,
        source: str,
        target: str,
        source_handle: str | None = None,
        target_handle: str | None = None,
    ) -> Connection:
        """Append a connection with a fresh id.

        Self-loops and duplicates are not rejected here; the wiring
        gesture (``end_connection``) prevents them.
        """
        with self._lock:
            connection = Connection(
                id=self._new_id("conn"),
                source=source,
                target=target,
                source_handle=source_handle,
                target_handle=target_handle,
            )
            self._connections.append(connection)
            logger.debug("Connected %s -> %s", source, target)
            self._changed(quick=True)
            return connection

    def delete_connection(self, connection_id: str) -> bool:
        """Remove a connection by id; returns ``True`` if it existed."""
        with self._lock:
            remaining = [conn for conn in self._connections if conn.id != connection_id]
            if len(remaining) == len(self._connections):
                return False
            self._connections = remaining
            self._changed(quick=True)
            return True

    def clear(self) -> None:
        """Remove every node and connection."""
        with self._lock:
            self._nodes = []
            self._connections = []
            if self._connecting_from is not None:
                self._connecting_from = None
                self.event_bus.emit(CONNECTION_PENDING, node_id=None)
            if self._selected is not None:
                self._set_selection(None)
            logger.info("Cleared pipeline")
            self._changed(quick=True)

    def start_connection(self, node_id: str) -> None:
        """Begin a wiring gesture from *node_id*."""
        with self._lock:
            self._connecting_from = node_id
        self.event_bus.emit(CONNECTION_PENDING, node_id=node_id)

    def end_connection(self, target: str) -> Connection | None:
        """Finish the wiring gesture at *target*.

        Nothing is created when no gesture is pending, when *target* is
        the source itself, or when the pair is already connected.  The
        pending source is cleared in every case.

        Returns:
            The new connection, or ``None``.
        """
        with self._lock:
            source = self._connecting_from
            if source is None:
                return None
            self._connecting_from = None
            connection = None
            if source != target and self.find_connection(source, target) is None:
                connection = self.add_connection(source, target)
        self.event_bus.emit(CONNECTION_PENDING, node_id=None)
        return connection

    def cancel_connection(self) -> None:
        """Abandon the pending wiring gesture."""
        with self._lock:
            if self._connecting_from is None:
                return
            self._connecting_from = None
        self.event_bus.emit(CONNECTION_PENDING, node_id=None)

    # ── triggers ──────────────────────────────────────────────

    def update_triggers(self, triggers: Triggers) -> Triggers:
        """Replace the trigger configuration.

        A configuration without any enabled kind is replaced by the
        default trigger set.

        Returns:
            The configuration actually stored.
        """
        with self._lock:
            normalized = ensure_enabled(triggers)
            if normalized is not triggers:
                logger.warning("Trigger configuration had no enabled trigger, using the default")
            self._triggers = normalized
            self._changed(quick=False)
            return normalized

    # ── history ───────────────────────────────────────────────

    def undo(self) -> bool:
        """Restore the previous snapshot; returns ``False`` at the oldest one."""
        with self._lock:
            self.flush_history()
            snapshot = self._history.undo()
            if snapshot is None:
                return False
            self._restore(snapshot)
            return True

    def redo(self) -> bool:
        """Restore the next snapshot; returns ``False`` at the newest one."""
        with self._lock:
            self.flush_history()
            snapshot = self._history.redo()
            if snapshot is None:
                return False
            self._restore(snapshot)
            return True

    def flush_history(self) -> bool:
        """Commit a pending checkpoint now.

        Returns:
            ``True`` if a checkpoint was pending.
        """
        return self._quick.flush() or self._slow.flush()

    # ── documents ─────────────────────────────────────────────

    def to_document(self) -> PipelineDocument:
        """Return the current state as a pipeline document."""
        with self._lock:
            return PipelineDocument(
                nodes=tuple(node.detached() for node in self._nodes),
                connections=tuple(self._connections),
                triggers=self._triggers,
            )

    def load_document(self, document: PipelineDocument) -> None:
        """Replace the whole state with *document*; history restarts there."""
        with self._lock:
            self._quick.cancel()
            self._slow.cancel()
            self._nodes = [node.detached() for node in document.nodes]
            self._connections = list(document.connections)
            self._triggers = ensure_enabled(document.triggers)
            self._connecting_from = None
            self._selected = None
            self._history.reset(Snapshot.capture(self._nodes, self._connections, self._triggers))
            logger.info("Loaded %d nodes and %d connections", len(self._nodes), len(self._connections))
        self.event_bus.emit(CONNECTION_PENDING, node_id=None)
        self.event_bus.emit(SELECTION_CHANGED, node_id=None)
        self.event_bus.emit(STORE_CHANGED)
        self._emit_history()

    # ── internals ─────────────────────────────────────────────

    def _changed(self, *, quick: bool) -> None:
        self.event_bus.emit(STORE_CHANGED)
        if self._replaying:
            return
        # One pending checkpoint: the newly scheduled tier replaces the other.
        if quick:
            self._slow.cancel()
            self._quick()
        else:
            self._quick.cancel()
            self._slow()

    def _checkpoint(self) -> None:
        with self._lock:
            if self._replaying:
                return
            self._history.push(Snapshot.capture(self._nodes, self._connections, self._triggers))
            logger.debug("Checkpoint %d/%d", self._history.cursor + 1, len(self._history))
        self._emit_history()

    def _restore(self, snapshot: Snapshot) -> None:
        self._replaying = True
        try:
            self._nodes = [node.detached() for node in snapshot.nodes]
            self._connections = list(snapshot.connections)
            self._triggers = snapshot.triggers
            if self._selected is not None and self.get_node(self._selected) is None:
                self._set_selection(None)
            if self._connecting_from is not None:
                self._connecting_from = None
                self.event_bus.emit(CONNECTION_PENDING, node_id=None)
            self.event_bus.emit(STORE_CHANGED)
        finally:
            self._replaying = False
        self._emit_history()

    def _set_selection(self, node_id: str | None) -> None:
        self._selected = node_id
        self.event_bus.emit(SELECTION_CHANGED, node_id=node_id)

    def _emit_history(self) -> None:
        self.event_bus.emit(HISTORY_CHANGED, can_undo=self.can_undo, can_redo=self.can_redo)
