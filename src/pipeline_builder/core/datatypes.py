"""Shared value objects: nodes, connections and node templates."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

# Config values are scalars; ``env`` and JSON-edited fields may hold containers.
ConfigValue = Any


@dataclass(frozen=True)
class Position:
    """A point on the canvas, in canvas coordinates."""

    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> dict[str, float]:
        """Return the position as a plain mapping."""
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Position:
        """Build a position from a ``{"x": .., "y": ..}`` mapping."""
        return cls(x=float(data.get("x", 0.0)), y=float(data.get("y", 0.0)))


@dataclass(frozen=True)
class PipelineNode:
    """A single action block on the canvas; one step in the workflow.

    Attributes:
        id: Unique identifier assigned by the store.
        type: Template tag (e.g. ``"checkout"``).
        name: Display name, used as the step name.
        position: Canvas position.
        config: Option values keyed by option name.
        inputs: Placeholder input slots (unused; slots come from connections).
        outputs: Placeholder output slots.
    """

    id: str
    type: str
    name: str
    position: Position = field(default_factory=Position)
    config: dict[str, ConfigValue] = field(default_factory=dict)
    inputs: tuple[str, ...] = ()
    outputs: tuple[str, ...] = ()

    def detached(self) -> PipelineNode:
        """Return a copy whose config shares no containers with this node."""
        return PipelineNode(
            id=self.id,
            type=self.type,
            name=self.name,
            position=self.position,
            config=copy.deepcopy(self.config),
            inputs=self.inputs,
            outputs=self.outputs,
        )

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping of this node."""
        return {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "position": self.position.to_dict(),
            "config": copy.deepcopy(self.config),
            "inputs": list(self.inputs),
            "outputs": list(self.outputs),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PipelineNode:
        """Build a node from the mapping produced by ``to_dict``."""
        return cls(
            id=str(data["id"]),
            type=str(data.get("type", "unknown")),
            name=str(data.get("name", "Unnamed")),
            position=Position.from_dict(data.get("position") or {}),
            config=dict(data.get("config") or {}),
            inputs=tuple(data.get("inputs") or ()),
            outputs=tuple(data.get("outputs") or ()),
        )


@dataclass(frozen=True)
class Connection:
    """A directed edge from one node to another."""

    id: str
    source: str
    target: str
    source_handle: str | None = None
    target_handle: str | None = None

    def touches(self, node_id: str) -> bool:
        """Return ``True`` if either endpoint is *node_id*."""
        return node_id in (self.source, self.target)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping, omitting unset slot labels."""
        data: dict[str, Any] = {"id": self.id, "source": self.source, "target": self.target}
        if self.source_handle is not None:
            data["sourceHandle"] = self.source_handle
        if self.target_handle is not None:
            data["targetHandle"] = self.target_handle
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Connection:
        """Build a connection from the mapping produced by ``to_dict``."""
        return cls(
            id=str(data["id"]),
            source=str(data["source"]),
            target=str(data["target"]),
            source_handle=data.get("sourceHandle"),
            target_handle=data.get("targetHandle"),
        )


@dataclass(frozen=True)
class NodeTemplate:
    """A palette entry; dropping it on the canvas creates a node."""

    type: str
    name: str
    icon: str = ""
    config: dict[str, ConfigValue] = field(default_factory=dict)
    marketplace: str = ""
    color: str = ""
    description: str = ""

    def to_payload(self) -> dict[str, Any]:
        """Return the drag payload record for this template."""
        return {
            "type": self.type,
            "name": self.name,
            "icon": self.icon,
            "config": copy.deepcopy(self.config),
            "marketplace": self.marketplace,
            "color": self.color,
            "description": self.description,
        }

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> NodeTemplate:
        """Build a template from a drag payload or catalog record."""
        return cls(
            type=str(data["type"]),
            name=str(data.get("name") or data["type"]),
            icon=str(data.get("icon", "")),
            config=dict(data.get("config") or {}),
            marketplace=str(data.get("marketplace", "")),
            color=str(data.get("color", "")),
            description=str(data.get("description", "")),
        )
