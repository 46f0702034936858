"""Pipeline document — the JSON file the editor saves and the CLI reads."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pipeline_builder.core.datatypes import Connection, PipelineNode
from pipeline_builder.core.exceptions import DocumentError
from pipeline_builder.core.triggers import DEFAULT_TRIGGERS, Triggers

logger = logging.getLogger(__name__)

DOCUMENT_VERSION = 1


@dataclass(frozen=True)
class PipelineDocument:
    """Everything needed to rebuild a pipeline: nodes, connections, triggers."""

    nodes: tuple[PipelineNode, ...] = ()
    connections: tuple[Connection, ...] = ()
    triggers: Triggers = DEFAULT_TRIGGERS

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready document mapping."""
        return {
            "version": DOCUMENT_VERSION,
            "nodes": [node.to_dict() for node in self.nodes],
            "connections": [connection.to_dict() for connection in self.connections],
            "triggers": self.triggers.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> PipelineDocument:
        """Build a document from its mapping form.

        A missing ``triggers`` entry means the default trigger set.

        Raises:
            DocumentError: If the mapping is not a valid document.
        """
        if not isinstance(data, dict):
            msg = "Pipeline document must be a JSON object"
            raise DocumentError(msg)
        version = data.get("version", DOCUMENT_VERSION)
        if version != DOCUMENT_VERSION:
            msg = f"Unsupported pipeline document version: {version!r}"
            raise DocumentError(msg)

        try:
            nodes = tuple(PipelineNode.from_dict(item) for item in data.get("nodes") or [])
            connections = tuple(Connection.from_dict(item) for item in data.get("connections") or [])
            raw_triggers = data.get("triggers")
            triggers = DEFAULT_TRIGGERS if raw_triggers is None else Triggers.from_dict(raw_triggers)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            msg = f"Malformed pipeline document: {exc!r}"
            raise DocumentError(msg) from exc

        node_ids = [node.id for node in nodes]
        if len(set(node_ids)) != len(node_ids):
            msg = "Pipeline document contains duplicate node ids"
            raise DocumentError(msg)
        return cls(nodes=nodes, connections=connections, triggers=triggers)


def load_document(path: Path) -> PipelineDocument:
    """Read a pipeline document from *path*.

    Raises:
        DocumentError: If the file cannot be read or is not a valid document.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        msg = f"Cannot read pipeline document {path}: {exc}"
        raise DocumentError(msg) from exc

    document = PipelineDocument.from_dict(data)
    logger.info("Loaded pipeline document %s (%d nodes)", path, len(document.nodes))
    return document


def save_document(document: PipelineDocument, path: Path) -> Path:
    """Write *document* to *path* as indented JSON.

    Returns:
        The path written.

    Raises:
        DocumentError: If the file cannot be written.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(document.to_dict(), indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot write pipeline document {path}: {exc}"
        raise DocumentError(msg) from exc
    logger.info("Saved pipeline document %s", path)
    return path
