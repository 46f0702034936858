"""Drag payload codec — moves a node template from the palette to the canvas."""

from __future__ import annotations

import json
from collections.abc import Mapping

from pipeline_builder.core.datatypes import NodeTemplate
from pipeline_builder.core.exceptions import PayloadError

# Every key the template is attached under, in the order a drop reads them.
MIME_TYPES: tuple[str, ...] = ("application/json", "text/plain", "text", "string")


def encode_template(template: NodeTemplate) -> dict[str, str]:
    """Return the drag data for *template*, keyed by MIME type."""
    text = json.dumps(template.to_payload(), ensure_ascii=False)
    return dict.fromkeys(MIME_TYPES, text)


def decode_payload(data: Mapping[str, str | bytes]) -> NodeTemplate:
    """Recover the template from drag data.

    The first populated key in ``MIME_TYPES`` order is used.

    Raises:
        PayloadError: If no key is populated, the text is not JSON or the
            record has no ``type``.
    """
    raw = next((data[mime] for mime in MIME_TYPES if data.get(mime)), None)
    if raw is None:
        msg = "Drop carried no node payload"
        raise PayloadError(msg)
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")

    try:
        record = json.loads(raw)
    except json.JSONDecodeError as exc:
        msg = f"Node payload is not valid JSON: {exc}"
        raise PayloadError(msg) from exc

    if not isinstance(record, dict) or not record.get("type"):
        msg = "Node payload has no 'type'"
        raise PayloadError(msg)
    if not isinstance(record.get("config", {}), dict):
        msg = "Node payload 'config' must be an object"
        raise PayloadError(msg)
    return NodeTemplate.from_payload(record)
