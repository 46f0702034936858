"""Editing controllers — the intents the canvas and side panels dispatch.

Panels never touch the store directly.  They call a controller, which
sanitizes what the user typed and turns it into store operations.
"""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from pipeline_builder.core.datatypes import PipelineNode, Position
from pipeline_builder.core.exceptions import PayloadError, ValidationError
from pipeline_builder.core.payload import decode_payload
from pipeline_builder.core.sanitize import check_input, sanitize_config_value, sanitize_node_name
from pipeline_builder.core.triggers import TRIGGER_KINDS, TRIGGER_LABELS, record_from_dict

if TYPE_CHECKING:
    from pipeline_builder.catalog.loader import Catalog
    from pipeline_builder.core.store import GraphStore

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[str, str], bool]


class NodeEditor:
    """Node-level intents: renaming, config edits, drops and wiring.

    Args:
        store: The graph store to mutate.
        catalog: Source of template defaults for ``reset_config``.
    """

    def __init__(self, store: GraphStore, catalog: Catalog | None = None) -> None:
        self._store = store
        self._catalog = catalog

    def rename(self, node_id: str, name: str) -> bool:
        """Set a node's display name after sanitizing it."""
        return self._store.update_node(node_id, name=sanitize_node_name(name))

    def set_field(self, node_id: str, key: str, value: Any) -> bool:
        """Set one config option.

        Strings are screened by ``check_input`` and normalised by
        ``sanitize_config_value``; the screened value is stored even when
        the raw one was rejected.  Booleans and numbers are stored as-is.

        Returns:
            ``True`` if the node exists.
        """
        node = self._store.get_node(node_id)
        if node is None:
            return False
        if isinstance(value, str):
            check = check_input(key, value)
            value = sanitize_config_value(key, check.value)
        config = dict(node.config)
        config[key] = value
        return self._store.update_node(node_id, config=config)

    def set_json_field(self, node_id: str, key: str, text: str) -> bool:
        """Set one config option from JSON text (lists, mappings, ``env``).

        Text that does not parse is ignored so half-typed input never
        reaches the store.

        Returns:
            ``True`` if the value parsed and the node exists.
        """
        try:
            value = json.loads(text)
        except json.JSONDecodeError:
            logger.debug("Ignoring unparsable JSON for field %r", key)
            return False
        node = self._store.get_node(node_id)
        if node is None:
            return False
        config = dict(node.config)
        config[key] = value
        return self._store.update_node(node_id, config=config)

    def remove_field(self, node_id: str, key: str) -> bool:
        """Drop one config option from a node."""
        node = self._store.get_node(node_id)
        if node is None or key not in node.config:
            return False
        config = {k: v for k, v in node.config.items() if k != key}
        return self._store.update_node(node_id, config=config)

    def reset_config(self, node_id: str) -> bool:
        """Restore a node's config to its template defaults.

        Types unknown to the catalog reset to an empty config.
        """
        node = self._store.get_node(node_id)
        if node is None:
            return False
        template = self._catalog.find(node.type) if self._catalog is not None else None
        config = copy.deepcopy(template.config) if template is not None else {}
        return self._store.update_node(node_id, config=config)

    def drop(self, payload: Mapping[str, str | bytes], position: Position) -> PipelineNode | None:
        """Create a node from drag data dropped at *position*.

        Malformed payloads are skipped.

        Returns:
            The new node, or ``None`` if the payload was unusable.
        """
        try:
            template = decode_payload(payload)
        except PayloadError as exc:
            logger.debug("Ignoring drop: %s", exc)
            return None
        return self._store.add_node_from_template(template, position)

    def complete_connection(self, target_id: str) -> bool:
        """Finish a wiring gesture on *target_id*, toggling an existing link.

        If the pending source is already connected to the target the
        connection is removed instead of duplicated.

        Returns:
            ``True`` if a connection was created or removed.
        """
        source = self._store.connecting_from
        if source is None or source == target_id:
            self._store.cancel_connection()
            return False
        existing = self._store.find_connection(source, target_id)
        if existing is not None:
            self._store.delete_connection(existing.id)
            self._store.cancel_connection()
            return True
        return self._store.end_connection(target_id) is not None


class TriggerEditor:
    """Trigger intents, guarding the at-least-one-trigger rule.

    Args:
        store: The graph store to mutate.
        confirm: Asked ``confirm(title, message)`` before the last enabled
            trigger is switched off.  ``None`` always declines.
    """

    def __init__(self, store: GraphStore, confirm: ConfirmCallback | None = None) -> None:
        self._store = store
        self._confirm = confirm

    def set_enabled(self, kind: str, enabled: bool) -> bool:
        """Enable or disable a trigger kind.

        Disabling the only enabled kind needs confirmation; once given, the
        first other kind is enabled before *kind* is disabled.

        Returns:
            ``True`` if the configuration changed.
        """
        triggers = self._store.triggers
        if enabled:
            if triggers.is_enabled(kind):
                return False
            self._store.update_triggers(triggers.enable(kind))
            return True

        if not triggers.is_enabled(kind):
            return False
        if triggers.enabled_kinds() == [kind]:
            replacement = next(other for other in TRIGGER_KINDS if other != kind)
            message = (
                f"A workflow needs at least one trigger. Disabling {TRIGGER_LABELS[kind]} "
                f"will enable {TRIGGER_LABELS[replacement]} instead. Continue?"
            )
            if self._confirm is None or not self._confirm("Disable last trigger", message):
                logger.debug("Kept %s enabled: it is the last trigger", kind)
                return False
            triggers = triggers.enable(replacement)
        self._store.update_triggers(triggers.disable(kind))
        return True

    def set_option(self, kind: str, key: str, value: Any) -> bool:
        """Change one option of an enabled trigger kind.

        List options accept comma-separated text.

        Returns:
            ``True`` if the kind is enabled and the option was applied.

        Raises:
            ValidationError: If *kind* has no option called *key*.
        """
        triggers = self._store.triggers
        if not triggers.is_enabled(kind):
            return False
        options = triggers.to_dict()[kind]
        key = key.replace("-", "_")
        if key not in options:
            msg = f"Trigger '{kind}' has no option '{key}'"
            raise ValidationError(msg)
        options[key] = value
        self._store.update_triggers(triggers.with_record(kind, record_from_dict(kind, options)))
        return True
