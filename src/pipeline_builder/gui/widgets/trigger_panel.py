"""TriggerPanel — enable trigger kinds and edit their options."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from PySide6.QtWidgets import (
    QCheckBox,
    QFormLayout,
    QGroupBox,
    QLineEdit,
    QMessageBox,
    QPlainTextEdit,
    QVBoxLayout,
    QWidget,
)

from pipeline_builder.core.editing import ConfirmCallback, TriggerEditor
from pipeline_builder.core.events import STORE_CHANGED
from pipeline_builder.core.triggers import (
    DEFAULT_CRON,
    MANUAL,
    PULL_REQUEST,
    PUSH,
    SCHEDULE,
    TRIGGER_KINDS,
    TRIGGER_LABELS,
)

if TYPE_CHECKING:
    from pipeline_builder.core.store import GraphStore

logger = logging.getLogger(__name__)

# kind → option keys edited as comma-separated text
_LIST_OPTIONS: dict[str, tuple[str, ...]] = {
    PUSH: ("branches", "paths", "paths_ignore"),
    PULL_REQUEST: ("branches", "types"),
}


class TriggerPanel(QWidget):
    """One group per trigger kind: an enable checkbox plus its options.

    Args:
        store: The graph store.
        confirm: ``confirm(title, message)`` used before disabling the last
            trigger.  Defaults to a ``QMessageBox`` question.
        parent: Optional parent widget.
    """

    def __init__(
        self,
        store: GraphStore,
        confirm: ConfirmCallback | None = None,
        parent: QWidget | None = None,
    ) -> None:
        """Initialise the panel from the store's trigger configuration.

        Args:
            store: The graph store.
            confirm: Confirmation callback; a message box if ``None``.
            parent: Optional parent widget.
        """
        super().__init__(parent)
        self._store = store
        self._editor = TriggerEditor(store, confirm or self._ask)
        self._refreshing = False
        self._editing: tuple[str, str] | None = None
        self._checkboxes: dict[str, QCheckBox] = {}
        self._groups: dict[str, QWidget] = {}
        self._fields: dict[tuple[str, str], QWidget] = {}

        layout = QVBoxLayout(self)
        for kind in TRIGGER_KINDS:
            box = QGroupBox(TRIGGER_LABELS[kind])
            box_layout = QVBoxLayout(box)
            checkbox = QCheckBox("Enabled")
            checkbox.toggled.connect(lambda checked, k=kind: self._on_toggled(k, checked))
            box_layout.addWidget(checkbox)

            options = QWidget()
            form = QFormLayout(options)
            for key in _LIST_OPTIONS.get(kind, ()):
                line = QLineEdit()
                line.setPlaceholderText("comma, separated")
                line.editingFinished.connect(lambda k=kind, o=key, w=line: self._on_option(k, o, w.text()))
                form.addRow(key.replace("_", "-"), line)
                self._fields[(kind, key)] = line
            if kind == SCHEDULE:
                cron = QLineEdit()
                cron.setPlaceholderText(DEFAULT_CRON)
                cron.editingFinished.connect(lambda w=cron: self._on_option(SCHEDULE, "cron", w.text()))
                form.addRow("cron", cron)
                self._fields[(SCHEDULE, "cron")] = cron
            if kind == MANUAL:
                inputs = QPlainTextEdit()
                inputs.setPlaceholderText('{"environment": {"description": "Target", "type": "string"}}')
                inputs.setMaximumHeight(100)
                inputs.textChanged.connect(lambda w=inputs: self._on_inputs(w.toPlainText()))
                form.addRow("inputs", inputs)
                self._fields[(MANUAL, "inputs")] = inputs
            box_layout.addWidget(options)

            layout.addWidget(box)
            self._checkboxes[kind] = checkbox
            self._groups[kind] = options
        layout.addStretch()

        store.event_bus.subscribe(STORE_CHANGED, self._on_store_changed)
        self.refresh()

    def checkbox(self, kind: str) -> QCheckBox:
        """Return the enable checkbox of *kind*."""
        return self._checkboxes[kind]

    def option_widget(self, kind: str, key: str) -> QWidget:
        """Return the widget editing option *key* of *kind*."""
        return self._fields[(kind, key)]

    def refresh(self) -> None:
        """Show the store's trigger configuration."""
        triggers = self._store.triggers
        options = triggers.to_dict()
        self._refreshing = True
        try:
            for kind in TRIGGER_KINDS:
                enabled = triggers.is_enabled(kind)
                self._checkboxes[kind].setChecked(enabled)
                self._groups[kind].setVisible(enabled)
                values = options.get(kind, {})
                for (field_kind, key), widget in self._fields.items():
                    if field_kind != kind or (kind, key) == self._editing or widget.hasFocus():
                        continue
                    value = values.get(key)
                    if isinstance(widget, QLineEdit):
                        widget.setText(", ".join(value) if isinstance(value, list) else str(value or ""))
                    elif isinstance(widget, QPlainTextEdit):
                        widget.setPlainText(json.dumps(value, indent=2) if value else "")
        finally:
            self._refreshing = False

    # ── handlers ──────────────────────────────────────────────

    def _on_toggled(self, kind: str, checked: bool) -> None:
        if self._refreshing:
            return
        if not self._editor.set_enabled(kind, checked):
            # Declined or no-op: put the checkbox back.
            self.refresh()

    def _on_option(self, kind: str, key: str, text: str) -> None:
        if self._refreshing or not self._store.triggers.is_enabled(kind):
            return
        self._commit(kind, key, text)

    def _on_inputs(self, text: str) -> None:
        if self._refreshing or not self._store.triggers.is_enabled(MANUAL):
            return
        try:
            inputs = json.loads(text) if text.strip() else {}
        except json.JSONDecodeError:
            logger.debug("Ignoring unparsable manual inputs")
            return
        if isinstance(inputs, dict):
            self._commit(MANUAL, "inputs", inputs)

    def _commit(self, kind: str, key: str, value: Any) -> None:
        """Apply an option without rewriting the field it came from."""
        self._editing = (kind, key)
        try:
            self._editor.set_option(kind, key, value)
        finally:
            self._editing = None

    def _on_store_changed(self, **_kwargs: Any) -> None:
        self.refresh()

    def _ask(self, title: str, message: str) -> bool:
        answer = QMessageBox.question(self, title, message)
        return answer == QMessageBox.StandardButton.Yes
