"""NodeConfigPanel — form for the selected step, generated from its config."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from PySide6.QtWidgets import (
    QCheckBox,
    QDoubleSpinBox,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPlainTextEdit,
    QPushButton,
    QSpinBox,
    QVBoxLayout,
    QWidget,
)

from pipeline_builder.core.events import SELECTION_CHANGED, STORE_CHANGED

if TYPE_CHECKING:
    from pipeline_builder.catalog.loader import Catalog
    from pipeline_builder.core.datatypes import PipelineNode
    from pipeline_builder.core.editing import NodeEditor
    from pipeline_builder.core.store import GraphStore

logger = logging.getLogger(__name__)

# Free-text keys edited in a multi-line box.
_MULTILINE_KEYS = frozenset({"run", "command", "script"})


class NodeConfigPanel(QWidget):
    """Editor for the selected node's name and configuration.

    Each config value maps to a Qt widget by type:

    - ``bool`` → ``QCheckBox``
    - ``int`` → ``QSpinBox``
    - ``float`` → ``QDoubleSpinBox``
    - ``run``/``command`` strings → ``QPlainTextEdit``
    - other strings → ``QLineEdit``
    - mappings and lists (``env`` included) → ``QPlainTextEdit`` holding JSON

    Every edit goes through the ``NodeEditor``; the form is rebuilt when
    the selection changes or the node changes from elsewhere (undo, reset).

    Args:
        store: The graph store.
        editor: Node intents used for every edit.
        catalog: Supplies the marketplace link and description.
        parent: Optional parent widget.
    """

    def __init__(
        self,
        store: GraphStore,
        editor: NodeEditor,
        catalog: Catalog | None = None,
        parent: QWidget | None = None,
    ) -> None:
        """Initialise the panel with nothing selected.

        Args:
            store: The graph store.
            editor: Node intents used for every edit.
            catalog: Node catalog for template details.
            parent: Optional parent widget.
        """
        super().__init__(parent)
        self._store = store
        self._editor = editor
        self._catalog = catalog
        self._node_id: str | None = None
        self._shown: PipelineNode | None = None
        self._applying = False
        self._widgets: dict[str, QWidget] = {}

        self._placeholder = QLabel("Select a step on the canvas to edit it.")
        self._name_edit = QLineEdit()
        self._type_label = QLabel()
        self._details = QLabel()
        self._details.setWordWrap(True)
        self._details.setOpenExternalLinks(True)

        self._form_host = QWidget()
        self._form = QFormLayout(self._form_host)

        self._reset_btn = QPushButton("Reset to defaults")
        self._delete_btn = QPushButton("Delete step")
        buttons = QHBoxLayout()
        buttons.addWidget(self._reset_btn)
        buttons.addWidget(self._delete_btn)

        self._editor_host = QWidget()
        editor_layout = QVBoxLayout(self._editor_host)
        header = QFormLayout()
        header.addRow("Name", self._name_edit)
        header.addRow("Type", self._type_label)
        editor_layout.addLayout(header)
        editor_layout.addWidget(self._details)
        editor_layout.addWidget(self._form_host)
        editor_layout.addLayout(buttons)
        editor_layout.addStretch()

        layout = QVBoxLayout(self)
        layout.addWidget(self._placeholder)
        layout.addWidget(self._editor_host)

        self._name_edit.textEdited.connect(self._on_name_edited)
        self._reset_btn.clicked.connect(self._on_reset)
        self._delete_btn.clicked.connect(self._on_delete)

        store.event_bus.subscribe(SELECTION_CHANGED, self._on_selection_changed)
        store.event_bus.subscribe(STORE_CHANGED, self._on_store_changed)
        self.show_node(store.selected_node)

    @property
    def node_id(self) -> str | None:
        """Return the id of the node being edited."""
        return self._node_id

    def field_widget(self, key: str) -> QWidget | None:
        """Return the widget editing config option *key*."""
        return self._widgets.get(key)

    def show_node(self, node_id: str | None) -> None:
        """Rebuild the panel for *node_id* (``None`` shows the placeholder)."""
        node = self._store.get_node(node_id) if node_id is not None else None
        self._node_id = node.id if node is not None else None
        self._shown = node
        self._placeholder.setVisible(node is None)
        self._editor_host.setVisible(node is not None)
        self._clear_form()
        if node is None:
            return

        self._name_edit.setText(node.name)
        self._type_label.setText(node.type)
        template = self._catalog.find(node.type) if self._catalog is not None else None
        details = []
        if template is not None and template.description:
            details.append(template.description)
        if template is not None and template.marketplace:
            details.append(f'<a href="{template.marketplace}">View on Marketplace</a>')
        self._details.setText("<br>".join(details))
        self._details.setVisible(bool(details))

        for key, value in node.config.items():
            widget = self._create_widget(key, value)
            self._widgets[key] = widget
            self._form.addRow(key, widget)

    # ── widget factory ────────────────────────────────────────

    def _create_widget(self, key: str, value: Any) -> QWidget:
        """Create the editor widget for one config option and wire it up."""
        if isinstance(value, bool):
            checkbox = QCheckBox()
            checkbox.setChecked(value)
            checkbox.toggled.connect(lambda checked, k=key: self._apply(self._editor.set_field, k, checked))
            return checkbox

        if isinstance(value, int):
            spin = QSpinBox()
            spin.setRange(-999_999, 999_999)
            spin.setValue(value)
            spin.valueChanged.connect(lambda number, k=key: self._apply(self._editor.set_field, k, number))
            return spin

        if isinstance(value, float):
            dspin = QDoubleSpinBox()
            dspin.setDecimals(2)
            dspin.setRange(-999_999.0, 999_999.0)
            dspin.setValue(value)
            dspin.valueChanged.connect(lambda number, k=key: self._apply(self._editor.set_field, k, number))
            return dspin

        if isinstance(value, (dict, list)):
            json_edit = QPlainTextEdit(json.dumps(value, indent=2, ensure_ascii=False))
            json_edit.setMaximumHeight(100)
            json_edit.textChanged.connect(
                lambda k=key, w=json_edit: self._apply(self._editor.set_json_field, k, w.toPlainText())
            )
            return json_edit

        if key in _MULTILINE_KEYS:
            text_edit = QPlainTextEdit("" if value is None else str(value))
            text_edit.setMaximumHeight(120)
            text_edit.textChanged.connect(
                lambda k=key, w=text_edit: self._apply(self._editor.set_field, k, w.toPlainText())
            )
            return text_edit

        line = QLineEdit("" if value is None else str(value))
        line.textEdited.connect(lambda text, k=key: self._apply(self._editor.set_field, k, text))
        return line

    def _clear_form(self) -> None:
        while self._form.rowCount():
            self._form.removeRow(0)
        self._widgets.clear()

    # ── edits ─────────────────────────────────────────────────

    def _apply(self, action: Any, key: str, value: Any) -> None:
        """Run an editor action without rebuilding the form under the user."""
        if self._node_id is None:
            return
        self._applying = True
        try:
            action(self._node_id, key, value)
        finally:
            self._applying = False
        self._shown = self._store.get_node(self._node_id)

    def _on_name_edited(self, text: str) -> None:
        if self._node_id is None:
            return
        self._applying = True
        try:
            self._editor.rename(self._node_id, text)
        finally:
            self._applying = False
        self._shown = self._store.get_node(self._node_id)

    def _on_reset(self) -> None:
        if self._node_id is not None:
            self._editor.reset_config(self._node_id)

    def _on_delete(self) -> None:
        if self._node_id is not None:
            self._store.delete_node(self._node_id)

    # ── event bus handlers ────────────────────────────────────

    def _on_selection_changed(self, **kwargs: Any) -> None:
        self.show_node(kwargs.get("node_id"))

    def _on_store_changed(self, **_kwargs: Any) -> None:
        if self._applying or self._node_id is None:
            return
        node = self._store.get_node(self._node_id)
        if node is None:
            self.show_node(None)
        elif node.name != getattr(self._shown, "name", None) or node.config != getattr(self._shown, "config", None):
            self.show_node(node.id)
        else:
            self._shown = node
