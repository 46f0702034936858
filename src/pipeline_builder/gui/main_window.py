"""MainWindow — palette, canvas and side panels around a shared graph store."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from PySide6.QtCore import QObject, Signal, Slot
from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import (
    QFileDialog,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QSplitter,
    QStackedWidget,
    QStatusBar,
    QToolBar,
    QVBoxLayout,
    QWidget,
)

from pipeline_builder.core.config import BuilderSettings
from pipeline_builder.core.datatypes import Position
from pipeline_builder.core.document import load_document, save_document
from pipeline_builder.core.editing import ConfirmCallback, NodeEditor
from pipeline_builder.core.events import HISTORY_CHANGED, VIEW_CHANGED
from pipeline_builder.core.exceptions import DocumentError
from pipeline_builder.core.export import ALTERNATE_EXPORT_FILENAME, Exporter
from pipeline_builder.core.serializer import WorkflowOptions
from pipeline_builder.core.view import ViewController
from pipeline_builder.gui.canvas import NODE_HEIGHT, NODE_WIDTH, PipelineCanvas
from pipeline_builder.gui.widgets.node_config_panel import NodeConfigPanel
from pipeline_builder.gui.widgets.node_palette import NodePalette
from pipeline_builder.gui.widgets.trigger_panel import TriggerPanel
from pipeline_builder.gui.widgets.yaml_preview import YamlPreview

if TYPE_CHECKING:
    from pipeline_builder.catalog.loader import Catalog
    from pipeline_builder.core.store import GraphStore
    from pipeline_builder.core.timing import TimerFactory

logger = logging.getLogger(__name__)

_DOCUMENT_FILTER = "Pipeline documents (*.json)"


class _BridgeSignals(QObject):
    """Bridge from EventBus callbacks to Qt signals."""

    history = Signal(bool, bool)  # can_undo, can_redo
    view = Signal(float)  # scale


class MainWindow(QMainWindow):
    """Top-level editor window.

    Layout::

        QToolBar                    -- file, history and zoom actions
        QSplitter
        +-- NodePalette             -- catalog tree, drag source
        +-- PipelineCanvas          -- node graph
        +-- Sidebar (QListWidget)   -- Step / Triggers / Workflow
        +-- QStackedWidget          -- one panel per sidebar entry
        QStatusBar                  -- messages and zoom level
    """

    def __init__(
        self,
        store: GraphStore,
        catalog: Catalog,
        settings: BuilderSettings | None = None,
        *,
        timer_factory: TimerFactory | None = None,
        confirm: ConfirmCallback | None = None,
    ) -> None:
        """Initialise the main window.

        Args:
            store: The graph store being edited.
            catalog: Node templates for the palette.
            settings: Builder settings; defaults if ``None``.
            timer_factory: Timer factory for the copy debouncer.
            confirm: Confirmation callback for the trigger panel.
        """
        super().__init__()
        self.setWindowTitle("Pipeline Builder")
        self.setMinimumSize(1100, 700)

        self._store = store
        self._catalog = catalog
        self._settings = settings or BuilderSettings()
        self._document_path: Path | None = None

        self._view = ViewController(store.event_bus)
        self._editor = NodeEditor(store, catalog)
        self._exporter = Exporter(self._settings, timer_factory=timer_factory)

        # ── Bridge signals (EventBus → Qt) ────────────────────
        self._bridge = _BridgeSignals(self)
        self._bridge.history.connect(self._on_history)
        self._bridge.view.connect(self._on_view)

        # ── Widgets ────────────────────────────────────────────
        self._palette = NodePalette(catalog)
        self._canvas = PipelineCanvas(store, self._editor, self._view, catalog)
        self._config_panel = NodeConfigPanel(store, self._editor, catalog)
        self._trigger_panel = TriggerPanel(store, confirm)
        self._preview = YamlPreview(store, self._exporter, WorkflowOptions.from_settings(self._settings))

        self._sidebar = QListWidget()
        self._stack = QStackedWidget()
        for title, page in (
            ("Step", self._config_panel),
            ("Triggers", self._trigger_panel),
            ("Workflow", self._preview),
        ):
            self._sidebar.addItem(QListWidgetItem(title))
            self._stack.addWidget(page)
        self._sidebar.setMaximumWidth(110)

        side = QWidget()
        side_layout = QVBoxLayout(side)
        side_layout.setContentsMargins(0, 0, 0, 0)
        side_splitter = QSplitter()
        side_splitter.addWidget(self._sidebar)
        side_splitter.addWidget(self._stack)
        side_splitter.setStretchFactor(1, 3)
        side_layout.addWidget(side_splitter)

        splitter = QSplitter()
        splitter.addWidget(self._palette)
        splitter.addWidget(self._canvas)
        splitter.addWidget(side)
        splitter.setStretchFactor(1, 3)
        splitter.setStretchFactor(2, 2)
        self.setCentralWidget(splitter)

        self._status_bar = QStatusBar()
        self._zoom_label = QLabel()
        self._status_bar.addPermanentWidget(self._zoom_label)
        self.setStatusBar(self._status_bar)

        self._build_actions()

        # ── Wire signals ───────────────────────────────────────
        self._sidebar.currentRowChanged.connect(self._stack.setCurrentIndex)
        self._sidebar.setCurrentRow(0)
        self._palette.template_activated.connect(self.add_template)
        self._preview.message.connect(lambda text: self._status_bar.showMessage(text, 5000))
        store.event_bus.subscribe(HISTORY_CHANGED, self._eb_history)
        store.event_bus.subscribe(VIEW_CHANGED, self._eb_view)

        self._on_history(store.can_undo, store.can_redo)
        self._on_view(self._view.scale)

    # ── actions ────────────────────────────────────────────────

    def _build_actions(self) -> None:
        """Create toolbar actions and their shortcuts."""
        toolbar = QToolBar("Main")
        toolbar.setMovable(False)
        self.addToolBar(toolbar)

        def action(text: str, slot: Any, shortcuts: list[Any] | None = None) -> QAction:
            act = QAction(text, self)
            act.triggered.connect(slot)
            if shortcuts:
                act.setShortcuts(shortcuts)
            toolbar.addAction(act)
            return act

        self._new_action = action("New", self.new_pipeline, [QKeySequence(QKeySequence.StandardKey.New)])
        self._open_action = action("Open...", self._on_open, [QKeySequence(QKeySequence.StandardKey.Open)])
        self._save_action = action("Save...", self._on_save, [QKeySequence(QKeySequence.StandardKey.Save)])
        self._export_action = action("Export YAML...", lambda: self._preview.save_as())
        self._export_pipeline_action = action(
            f"Export as {ALTERNATE_EXPORT_FILENAME}...",
            lambda: self._preview.save_as(ALTERNATE_EXPORT_FILENAME),
        )
        toolbar.addSeparator()
        self._undo_action = action("Undo", self._store.undo, [QKeySequence(QKeySequence.StandardKey.Undo)])
        self._redo_action = action(
            "Redo",
            self._store.redo,
            [QKeySequence(QKeySequence.StandardKey.Redo), QKeySequence("Ctrl+Shift+Z")],
        )
        toolbar.addSeparator()
        action("Zoom In", self._view.zoom_in, [QKeySequence(QKeySequence.StandardKey.ZoomIn)])
        action("Zoom Out", self._view.zoom_out, [QKeySequence(QKeySequence.StandardKey.ZoomOut)])
        action("Fit", lambda: self._view.fit(self._store.nodes))
        action("100%", self._view.reset, [QKeySequence("Ctrl+0")])
        toolbar.addSeparator()
        action("Copy YAML", self._preview.copy)

    def new_pipeline(self) -> None:
        """Clear the canvas and forget the current document path."""
        self._store.clear()
        self._document_path = None
        self._update_title()

    def add_template(self, node_type: str) -> None:
        """Add a catalog template at the centre of the visible canvas."""
        template = self._catalog.find(node_type)
        if template is None:
            return
        width, height = self._view.size
        x, y = self._view.to_canvas((width / 2, height / 2))
        node = self._store.add_node_from_template(template, Position(x - NODE_WIDTH / 2, y - NODE_HEIGHT / 2))
        self._store.select_node(node.id)

    def open_document(self, path: Path) -> bool:
        """Load a pipeline document into the store.

        Returns:
            ``True`` on success; errors are shown in a message box.
        """
        try:
            document = load_document(path)
        except DocumentError as exc:
            logger.warning("Could not open %s: %s", path, exc)
            QMessageBox.warning(self, "Open pipeline", str(exc))
            return False
        self._store.load_document(document)
        self._document_path = path
        self._update_title()
        self._status_bar.showMessage(f"Opened {path}", 5000)
        return True

    def save_document(self, path: Path) -> bool:
        """Write the store's state as a pipeline document.

        Returns:
            ``True`` on success; errors are shown in a message box.
        """
        try:
            save_document(self._store.to_document(), path)
        except DocumentError as exc:
            logger.warning("Could not save %s: %s", path, exc)
            QMessageBox.warning(self, "Save pipeline", str(exc))
            return False
        self._document_path = path
        self._update_title()
        self._status_bar.showMessage(f"Saved {path}", 5000)
        return True

    def _on_open(self) -> None:
        filename, _ = QFileDialog.getOpenFileName(self, "Open pipeline", "", _DOCUMENT_FILTER)
        if filename:
            self.open_document(Path(filename))

    def _on_save(self) -> None:
        start = str(self._document_path) if self._document_path else "pipeline.json"
        filename, _ = QFileDialog.getSaveFileName(self, "Save pipeline", start, _DOCUMENT_FILTER)
        if filename:
            self.save_document(Path(filename))

    def _update_title(self) -> None:
        suffix = f" — {self._document_path.name}" if self._document_path else ""
        self.setWindowTitle(f"Pipeline Builder{suffix}")

    # ── EventBus → bridge ─────────────────────────────────────

    def _eb_history(self, **kwargs: Any) -> None:
        self._bridge.history.emit(kwargs.get("can_undo", False), kwargs.get("can_redo", False))

    def _eb_view(self, **kwargs: Any) -> None:
        self._bridge.view.emit(kwargs.get("scale", 1.0))

    @Slot(bool, bool)
    def _on_history(self, can_undo: bool, can_redo: bool) -> None:
        """Enable the undo/redo actions to match the history."""
        self._undo_action.setEnabled(can_undo)
        self._redo_action.setEnabled(can_redo)

    @Slot(float)
    def _on_view(self, scale: float) -> None:
        """Show the zoom level in the status bar."""
        self._zoom_label.setText(f"{round(scale * 100)}%")

    def closeEvent(self, event: Any) -> None:
        self._store.flush_history()
        super().closeEvent(event)

