"""YamlPreview — live workflow text with copy and download actions."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from PySide6.QtCore import Signal
from PySide6.QtGui import QFontDatabase
from PySide6.QtWidgets import (
    QApplication,
    QFileDialog,
    QHBoxLayout,
    QPlainTextEdit,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from pipeline_builder.core.events import STORE_CHANGED
from pipeline_builder.core.serializer import WorkflowOptions, render_workflow

if TYPE_CHECKING:
    from pipeline_builder.core.export import Exporter
    from pipeline_builder.core.store import GraphStore

logger = logging.getLogger(__name__)


class YamlPreview(QWidget):
    """Read-only view of the generated workflow.

    Signals:
        message: Emitted with a short status text after copy or download.

    Args:
        store: The graph store to render.
        exporter: Rate-limited copy/download actions.
        options: Document-level workflow options.
        parent: Optional parent widget.
    """

    message = Signal(str)

    def __init__(
        self,
        store: GraphStore,
        exporter: Exporter,
        options: WorkflowOptions | None = None,
        parent: QWidget | None = None,
    ) -> None:
        """Initialise the preview and render the current graph.

        Args:
            store: The graph store to render.
            exporter: Copy/download actions.
            options: Workflow options; defaults if ``None``.
            parent: Optional parent widget.
        """
        super().__init__(parent)
        self._store = store
        self._exporter = exporter
        self._options = options or WorkflowOptions()

        self._text = QPlainTextEdit()
        self._text.setReadOnly(True)
        self._text.setFont(QFontDatabase.systemFont(QFontDatabase.SystemFont.FixedFont))
        self._text.setLineWrapMode(QPlainTextEdit.LineWrapMode.NoWrap)

        self._copy_btn = QPushButton("Copy")
        self._download_btn = QPushButton("Download")
        buttons = QHBoxLayout()
        buttons.addStretch()
        buttons.addWidget(self._copy_btn)
        buttons.addWidget(self._download_btn)

        layout = QVBoxLayout(self)
        layout.addWidget(self._text)
        layout.addLayout(buttons)

        self._copy_btn.clicked.connect(self.copy)
        self._download_btn.clicked.connect(lambda: self.save_as())
        store.event_bus.subscribe(STORE_CHANGED, self._on_store_changed)
        self.refresh()

    @property
    def text(self) -> str:
        """Return the workflow text currently shown."""
        return self._text.toPlainText()

    def workflow_text(self) -> str:
        """Render the store's graph with the preview's options."""
        return render_workflow(self._store.nodes, self._store.connections, self._store.triggers, self._options)

    def refresh(self) -> None:
        """Re-render the workflow, keeping the scroll position."""
        text = self.workflow_text()
        if text == self._text.toPlainText():
            return
        scroll = self._text.verticalScrollBar().value()
        self._text.setPlainText(text)
        self._text.verticalScrollBar().setValue(scroll)

    def copy(self) -> None:
        """Copy the workflow to the clipboard (debounced)."""
        self._exporter.copy(self.workflow_text(), self._set_clipboard)

    def download(self, path: Path) -> bool:
        """Write the workflow to *path* (throttled).

        Returns:
            ``True`` if the file was written.
        """
        try:
            written = self._exporter.download(self.workflow_text(), path)
        except OSError as exc:
            logger.exception("Could not write workflow to %s", path)
            self.message.emit(f"Could not save workflow: {exc}")
            return False
        if written:
            self.message.emit(f"Saved workflow to {path}")
        return written

    def _set_clipboard(self, text: str) -> None:
        QApplication.clipboard().setText(text)
        self.message.emit("Workflow copied to clipboard")

    def save_as(self, suggested: str | None = None) -> None:
        """Ask for a file name, then download the workflow there.

        Args:
            suggested: File name offered in the dialog; the exporter's
                default if ``None``.
        """
        filename, _ = QFileDialog.getSaveFileName(
            self,
            "Save workflow",
            suggested or self._exporter.default_filename,
            "Workflow files (*.yml *.yaml)",
        )
        if filename:
            self.download(Path(filename))

    def _on_store_changed(self, **_kwargs: Any) -> None:
        self.refresh()
