"""NodePalette — searchable catalog tree whose entries drag onto the canvas."""

from __future__ import annotations

from typing import TYPE_CHECKING

from PySide6.QtCore import QMimeData, Qt, Signal
from PySide6.QtGui import QColor, QFont
from PySide6.QtWidgets import QAbstractItemView, QLineEdit, QTreeWidget, QTreeWidgetItem, QVBoxLayout, QWidget

from pipeline_builder.core.payload import MIME_TYPES, encode_template

if TYPE_CHECKING:
    from pipeline_builder.catalog.loader import Catalog

_TYPE_ROLE = Qt.ItemDataRole.UserRole


class _TemplateTree(QTreeWidget):
    """Tree of categories and templates that exports drag payloads."""

    def __init__(self, catalog: Catalog, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._catalog = catalog
        self.setHeaderHidden(True)
        self.setDragEnabled(True)
        self.setDragDropMode(QAbstractItemView.DragDropMode.DragOnly)
        self.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)

    def mimeTypes(self) -> list[str]:
        return list(MIME_TYPES)

    def mimeData(self, items: list[QTreeWidgetItem]) -> QMimeData:
        mime = QMimeData()
        for item in items:
            template = self._catalog.find(item.data(0, _TYPE_ROLE) or "")
            if template is None:
                continue
            for fmt, text in encode_template(template).items():
                mime.setData(fmt, text.encode("utf-8"))
            break
        return mime


class NodePalette(QWidget):
    """Catalog browser on the left of the editor.

    Signals:
        template_activated: Emitted with a node type when an entry is
            double-clicked (adds the node without dragging).

    Args:
        catalog: The node catalog to list.
        parent: Optional parent widget.
    """

    template_activated = Signal(str)

    def __init__(self, catalog: Catalog, parent: QWidget | None = None) -> None:
        """Initialise the palette.

        Args:
            catalog: The node catalog to list.
            parent: Optional parent widget.
        """
        super().__init__(parent)
        self._catalog = catalog

        self._search = QLineEdit()
        self._search.setPlaceholderText("Search actions...")
        self._search.setClearButtonEnabled(True)
        self._tree = _TemplateTree(catalog)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._search)
        layout.addWidget(self._tree)

        self._populate()
        self._search.textChanged.connect(self.filter)
        self._tree.itemDoubleClicked.connect(self._on_item_double_clicked)

    def _populate(self) -> None:
        """Build one top-level item per category with its templates below."""
        header_font = QFont()
        header_font.setBold(True)
        for category in self._catalog.categories:
            header = QTreeWidgetItem([category.title])
            header.setFont(0, header_font)
            header.setFlags(Qt.ItemFlag.ItemIsEnabled)
            self._tree.addTopLevelItem(header)
            for template in category.templates:
                item = QTreeWidgetItem([template.name])
                item.setData(0, _TYPE_ROLE, template.type)
                item.setToolTip(0, template.description or template.type)
                if template.color:
                    item.setForeground(0, QColor(template.color))
                item.setFlags(Qt.ItemFlag.ItemIsEnabled | Qt.ItemFlag.ItemIsSelectable | Qt.ItemFlag.ItemIsDragEnabled)
                header.addChild(item)
        self._tree.expandAll()

    def visible_types(self) -> list[str]:
        """Return the node types of the template entries not filtered out."""
        types: list[str] = []
        for index in range(self._tree.topLevelItemCount()):
            header = self._tree.topLevelItem(index)
            for child_index in range(header.childCount()):
                child = header.child(child_index)
                if not child.isHidden():
                    types.append(child.data(0, _TYPE_ROLE))
        return types

    def filter(self, text: str) -> None:
        """Hide templates whose name, type or description do not contain *text*."""
        needle = text.strip().lower()
        for index in range(self._tree.topLevelItemCount()):
            header = self._tree.topLevelItem(index)
            any_visible = False
            for child_index in range(header.childCount()):
                child = header.child(child_index)
                template = self._catalog.find(child.data(0, _TYPE_ROLE))
                haystack = " ".join(
                    [template.name, template.type, template.description] if template is not None else [child.text(0)]
                ).lower()
                hidden = bool(needle) and needle not in haystack
                child.setHidden(hidden)
                any_visible = any_visible or not hidden
            header.setHidden(not any_visible)

    def mime_data_for(self, node_type: str) -> QMimeData:
        """Return the drag data the palette produces for *node_type*."""
        for index in range(self._tree.topLevelItemCount()):
            header = self._tree.topLevelItem(index)
            for child_index in range(header.childCount()):
                child = header.child(child_index)
                if child.data(0, _TYPE_ROLE) == node_type:
                    return self._tree.mimeData([child])
        return QMimeData()

    def _on_item_double_clicked(self, item: QTreeWidgetItem, _column: int) -> None:
        node_type = item.data(0, _TYPE_ROLE)
        if node_type:
            self.template_activated.emit(node_type)
