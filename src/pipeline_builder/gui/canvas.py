"""PipelineCanvas — node-graph view where steps are dropped, moved and wired.

All items live under one *world* item whose transform comes from the
shared ``ViewController``; scene coordinates therefore equal viewport
pixels, and canvas coordinates are the world item's local coordinates.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QBrush, QColor, QFont, QPainter, QPainterPath, QPen, QTransform
from PySide6.QtWidgets import (
    QGraphicsEllipseItem,
    QGraphicsItem,
    QGraphicsLineItem,
    QGraphicsPathItem,
    QGraphicsRectItem,
    QGraphicsScene,
    QGraphicsSimpleTextItem,
    QGraphicsView,
    QWidget,
)

from pipeline_builder.core.datatypes import Connection, PipelineNode, Position
from pipeline_builder.core.events import CONNECTION_PENDING, SELECTION_CHANGED, STORE_CHANGED, VIEW_CHANGED
from pipeline_builder.core.payload import MIME_TYPES

if TYPE_CHECKING:
    from PySide6.QtCore import QMimeData

    from pipeline_builder.catalog.loader import Catalog
    from pipeline_builder.core.editing import NodeEditor
    from pipeline_builder.core.store import GraphStore
    from pipeline_builder.core.view import ViewController

logger = logging.getLogger(__name__)

NODE_WIDTH = 200.0
NODE_HEIGHT = 64.0
GRID_SPACING = 20.0
# Pixels the pointer must travel before a background drag starts panning.
PAN_THRESHOLD = 5.0

_DEFAULT_ACCENT = "#6b7280"
_SELECTED_PEN = QPen(QColor("#2563eb"), 3)
_NORMAL_PEN = QPen(QColor("#374151"), 1)


def mime_payload(mime: QMimeData) -> dict[str, str]:
    """Collect the node payload formats carried by a drag's mime data."""
    payload: dict[str, str] = {}
    for fmt in MIME_TYPES:
        if mime.hasFormat(fmt):
            payload[fmt] = bytes(mime.data(fmt).data()).decode("utf-8", errors="replace")
    if "text/plain" not in payload and mime.hasText():
        payload["text/plain"] = mime.text()
    return payload


class PortItem(QGraphicsEllipseItem):
    """Connection handle on a node; only the output handle starts a wire."""

    RADIUS = 6.0

    def __init__(self, parent: NodeItem, *, output: bool) -> None:
        super().__init__(-self.RADIUS, -self.RADIUS, 2 * self.RADIUS, 2 * self.RADIUS, parent)
        self.node_item = parent
        self.is_output = output
        self.setPen(QPen(QColor("#111827"), 1))
        self.setBrush(QColor("#f9fafb"))
        if output:
            self.setCursor(Qt.CursorShape.CrossCursor)
        else:
            self.setAcceptedMouseButtons(Qt.MouseButton.NoButton)

    def set_accent(self, color: QColor) -> None:
        """Fill the handle with the node's accent colour."""
        self.setBrush(color)

    def mousePressEvent(self, event: Any) -> None:
        if self.is_output and event.button() == Qt.MouseButton.LeftButton:
            self.node_item.canvas.begin_wiring(self.node_item.node_id)
            event.accept()
            return
        super().mousePressEvent(event)


class NodeItem(QGraphicsRectItem):
    """A step block: title, action reference, input and output handles."""

    def __init__(self, node: PipelineNode, canvas: PipelineCanvas, parent: QGraphicsItem) -> None:
        super().__init__(0.0, 0.0, NODE_WIDTH, NODE_HEIGHT, parent)
        self.node_id = node.id
        self.canvas = canvas
        self._press_pos: QPointF | None = None

        self.setFlags(QGraphicsItem.GraphicsItemFlag.ItemIsMovable | QGraphicsItem.GraphicsItemFlag.ItemSendsGeometryChanges)
        self.setBrush(QColor("#ffffff"))
        self.setPen(_NORMAL_PEN)

        title_font = QFont()
        title_font.setBold(True)
        title_font.setPointSize(10)
        detail_font = QFont()
        detail_font.setPointSize(8)

        self._title = QGraphicsSimpleTextItem(self)
        self._title.setFont(title_font)
        self._title.setPos(12.0, 10.0)
        self._detail = QGraphicsSimpleTextItem(self)
        self._detail.setFont(detail_font)
        self._detail.setBrush(QColor("#6b7280"))
        self._detail.setPos(12.0, 34.0)

        self._accent = QGraphicsRectItem(0.0, 0.0, 5.0, NODE_HEIGHT, self)
        self._accent.setPen(QPen(Qt.PenStyle.NoPen))

        self.input_port = PortItem(self, output=False)
        self.input_port.setPos(0.0, NODE_HEIGHT / 2)
        self.output_port = PortItem(self, output=True)
        self.output_port.setPos(NODE_WIDTH, NODE_HEIGHT / 2)

    @property
    def title(self) -> str:
        """Return the displayed step name."""
        return self._title.text()

    def update_from(self, node: PipelineNode, accent: str) -> None:
        """Refresh text, colour and position from the store's node."""
        self._title.setText(node.name)
        uses = node.config.get("repository")
        self._detail.setText(uses if isinstance(uses, str) and uses else node.type)
        color = QColor(accent or _DEFAULT_ACCENT)
        self._accent.setBrush(QBrush(color))
        self.output_port.set_accent(color)
        target = QPointF(node.position.x, node.position.y)
        if self.pos() != target:
            self.setPos(target)

    def set_highlighted(self, highlighted: bool) -> None:
        """Draw the selection outline."""
        self.setPen(_SELECTED_PEN if highlighted else _NORMAL_PEN)

    def input_anchor(self) -> QPointF:
        """Return the input handle centre in canvas coordinates."""
        return self.pos() + QPointF(0.0, NODE_HEIGHT / 2)

    def output_anchor(self) -> QPointF:
        """Return the output handle centre in canvas coordinates."""
        return self.pos() + QPointF(NODE_WIDTH, NODE_HEIGHT / 2)

    def itemChange(self, change: QGraphicsItem.GraphicsItemChange, value: Any) -> Any:
        if change == QGraphicsItem.GraphicsItemChange.ItemPositionHasChanged:
            self.canvas.update_edges_for(self.node_id)
        return super().itemChange(change, value)

    def mousePressEvent(self, event: Any) -> None:
        if event.button() == Qt.MouseButton.LeftButton:
            if self.canvas.is_wiring:
                self.canvas.finish_wiring(self.node_id)
                event.accept()
                return
            self.canvas.select(self.node_id)
            self._press_pos = self.pos()
        super().mousePressEvent(event)

    def mouseReleaseEvent(self, event: Any) -> None:
        super().mouseReleaseEvent(event)
        if self._press_pos is not None and self.pos() != self._press_pos:
            self.canvas.commit_move(self.node_id, self.pos())
        self._press_pos = None


class EdgeItem(QGraphicsPathItem):
    """A connection drawn as a curve from an output handle to an input handle."""

    def __init__(self, connection: Connection, parent: QGraphicsItem) -> None:
        super().__init__(parent)
        self.connection_id = connection.id
        self.source = connection.source
        self.target = connection.target
        self.setPen(QPen(QColor("#9ca3af"), 2))
        self.setFlag(QGraphicsItem.GraphicsItemFlag.ItemIsSelectable)
        self.setZValue(-1)

    def update_geometry(self, start: QPointF, end: QPointF) -> None:
        """Redraw the curve between two canvas points."""
        bend = max(40.0, abs(end.x() - start.x()) / 2)
        path = QPainterPath(start)
        path.cubicTo(start + QPointF(bend, 0.0), end - QPointF(bend, 0.0), end)
        self.setPath(path)

    def itemChange(self, change: QGraphicsItem.GraphicsItemChange, value: Any) -> Any:
        if change == QGraphicsItem.GraphicsItemChange.ItemSelectedHasChanged:
            self.setPen(QPen(QColor("#2563eb" if value else "#9ca3af"), 2))
        return super().itemChange(change, value)


class PipelineCanvas(QGraphicsView):
    """Interactive canvas mirroring the graph store.

    Args:
        store: The graph store shown on the canvas.
        editor: Node intents (drop, wiring toggle).
        view: Shared zoom/pan controller.
        catalog: Supplies accent colours per node type.
        parent: Optional parent widget.
    """

    def __init__(
        self,
        store: GraphStore,
        editor: NodeEditor,
        view: ViewController,
        catalog: Catalog | None = None,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._store = store
        self._editor = editor
        self._view = view
        self._catalog = catalog

        self._scene = QGraphicsScene(self)
        self.setScene(self._scene)
        self._world = QGraphicsRectItem()
        self._world.setPen(QPen(Qt.PenStyle.NoPen))
        self._world.setFlag(QGraphicsItem.GraphicsItemFlag.ItemHasNoContents)
        self._scene.addItem(self._world)

        self._wire_preview = QGraphicsLineItem(self._world)
        self._wire_preview.setPen(QPen(QColor("#2563eb"), 2, Qt.PenStyle.DashLine))
        self._wire_preview.setAcceptedMouseButtons(Qt.MouseButton.NoButton)
        self._wire_preview.hide()

        self._node_items: dict[str, NodeItem] = {}
        self._edge_items: dict[str, EdgeItem] = {}
        self._pan_last: QPointF | None = None
        self._pan_travel = 0.0

        self.setAcceptDrops(True)
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setRenderHint(QPainter.RenderHint.Antialiasing)
        self.setAlignment(Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)

        store.event_bus.subscribe(STORE_CHANGED, self._on_store_changed)
        store.event_bus.subscribe(SELECTION_CHANGED, self._on_selection_changed)
        store.event_bus.subscribe(CONNECTION_PENDING, self._on_connection_pending)
        view.event_bus.subscribe(VIEW_CHANGED, self._on_view_changed)

        self.sync()
        self._apply_view()

    # ── queries ───────────────────────────────────────────────

    @property
    def is_wiring(self) -> bool:
        """Return ``True`` while a connection gesture is pending."""
        return self._store.connecting_from is not None

    def node_item(self, node_id: str) -> NodeItem | None:
        """Return the item drawn for *node_id*."""
        return self._node_items.get(node_id)

    def edge_item(self, connection_id: str) -> EdgeItem | None:
        """Return the item drawn for *connection_id*."""
        return self._edge_items.get(connection_id)

    # ── store → items ─────────────────────────────────────────

    def sync(self) -> None:
        """Reconcile the scene with the store's nodes and connections."""
        nodes = {node.id: node for node in self._store.nodes}
        for node_id in [node_id for node_id in self._node_items if node_id not in nodes]:
            self._scene.removeItem(self._node_items.pop(node_id))
        for node in nodes.values():
            item = self._node_items.get(node.id)
            if item is None:
                item = NodeItem(node, self, self._world)
                self._node_items[node.id] = item
            item.update_from(node, self._accent(node.type))

        connections = {conn.id: conn for conn in self._store.connections}
        for conn_id in [conn_id for conn_id in self._edge_items if conn_id not in connections]:
            self._scene.removeItem(self._edge_items.pop(conn_id))
        for conn in connections.values():
            if conn.source not in self._node_items or conn.target not in self._node_items:
                continue
            edge = self._edge_items.get(conn.id)
            if edge is None:
                edge = EdgeItem(conn, self._world)
                self._edge_items[conn.id] = edge
            self._update_edge(edge)

        self._on_selection_changed(node_id=self._store.selected_node)

    def update_edges_for(self, node_id: str) -> None:
        """Redraw every edge touching *node_id* (called while it is dragged)."""
        for edge in self._edge_items.values():
            if node_id in (edge.source, edge.target):
                self._update_edge(edge)

    def _update_edge(self, edge: EdgeItem) -> None:
        source = self._node_items.get(edge.source)
        target = self._node_items.get(edge.target)
        if source is not None and target is not None:
            edge.update_geometry(source.output_anchor(), target.input_anchor())

    def _accent(self, node_type: str) -> str:
        template = self._catalog.find(node_type) if self._catalog is not None else None
        return template.color if template is not None and template.color else _DEFAULT_ACCENT

    def _apply_view(self) -> None:
        scale = self._view.scale
        pan_x, pan_y = self._view.pan
        self._world.setTransform(QTransform(scale, 0.0, 0.0, scale, pan_x, pan_y))
        self.viewport().update()

    # ── item callbacks ────────────────────────────────────────

    def select(self, node_id: str | None) -> None:
        """Select a node in the store."""
        self._store.select_node(node_id)

    def commit_move(self, node_id: str, pos: QPointF) -> None:
        """Store a node's new position after a drag."""
        self._store.move_node(node_id, Position(pos.x(), pos.y()))

    def begin_wiring(self, node_id: str) -> None:
        """Start a connection gesture from *node_id*'s output handle."""
        self._store.start_connection(node_id)

    def finish_wiring(self, target_id: str) -> None:
        """Complete the gesture on *target_id*, toggling an existing link."""
        self._editor.complete_connection(target_id)

    # ── event bus handlers ────────────────────────────────────

    def _on_store_changed(self, **_kwargs: Any) -> None:
        self.sync()

    def _on_selection_changed(self, **kwargs: Any) -> None:
        selected = kwargs.get("node_id")
        for node_id, item in self._node_items.items():
            item.set_highlighted(node_id == selected)

    def _on_connection_pending(self, **kwargs: Any) -> None:
        source = self._node_items.get(kwargs.get("node_id") or "")
        if source is None:
            self._wire_preview.hide()
            return
        anchor = source.output_anchor()
        self._wire_preview.setLine(anchor.x(), anchor.y(), anchor.x(), anchor.y())
        self._wire_preview.show()

    def _on_view_changed(self, **_kwargs: Any) -> None:
        self._apply_view()

    # ── Qt events ─────────────────────────────────────────────

    def resizeEvent(self, event: Any) -> None:
        super().resizeEvent(event)
        size = event.size()
        self._scene.setSceneRect(QRectF(0.0, 0.0, size.width(), size.height()))
        self._view.resize(size.width(), size.height())

    def drawBackground(self, painter: QPainter, rect: QRectF) -> None:
        painter.fillRect(rect, QColor("#f8fafc"))
        step = GRID_SPACING * self._view.scale
        pan_x, pan_y = self._view.pan
        painter.setPen(QPen(QColor("#e5e7eb"), 1))
        x = rect.left() - ((rect.left() - pan_x) % step)
        while x < rect.right():
            painter.drawLine(QPointF(x, rect.top()), QPointF(x, rect.bottom()))
            x += step
        y = rect.top() - ((rect.top() - pan_y) % step)
        while y < rect.bottom():
            painter.drawLine(QPointF(rect.left(), y), QPointF(rect.right(), y))
            y += step

    def wheelEvent(self, event: Any) -> None:
        delta = event.angleDelta().y()
        if delta:
            pos = event.position()
            # Qt reports scrolling away from the user as positive.
            self._view.wheel(-delta, (pos.x(), pos.y()))
        event.accept()

    def mousePressEvent(self, event: Any) -> None:
        item = self.itemAt(event.position().toPoint())
        on_background = item is None or item is self._wire_preview
        if on_background and event.button() == Qt.MouseButton.LeftButton:
            self._store.cancel_connection()
            self._store.select_node(None)
            self._scene.clearSelection()
            self._pan_last = event.position()
            self._pan_travel = 0.0
            event.accept()
            return
        if event.button() == Qt.MouseButton.MiddleButton:
            self._pan_last = event.position()
            self._pan_travel = PAN_THRESHOLD
            event.accept()
            return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event: Any) -> None:
        pos = event.position()
        if self._wire_preview.isVisible():
            line = self._wire_preview.line()
            x, y = self._view.to_canvas((pos.x(), pos.y()))
            self._wire_preview.setLine(line.x1(), line.y1(), x, y)
        if self._pan_last is not None:
            dx = pos.x() - self._pan_last.x()
            dy = pos.y() - self._pan_last.y()
            self._pan_travel += abs(dx) + abs(dy)
            if self._pan_travel >= PAN_THRESHOLD:
                self._view.pan_by(dx, dy)
                self._pan_last = pos
            event.accept()
            return
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event: Any) -> None:
        if self._pan_last is not None:
            self._pan_last = None
            event.accept()
            return
        super().mouseReleaseEvent(event)

    def keyPressEvent(self, event: Any) -> None:
        if event.key() in (Qt.Key.Key_Delete, Qt.Key.Key_Backspace):
            self.delete_selection()
            event.accept()
            return
        if event.key() == Qt.Key.Key_Escape:
            self._store.cancel_connection()
            event.accept()
            return
        super().keyPressEvent(event)

    def delete_selection(self) -> None:
        """Delete the selected connections and the selected node."""
        for item in self._scene.selectedItems():
            if isinstance(item, EdgeItem):
                self._store.delete_connection(item.connection_id)
        if self._store.selected_node is not None:
            self._store.delete_node(self._store.selected_node)

    def dragEnterEvent(self, event: Any) -> None:
        if mime_payload(event.mimeData()):
            event.acceptProposedAction()
        else:
            event.ignore()

    def dragMoveEvent(self, event: Any) -> None:
        if mime_payload(event.mimeData()):
            event.acceptProposedAction()
        else:
            event.ignore()

    def dropEvent(self, event: Any) -> None:
        pos = event.position()
        self.drop_payload(mime_payload(event.mimeData()), (pos.x(), pos.y()))
        event.acceptProposedAction()

    def drop_payload(self, payload: dict[str, str], screen_point: tuple[float, float]) -> PipelineNode | None:
        """Create a node from drag data, centred on a viewport point."""
        x, y = self._view.to_canvas(screen_point)
        node = self._editor.drop(payload, Position(x - NODE_WIDTH / 2, y - NODE_HEIGHT / 2))
        if node is not None:
            self._store.select_node(node.id)
        return node
