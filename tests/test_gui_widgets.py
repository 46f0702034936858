"""Tests for GUI widgets — NodePalette, NodeConfigPanel, TriggerPanel, YamlPreview, PipelineCanvas."""

from __future__ import annotations

import itertools
from pathlib import Path
from typing import Any

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QApplication, QCheckBox, QLineEdit, QPlainTextEdit, QSpinBox

from pipeline_builder.catalog import load_catalog
from pipeline_builder.core.datatypes import Position
from pipeline_builder.core.editing import NodeEditor
from pipeline_builder.core.events import EventBus
from pipeline_builder.core.export import Exporter
from pipeline_builder.core.payload import decode_payload, encode_template
from pipeline_builder.core.store import GraphStore
from pipeline_builder.core.triggers import MANUAL, PULL_REQUEST, PUSH, SCHEDULE
from pipeline_builder.core.view import ViewController
from pipeline_builder.gui.canvas import PipelineCanvas, mime_payload
from pipeline_builder.gui.widgets.node_config_panel import NodeConfigPanel
from pipeline_builder.gui.widgets.node_palette import NodePalette
from pipeline_builder.gui.widgets.trigger_panel import TriggerPanel
from pipeline_builder.gui.widgets.yaml_preview import YamlPreview

# ── Helpers ────────────────────────────────────────────────────────


def _make_store(timers: Any) -> GraphStore:
    counter = itertools.count(1)
    return GraphStore(
        event_bus=EventBus(),
        timer_factory=timers,
        id_factory=lambda prefix: f"{prefix}-{next(counter)}",
    )


def _add(store: GraphStore, node_type: str, y: float = 0.0) -> str:
    template = load_catalog().find(node_type)
    assert template is not None
    return store.add_node_from_template(template, Position(0.0, y)).id


# ── NodePalette ────────────────────────────────────────────────────


class TestNodePalette:
    """Tests for the catalog tree."""

    def test_lists_every_template(self, qtbot: object) -> None:
        """All catalog templates are visible initially."""
        catalog = load_catalog()
        palette = NodePalette(catalog)

        assert palette.visible_types() == [template.type for template in catalog.templates()]

    def test_filter_matches_name_and_description(self, qtbot: object) -> None:
        """Search text is matched case-insensitively against name, type and description."""
        palette = NodePalette(load_catalog())

        palette.filter("python")

        assert palette.visible_types() == ["setup-python", "pytest"]

    def test_clearing_filter_restores_all(self, qtbot: object) -> None:
        """An empty search shows everything again."""
        catalog = load_catalog()
        palette = NodePalette(catalog)
        palette.filter("docker")

        palette.filter("")

        assert len(palette.visible_types()) == len(catalog.templates())

    def test_mime_data_carries_template(self, qtbot: object) -> None:
        """Drag data decodes back into the catalog template."""
        catalog = load_catalog()
        palette = NodePalette(catalog)

        template = decode_payload(mime_payload(palette.mime_data_for("checkout")))

        assert template == catalog.find("checkout")

    def test_unknown_type_has_no_payload(self, qtbot: object) -> None:
        """Types outside the catalog produce empty drag data."""
        palette = NodePalette(load_catalog())

        assert mime_payload(palette.mime_data_for("teleport")) == {}

    def test_double_click_activates_template(self, qtbot: object) -> None:
        """Double-clicking an entry emits its node type."""
        palette = NodePalette(load_catalog())
        activated: list[str] = []
        palette.template_activated.connect(activated.append)

        header = palette._tree.topLevelItem(0)
        palette._on_item_double_clicked(header, 0)
        palette._on_item_double_clicked(header.child(0), 0)

        assert activated == ["checkout"]


# ── NodeConfigPanel ────────────────────────────────────────────────


class TestNodeConfigPanel:
    """Tests for the generated step form."""

    def test_placeholder_without_selection(self, qtbot: object, timers: Any) -> None:
        """Nothing selected shows no form."""
        store = _make_store(timers)
        panel = NodeConfigPanel(store, NodeEditor(store))

        assert panel.node_id is None
        assert panel.field_widget("run") is None

    def test_widgets_follow_value_types(self, qtbot: object, timers: Any) -> None:
        """Each config value gets an editor matching its type."""
        catalog = load_catalog()
        store = _make_store(timers)
        panel = NodeConfigPanel(store, NodeEditor(store, catalog), catalog)
        checkout = _add(store, "checkout")
        docker = _add(store, "docker-build")
        slack = _add(store, "slack-notify")
        run = _add(store, "npm-test")

        store.select_node(checkout)
        assert isinstance(panel.field_widget("ref"), QLineEdit)
        assert isinstance(panel.field_widget("fetch-depth"), QSpinBox)
        store.select_node(docker)
        assert isinstance(panel.field_widget("push"), QCheckBox)
        store.select_node(slack)
        assert isinstance(panel.field_widget("env"), QPlainTextEdit)
        store.select_node(run)
        assert isinstance(panel.field_widget("run"), QPlainTextEdit)
        assert panel.field_widget("run").toPlainText() == "npm test"

    def test_edits_reach_store(self, qtbot: object, timers: Any) -> None:
        """Typing, spinning and ticking update the node config."""
        catalog = load_catalog()
        store = _make_store(timers)
        panel = NodeConfigPanel(store, NodeEditor(store, catalog), catalog)
        checkout = _add(store, "checkout")
        docker = _add(store, "docker-build")

        store.select_node(checkout)
        ref = panel.field_widget("ref")
        ref.setText("develop")
        ref.textEdited.emit("develop")
        panel.field_widget("fetch-depth").setValue(0)
        assert store.get_node(checkout).config["ref"] == "develop"
        assert store.get_node(checkout).config["fetch-depth"] == 0

        store.select_node(docker)
        panel.field_widget("push").setChecked(True)
        assert store.get_node(docker).config["push"] is True

    def test_json_field_ignores_partial_text(self, qtbot: object, timers: Any) -> None:
        """Only text that parses as JSON is stored."""
        store = _make_store(timers)
        panel = NodeConfigPanel(store, NodeEditor(store))
        node_id = _add(store, "slack-notify")
        store.select_node(node_id)

        env = panel.field_widget("env")
        env.setPlainText('{"TOKEN": ')
        assert "TOKEN" not in store.get_node(node_id).config["env"]
        env.setPlainText('{"TOKEN": "x"}')
        assert store.get_node(node_id).config["env"] == {"TOKEN": "x"}

    def test_run_text_edit(self, qtbot: object, timers: Any) -> None:
        """The multi-line run box stores its text."""
        store = _make_store(timers)
        panel = NodeConfigPanel(store, NodeEditor(store))
        node_id = _add(store, "run")
        store.select_node(node_id)

        panel.field_widget("run").setPlainText("make test")

        assert store.get_node(node_id).config["run"] == "make test"

    def test_name_edit_is_sanitized(self, qtbot: object, timers: Any) -> None:
        """Renaming goes through the node-name sanitizer."""
        store = _make_store(timers)
        panel = NodeConfigPanel(store, NodeEditor(store))
        node_id = _add(store, "run")
        store.select_node(node_id)

        panel._name_edit.textEdited.emit("Build: <fast>")

        assert store.get_node(node_id).name == "Build fast"

    def test_external_change_rebuilds_form(self, qtbot: object, timers: Any) -> None:
        """Undo puts the old value back into the form."""
        store = _make_store(timers)
        editor = NodeEditor(store)
        panel = NodeConfigPanel(store, editor)
        node_id = _add(store, "npm-test")
        timers.fire_all()
        store.select_node(node_id)

        panel.field_widget("run").setPlainText("npm run ci")
        store.undo()

        assert store.get_node(node_id).config["run"] == "npm test"
        assert panel.field_widget("run").toPlainText() == "npm test"

    def test_delete_button(self, qtbot: object, timers: Any) -> None:
        """The delete button removes the step and clears the form."""
        store = _make_store(timers)
        panel = NodeConfigPanel(store, NodeEditor(store))
        node_id = _add(store, "run")
        store.select_node(node_id)

        panel._delete_btn.click()

        assert store.get_node(node_id) is None
        assert panel.node_id is None

    def test_reset_button(self, qtbot: object, timers: Any) -> None:
        """Reset restores the template defaults."""
        catalog = load_catalog()
        store = _make_store(timers)
        panel = NodeConfigPanel(store, NodeEditor(store, catalog), catalog)
        node_id = _add(store, "npm-test")
        store.select_node(node_id)
        panel.field_widget("run").setPlainText("echo hi")

        panel._reset_btn.click()

        assert store.get_node(node_id).config == {"run": "npm test"}
        assert panel.field_widget("run").toPlainText() == "npm test"


# ── TriggerPanel ───────────────────────────────────────────────────


class TestTriggerPanel:
    """Tests for trigger toggles and options."""

    def test_reflects_default_triggers(self, qtbot: object, timers: Any) -> None:
        """Only push is enabled at first, with branch ``main``."""
        panel = TriggerPanel(_make_store(timers), confirm=lambda _t, _m: True)

        assert panel.checkbox(PUSH).isChecked()
        assert not panel.checkbox(PULL_REQUEST).isChecked()
        assert panel.option_widget(PUSH, "branches").text() == "main"

    def test_enable_pull_request(self, qtbot: object, timers: Any) -> None:
        """Ticking a kind enables it with its default options."""
        store = _make_store(timers)
        panel = TriggerPanel(store, confirm=lambda _t, _m: True)

        panel.checkbox(PULL_REQUEST).setChecked(True)

        assert store.triggers.enabled_kinds() == [PUSH, PULL_REQUEST]
        assert panel.option_widget(PULL_REQUEST, "types").text() == "opened, synchronize, reopened"

    def test_declined_last_trigger_stays_checked(self, qtbot: object, timers: Any) -> None:
        """Declining the confirmation keeps the only trigger on."""
        store = _make_store(timers)
        asked: list[str] = []
        panel = TriggerPanel(store, confirm=lambda title, _m: asked.append(title) or False)

        panel.checkbox(PUSH).setChecked(False)

        assert asked == ["Disable last trigger"]
        assert panel.checkbox(PUSH).isChecked()
        assert store.triggers.enabled_kinds() == [PUSH]

    def test_accepted_last_trigger_switches_kind(self, qtbot: object, timers: Any) -> None:
        """Confirming enables the next kind in place of the last one."""
        store = _make_store(timers)
        panel = TriggerPanel(store, confirm=lambda _t, _m: True)

        panel.checkbox(PUSH).setChecked(False)

        assert store.triggers.enabled_kinds() == [PULL_REQUEST]
        assert panel.checkbox(PULL_REQUEST).isChecked()

    def test_branches_committed_on_editing_finished(self, qtbot: object, timers: Any) -> None:
        """Comma-separated branches are split when editing finishes."""
        store = _make_store(timers)
        panel = TriggerPanel(store, confirm=lambda _t, _m: True)
        line = panel.option_widget(PUSH, "branches")

        line.setText("main, release/*")
        line.editingFinished.emit()

        assert store.triggers.push.branches == ("main", "release/*")

    def test_cron_option(self, qtbot: object, timers: Any) -> None:
        """The schedule cron is stored once the kind is enabled."""
        store = _make_store(timers)
        panel = TriggerPanel(store, confirm=lambda _t, _m: True)
        panel.checkbox(SCHEDULE).setChecked(True)
        cron = panel.option_widget(SCHEDULE, "cron")

        cron.setText("0 6 * * 1")
        cron.editingFinished.emit()

        assert store.triggers.schedule.cron == "0 6 * * 1"

    def test_options_of_disabled_kind_ignored(self, qtbot: object, timers: Any) -> None:
        """Editing a hidden option group changes nothing."""
        store = _make_store(timers)
        panel = TriggerPanel(store, confirm=lambda _t, _m: True)
        cron = panel.option_widget(SCHEDULE, "cron")

        cron.setText("0 6 * * 1")
        cron.editingFinished.emit()

        assert store.triggers.schedule is None

    def test_manual_inputs_json(self, qtbot: object, timers: Any) -> None:
        """Manual inputs are read from JSON text, keeping what was typed."""
        store = _make_store(timers)
        panel = TriggerPanel(store, confirm=lambda _t, _m: True)
        panel.checkbox(MANUAL).setChecked(True)
        inputs = panel.option_widget(MANUAL, "inputs")

        text = '{"environment": {"description": "Target", "required": true}}'
        inputs.setPlainText(text)

        name, spec = store.triggers.workflow_dispatch.inputs[0]
        assert name == "environment"
        assert spec.required is True
        assert inputs.toPlainText() == text

    def test_undo_refreshes_panel(self, qtbot: object, timers: Any) -> None:
        """Undoing a trigger change updates the checkboxes."""
        store = _make_store(timers)
        panel = TriggerPanel(store, confirm=lambda _t, _m: True)
        panel.checkbox(PULL_REQUEST).setChecked(True)

        store.undo()

        assert not panel.checkbox(PULL_REQUEST).isChecked()


# ── YamlPreview ────────────────────────────────────────────────────


class TestYamlPreview:
    """Tests for the live workflow preview."""

    def test_placeholder_for_empty_graph(self, qtbot: object, timers: Any) -> None:
        """An empty graph shows the placeholder step."""
        preview = YamlPreview(_make_store(timers), Exporter(timer_factory=timers))

        assert preview.text.startswith("# No pipeline steps defined yet\n")
        assert "# Add your pipeline steps here" in preview.text

    def test_updates_on_store_change(self, qtbot: object, timers: Any) -> None:
        """Adding a step re-renders the text."""
        store = _make_store(timers)
        preview = YamlPreview(store, Exporter(timer_factory=timers))

        _add(store, "checkout")

        assert 'uses: "actions/checkout@v4"' in preview.text

    def test_copy_is_debounced(self, qtbot: object, timers: Any) -> None:
        """Copy lands in the clipboard once the debounce fires."""
        store = _make_store(timers)
        preview = YamlPreview(store, Exporter(timer_factory=timers))
        messages: list[str] = []
        preview.message.connect(messages.append)
        QApplication.clipboard().setText("")

        preview.copy()
        preview.copy()
        timers.fire_all()

        assert QApplication.clipboard().text() == preview.text
        assert messages == ["Workflow copied to clipboard"]

    def test_download(self, qtbot: object, tmp_path: Path, timers: Any) -> None:
        """Download writes the workflow and reports the path."""
        preview = YamlPreview(_make_store(timers), Exporter(timer_factory=timers))
        messages: list[str] = []
        preview.message.connect(messages.append)
        target = tmp_path / "workflow.yml"

        assert preview.download(target) is True

        assert target.read_text(encoding="utf-8") == preview.text
        assert messages == [f"Saved workflow to {target}"]


# ── PipelineCanvas ─────────────────────────────────────────────────


def _make_canvas(timers: Any) -> tuple[GraphStore, PipelineCanvas]:
    catalog = load_catalog()
    store = _make_store(timers)
    canvas = PipelineCanvas(store, NodeEditor(store, catalog), ViewController(store.event_bus), catalog)
    return store, canvas


class TestPipelineCanvas:
    """Tests for the node-graph view."""

    def test_items_follow_store(self, qtbot: object, timers: Any) -> None:
        """Nodes and connections get items; deletions remove them."""
        store, canvas = _make_canvas(timers)
        qtbot.addWidget(canvas)
        first = _add(store, "checkout")
        second = _add(store, "npm-test", 150.0)
        connection = store.add_connection(first, second)

        assert canvas.node_item(first).title == "Checkout Code"
        assert canvas.node_item(second).pos().y() == 150.0
        assert canvas.edge_item(connection.id) is not None

        store.delete_node(first)

        assert canvas.node_item(first) is None
        assert canvas.edge_item(connection.id) is None

    def test_drop_centres_node(self, qtbot: object, timers: Any) -> None:
        """A drop creates the node centred on the pointer and selects it."""
        store, canvas = _make_canvas(timers)
        qtbot.addWidget(canvas)

        node = canvas.drop_payload(encode_template(load_catalog().find("run")), (300.0, 200.0))

        assert node is not None
        assert node.position == Position(200.0, 168.0)
        assert store.selected_node == node.id

    def test_bad_drop_ignored(self, qtbot: object, timers: Any) -> None:
        """Unusable drag data creates nothing."""
        store, canvas = _make_canvas(timers)
        qtbot.addWidget(canvas)

        assert canvas.drop_payload({"text/plain": "not json"}, (10.0, 10.0)) is None
        assert store.nodes == ()

    def test_wiring_creates_connection(self, qtbot: object, timers: Any) -> None:
        """Output handle then target node creates an edge."""
        store, canvas = _make_canvas(timers)
        qtbot.addWidget(canvas)
        first = _add(store, "checkout")
        second = _add(store, "npm-test", 150.0)

        canvas.begin_wiring(first)
        assert canvas.is_wiring
        canvas.finish_wiring(second)

        assert not canvas.is_wiring
        assert [(c.source, c.target) for c in store.connections] == [(first, second)]

    def test_selection_highlight(self, qtbot: object, timers: Any) -> None:
        """The selected node is drawn with a thicker outline."""
        store, canvas = _make_canvas(timers)
        qtbot.addWidget(canvas)
        node_id = _add(store, "run")

        canvas.select(node_id)

        assert canvas.node_item(node_id).pen().width() == 3
        canvas.select(None)
        assert canvas.node_item(node_id).pen().width() == 1

    def test_zoom_transforms_world(self, qtbot: object, timers: Any) -> None:
        """View changes scale the item layer."""
        store, canvas = _make_canvas(timers)
        qtbot.addWidget(canvas)

        canvas._view.zoom_to(2.0, (0.0, 0.0))

        assert canvas._world.transform().m11() == 2.0

    def test_commit_move(self, qtbot: object, timers: Any) -> None:
        """Dragging a node stores its new position."""
        store, canvas = _make_canvas(timers)
        qtbot.addWidget(canvas)
        node_id = _add(store, "run")
        item = canvas.node_item(node_id)

        item.setPos(40.0, 60.0)
        canvas.commit_move(node_id, item.pos())

        assert store.get_node(node_id).position == Position(40.0, 60.0)

    def test_delete_key_removes_selection(self, qtbot: object, timers: Any) -> None:
        """Delete removes the selected node."""
        store, canvas = _make_canvas(timers)
        qtbot.addWidget(canvas)
        node_id = _add(store, "run")
        store.select_node(node_id)

        canvas.show()
        qtbot.keyClick(canvas, Qt.Key.Key_Delete)

        assert store.nodes == ()

    def test_escape_cancels_wiring(self, qtbot: object, timers: Any) -> None:
        """Escape abandons a pending connection."""
        store, canvas = _make_canvas(timers)
        qtbot.addWidget(canvas)
        node_id = _add(store, "run")
        canvas.begin_wiring(node_id)

        canvas.show()
        qtbot.keyClick(canvas, Qt.Key.Key_Escape)

        assert store.connecting_from is None
