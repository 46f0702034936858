"""Tests for the EventBus that links the store, the view and the GUI."""

from __future__ import annotations

from typing import Any

import pytest

from pipeline_builder.core.events import HISTORY_CHANGED, SELECTION_CHANGED, STORE_CHANGED, VIEW_CHANGED, EventBus


class TestEventBusDelivery:
    """Tests for delivering store and view notifications."""

    def test_payload_passed_as_keywords(self) -> None:
        """History notifications arrive with their flags as keyword arguments."""
        bus = EventBus()
        seen: list[dict[str, Any]] = []
        bus.subscribe(HISTORY_CHANGED, lambda **kw: seen.append(kw))

        bus.emit(HISTORY_CHANGED, can_undo=True, can_redo=False)

        assert seen == [{"can_undo": True, "can_redo": False}]

    def test_subscribers_run_in_subscription_order(self) -> None:
        """Canvas, panel and preview style subscribers are called in order."""
        bus = EventBus()
        order: list[str] = []
        for name in ("canvas", "panel", "preview"):
            bus.subscribe(STORE_CHANGED, lambda _name=name, **_kw: order.append(_name))

        bus.emit(STORE_CHANGED)

        assert order == ["canvas", "panel", "preview"]

    def test_events_do_not_cross(self) -> None:
        """A view listener ignores selection changes."""
        bus = EventBus()
        zooms: list[float] = []
        bus.subscribe(VIEW_CHANGED, lambda **kw: zooms.append(kw["scale"]))

        bus.emit(SELECTION_CHANGED, node_id="node-1")
        bus.emit(VIEW_CHANGED, scale=1.5, pan=(0.0, 0.0))

        assert zooms == [1.5]

    def test_nobody_listening(self) -> None:
        """Emitting with no subscribers is harmless."""
        EventBus().emit(SELECTION_CHANGED, node_id=None)


class TestEventBusSubscriptions:
    """Tests for subscriber bookkeeping."""

    def test_unsubscribe_stops_delivery(self) -> None:
        """A removed handler receives nothing further."""
        bus = EventBus()
        hits: list[object] = []

        def on_selection(**kw: Any) -> None:
            hits.append(kw["node_id"])

        bus.subscribe(SELECTION_CHANGED, on_selection)
        bus.emit(SELECTION_CHANGED, node_id="a")
        bus.unsubscribe(SELECTION_CHANGED, on_selection)
        bus.emit(SELECTION_CHANGED, node_id="b")

        assert hits == ["a"]

    def test_unsubscribing_a_stranger_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """Removing a handler that never subscribed logs a warning."""
        EventBus().unsubscribe(STORE_CHANGED, lambda **_kw: None)

        assert "was not subscribed" in caplog.text

    def test_handler_count(self) -> None:
        """``handler_count`` follows subscribe and unsubscribe calls."""
        bus = EventBus()

        def first(**_kw: Any) -> None:
            pass

        assert bus.handler_count(STORE_CHANGED) == 0
        bus.subscribe(STORE_CHANGED, first)
        bus.subscribe(STORE_CHANGED, lambda **_kw: None)
        assert bus.handler_count(STORE_CHANGED) == 2

        bus.unsubscribe(STORE_CHANGED, first)
        assert bus.handler_count(STORE_CHANGED) == 1

    def test_handler_may_unsubscribe_while_emitting(self) -> None:
        """A handler removing itself during emit does not skip the next one."""
        bus = EventBus()
        calls: list[str] = []

        def once(**_kw: Any) -> None:
            calls.append("once")
            bus.unsubscribe(STORE_CHANGED, once)

        bus.subscribe(STORE_CHANGED, once)
        bus.subscribe(STORE_CHANGED, lambda **_kw: calls.append("always"))

        bus.emit(STORE_CHANGED)
        bus.emit(STORE_CHANGED)

        assert calls == ["once", "always", "always"]


class TestEventBusFailures:
    """Tests for isolating failing subscribers."""

    def test_failing_subscriber_is_logged_and_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        """A broken panel does not stop the preview from refreshing."""
        bus = EventBus()
        refreshed: list[bool] = []

        def broken_panel(**_kw: Any) -> None:
            msg = "panel exploded"
            raise RuntimeError(msg)

        bus.subscribe(STORE_CHANGED, broken_panel)
        bus.subscribe(STORE_CHANGED, lambda **_kw: refreshed.append(True))

        bus.emit(STORE_CHANGED)

        assert refreshed == [True]
        assert "panel exploded" in caplog.text
