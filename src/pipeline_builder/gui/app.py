"""QApplication bootstrap for the Pipeline Builder GUI."""

from __future__ import annotations

import logging
import sys

from PySide6.QtWidgets import QApplication

from pipeline_builder.catalog import load_catalog
from pipeline_builder.core.config import ConfigManager
from pipeline_builder.core.events import EventBus
from pipeline_builder.core.store import GraphStore
from pipeline_builder.gui.main_window import MainWindow
from pipeline_builder.gui.qt_timers import qt_timer


def main() -> None:
    """Launch the Pipeline Builder GUI application.

    Loads the user configuration and the node catalog, builds a
    ``GraphStore`` whose checkpoint timers run on the Qt event loop, shows
    the ``MainWindow`` and enters the event loop.
    """
    app = QApplication(sys.argv)
    app.setApplicationName("Pipeline Builder")

    config = ConfigManager()
    config.load()
    settings = config.settings()
    logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)

    event_bus = EventBus()
    store = GraphStore(settings=settings, event_bus=event_bus, timer_factory=qt_timer)

    window = MainWindow(store, load_catalog(), settings, timer_factory=qt_timer)
    window.show()

    sys.exit(app.exec())
