"""Exporter — the copy and download actions of the YAML preview."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from pipeline_builder.core.config import BuilderSettings
from pipeline_builder.core.timing import Debouncer, Throttler, TimerFactory

logger = logging.getLogger(__name__)

ALTERNATE_EXPORT_FILENAME = "pipeline.yml"

ClipboardSetter = Callable[[str], None]


def write_workflow(text: str, path: Path) -> Path:
    """Write workflow text to *path*, creating parent directories.

    Returns:
        The path written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    logger.info("Wrote workflow to %s", path)
    return path


class Exporter:
    """Rate-limited copy and download of generated workflow text.

    Copies are debounced so a burst of clicks copies once; downloads are
    throttled so repeated clicks within the interval write only once.

    Args:
        settings: Supplies the debounce/throttle intervals and file name.
        timer_factory: Timer factory for the copy debouncer.
    """

    def __init__(self, settings: BuilderSettings | None = None, *, timer_factory: TimerFactory | None = None) -> None:
        self._settings = settings or BuilderSettings()
        self._copy = Debouncer(self._settings.copy_debounce, self._do_copy, timer_factory=timer_factory)
        self._download = Throttler(self._settings.download_throttle, write_workflow)
        self.last_written: Path | None = None

    @property
    def default_filename(self) -> str:
        """Return the file name used when no path is given."""
        return self._settings.export_filename

    def copy(self, text: str, setter: ClipboardSetter) -> None:
        """Schedule copying *text* with *setter* (e.g. the clipboard)."""
        self._copy(text, setter)

    def flush_copy(self) -> bool:
        """Run a pending copy now; returns ``True`` if one was pending."""
        return self._copy.flush()

    def download(self, text: str, path: Path | None = None) -> bool:
        """Write *text* to *path*, or the default file name in the cwd.

        Returns:
            ``True`` if the file was written, ``False`` if throttled.
        """
        target = path or Path(self.default_filename)
        written = self._download(text, target)
        if written:
            self.last_written = target
        return written

    def _do_copy(self, text: str, setter: ClipboardSetter) -> None:
        setter(text)
        logger.info("Copied workflow (%d characters)", len(text))
