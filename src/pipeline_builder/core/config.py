"""ConfigManager — builder settings backed by a TOML file."""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_DIR = Path.home() / ".config" / "pipeline-builder"


@dataclass(frozen=True)
class BuilderSettings:
    """Resolved settings used by the store, the serializer and the exporter.

    Attributes:
        workflow_name: Top-level ``name`` of generated workflows.
        job_id: Key of the single job under ``jobs``.
        runs_on: Runner label of that job.
        history_limit: Maximum number of retained undo snapshots.
        quick_delay: Checkpoint delay for structural edits, in seconds.
        slow_delay: Checkpoint delay for continuous edits, in seconds.
        export_filename: Default file name for the downloaded workflow.
        copy_debounce: Debounce applied to the copy action, in seconds.
        download_throttle: Throttle applied to the download action, in seconds.
        debug: Run the output self-check and log its findings.
    """

    workflow_name: str = "CI/CD Pipeline"
    job_id: str = "build"
    runs_on: str = "ubuntu-latest"
    history_limit: int = 200
    quick_delay: float = 0.5
    slow_delay: float = 2.0
    export_filename: str = "workflow.yml"
    copy_debounce: float = 0.3
    download_throttle: float = 1.0
    debug: bool = False


# (section, key) in config.toml → BuilderSettings field
_SETTING_KEYS: dict[str, tuple[str | None, str]] = {
    "workflow_name": ("workflow", "name"),
    "job_id": ("workflow", "job"),
    "runs_on": ("workflow", "runs_on"),
    "history_limit": ("history", "limit"),
    "quick_delay": ("history", "quick_delay"),
    "slow_delay": ("history", "slow_delay"),
    "export_filename": ("export", "filename"),
    "copy_debounce": ("export", "copy_debounce"),
    "download_throttle": ("export", "download_throttle"),
    "debug": (None, "debug"),
}

# Lower bounds for numeric settings
_MINIMUMS: dict[str, float] = {
    "history_limit": 1,
    "quick_delay": 0.0,
    "slow_delay": 0.0,
    "copy_debounce": 0.0,
    "download_throttle": 0.0,
}


class ConfigManager:
    """Sectioned configuration manager.

    Values live in ``config.toml`` inside *config_dir*; top-level keys are
    global and tables (``[workflow]``, ``[history]``, ``[export]``) group
    the rest.  In-memory overrides set with ``set`` win over file values.

    Args:
        config_dir: Root directory for configuration files.
                    Defaults to ``~/.config/pipeline-builder/``.
    """

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialise the config manager.

        Args:
            config_dir: Custom configuration directory.  Uses the
                        platform default if ``None``.
        """
        self._config_dir = config_dir or _DEFAULT_CONFIG_DIR
        self._values: dict[str, Any] = {}

    @property
    def config_dir(self) -> Path:
        """Return the configuration directory path."""
        return self._config_dir

    @property
    def config_file(self) -> Path:
        """Return the path of the main configuration file."""
        return self._config_dir / "config.toml"

    def load(self) -> None:
        """Load ``config.toml`` from ``config_dir``.

        A missing file is silently skipped.
        """
        if self.config_file.is_file():
            self._values = self._read_toml(self.config_file)
            logger.info("Loaded config from %s", self.config_file)

    def get(self, key: str, *, section: str | None = None, default: Any = None) -> Any:
        """Retrieve a config value.

        Args:
            key: The configuration key.
            section: Table the key lives in; ``None`` for top-level keys.
            default: Fallback value when the key is not found.

        Returns:
            The configuration value, or *default*.
        """
        if section is None:
            return self._values.get(key, default)
        table = self._values.get(section)
        if not isinstance(table, dict):
            return default
        return table.get(key, default)

    def set(self, key: str, value: Any, *, section: str | None = None) -> None:
        """Set a configuration value (in-memory only).

        Args:
            key: The configuration key.
            value: The value to store.
            section: Table to store the key in; ``None`` for top-level.
        """
        if section is None:
            self._values[key] = value
        else:
            self._values.setdefault(section, {})[key] = value

    def settings(self) -> BuilderSettings:
        """Resolve the current values into a ``BuilderSettings``.

        Values of the wrong type or out of range (a history limit below 1,
        a negative delay) are ignored with a warning and the default is
        used instead.
        """
        defaults = BuilderSettings()
        resolved: dict[str, Any] = {}
        for field_name, (section, key) in _SETTING_KEYS.items():
            default = getattr(defaults, field_name)
            value = self.get(key, section=section, default=default)
            expected = (int, float) if isinstance(default, float) else type(default)
            if isinstance(value, bool) and not isinstance(default, bool):
                value = default
            if not isinstance(value, expected):
                logger.warning("Ignoring %s=%r from config: expected %s", key, value, type(default).__name__)
                value = default
            minimum = _MINIMUMS.get(field_name)
            if minimum is not None and value < minimum:
                logger.warning("Ignoring %s=%r from config: must be at least %s", key, value, minimum)
                value = default
            resolved[field_name] = type(default)(value)
        return BuilderSettings(**resolved)

    @staticmethod
    def _read_toml(path: Path) -> dict[str, Any]:
        """Read and parse a TOML file.

        Args:
            path: Path to the TOML file.

        Returns:
            Parsed dictionary.
        """
        with path.open("rb") as fh:
            return tomllib.load(fh)
