"""ConfigManager — global and per-handler settings backed by TOML files."""

from __future__ import annotations

import logging
import tomllib
from dataclasses import fields
from pathlib import Path
from typing import Any

from slot_events.core.exceptions import ConfigurationError
from slot_events.core.logger import LogLevel
from slot_events.core.manager import ManagerOptions
from slot_events.handlers.debug import DEBUG_LEVELS

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_DIR = Path.home() / ".config" / "slot-events"

_BOOL_OPTIONS = frozenset(
    {
        "enable_debug_logging",
        "enable_advanced_logging",
        "enable_debug_console",
        "enable_output",
        "enable_persistence",
    }
)


class ConfigManager:
    """Hierarchical configuration: global tables plus per-handler overrides.

    ``config.toml`` holds the global settings (``[manager]`` and
    ``[logger]`` tables, or top-level keys); ``handlers/<name>.toml``
    files override them for a single handler.

    Args:
        config_dir: Root directory for configuration files.
                    Defaults to ``~/.config/slot-events/``.
    """

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialise the config manager.

        Args:
            config_dir: Custom configuration directory.  Uses the
                        platform default if ``None``.
        """
        self._config_dir = config_dir or _DEFAULT_CONFIG_DIR
        self._global: dict[str, Any] = {}
        self._per_handler: dict[str, dict[str, Any]] = {}

    @property
    def config_dir(self) -> Path:
        """Return the configuration directory path."""
        return self._config_dir

    def load(self) -> None:
        """Load global and per-handler config from ``config_dir``.

        Missing files are silently skipped.

        Raises:
            ConfigurationError: If a file exists but is not valid TOML.
        """
        global_file = self._config_dir / "config.toml"
        if global_file.is_file():
            self._global = self._read_toml(global_file)
            logger.info("Loaded global config from %s", global_file)

        handlers_dir = self._config_dir / "handlers"
        if handlers_dir.is_dir():
            for toml_file in sorted(handlers_dir.glob("*.toml")):
                handler_name = toml_file.stem
                self._per_handler[handler_name] = self._read_toml(toml_file)
                logger.info("Loaded config for handler '%s'", handler_name)

    def get(self, key: str, *, handler: str | None = None, default: Any = None) -> Any:
        """Retrieve a config value with optional handler-level override.

        Args:
            key: The configuration key.
            handler: If given, check the handler-specific config first.
            default: Fallback value when the key is not found.

        Returns:
            The configuration value, or *default*.
        """
        if handler and handler in self._per_handler:
            value = self._per_handler[handler].get(key)
            if value is not None:
                return value
        return self._global.get(key, default)

    def section(self, name: str) -> dict[str, Any]:
        """Return a global table (e.g. ``"manager"``), or an empty dict."""
        table = self._global.get(name, {})
        if not isinstance(table, dict):
            msg = f"Config key '{name}' must be a table, got {type(table).__name__}"
            raise ConfigurationError(msg)
        return dict(table)

    def manager_options(self) -> ManagerOptions:
        """Build validated ``ManagerOptions`` from the ``[manager]`` table.

        The debug handler's level may also come from ``handlers/debug.toml``
        (key ``log_level``) and the logger level from ``[logger] level``.

        Raises:
            ConfigurationError: On unknown keys or values of the wrong kind.
        """
        raw = self.section("manager")
        known = {f.name for f in fields(ManagerOptions)}
        unknown = sorted(set(raw) - known)
        if unknown:
            msg = f"Unknown [manager] setting(s): {', '.join(unknown)}"
            raise ConfigurationError(msg)

        debug_level = self.get("log_level", handler="debug", default=None)
        if debug_level is not None and "debug_log_level" not in raw:
            raw["debug_log_level"] = debug_level
        logger_level = self.section("logger").get("level")
        if logger_level is not None and "log_level" not in raw:
            raw["log_level"] = logger_level

        for key in _BOOL_OPTIONS & set(raw):
            if not isinstance(raw[key], bool):
                msg = f"'{key}' must be true or false, got {raw[key]!r}"
                raise ConfigurationError(msg)
        if "debug_log_level" in raw and raw["debug_log_level"] not in DEBUG_LEVELS:
            msg = f"'debug_log_level' must be one of {', '.join(DEBUG_LEVELS)}, got {raw['debug_log_level']!r}"
            raise ConfigurationError(msg)
        if "log_level" in raw:
            raw["log_level"] = LogLevel.coerce(raw["log_level"])
        if "max_log_entries" in raw:
            value = raw["max_log_entries"]
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                msg = f"'max_log_entries' must be a positive integer, got {value!r}"
                raise ConfigurationError(msg)

        return ManagerOptions(**raw)

    @staticmethod
    def _read_toml(path: Path) -> dict[str, Any]:
        """Read and parse a TOML file.

        Args:
            path: Path to the TOML file.

        Returns:
            Parsed dictionary.
        """
        try:
            with path.open("rb") as fh:
                return tomllib.load(fh)
        except tomllib.TOMLDecodeError as exc:
            msg = f"Invalid TOML in {path}: {exc}"
            raise ConfigurationError(msg) from exc
