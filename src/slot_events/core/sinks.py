"""Host-supplied sinks: key-value snapshot storage and leveled text output."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from slot_events.core.exceptions import PersistenceError

if TYPE_CHECKING:
    from slot_events.core.logger import LogLevel


class SnapshotSink(Protocol):
    """Minimal key-value store used for best-effort log snapshots."""

    def put(self, name: str, blob: str) -> None: ...

    def get(self, name: str) -> str | None: ...

    def remove(self, name: str) -> None: ...


class OutputChannel(Protocol):
    """Leveled text sink — one line per call."""

    def write(self, level: LogLevel, text: str) -> None: ...


class MemorySink:
    """In-memory ``SnapshotSink`` — the default when no host sink is given."""

    def __init__(self) -> None:
        """Initialise an empty store."""
        self._blobs: dict[str, str] = {}

    def put(self, name: str, blob: str) -> None:
        self._blobs[name] = blob

    def get(self, name: str) -> str | None:
        return self._blobs.get(name)

    def remove(self, name: str) -> None:
        self._blobs.pop(name, None)


class DirectorySink:
    """``SnapshotSink`` storing each key as ``<name>.json`` inside a directory.

    Args:
        directory: Target directory, created on first write.
    """

    def __init__(self, directory: Path) -> None:
        """Initialise the sink for *directory*."""
        self._directory = directory

    @property
    def directory(self) -> Path:
        """Return the storage directory."""
        return self._directory

    def _path(self, name: str) -> Path:
        return self._directory / f"{name}.json"

    def put(self, name: str, blob: str) -> None:
        """Write *blob* under *name*.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            self._path(name).write_text(blob, encoding="utf-8")
        except OSError as exc:
            msg = f"Cannot write snapshot '{name}' to {self._directory}: {exc}"
            raise PersistenceError(msg) from exc

    def get(self, name: str) -> str | None:
        """Return the blob stored under *name*, or ``None`` if absent.

        Raises:
            PersistenceError: If the file exists but cannot be read.
        """
        path = self._path(name)
        if not path.is_file():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            msg = f"Cannot read snapshot '{name}' from {self._directory}: {exc}"
            raise PersistenceError(msg) from exc

    def remove(self, name: str) -> None:
        """Delete the blob stored under *name*; missing keys are ignored."""
        try:
            self._path(name).unlink(missing_ok=True)
        except OSError as exc:
            msg = f"Cannot remove snapshot '{name}' from {self._directory}: {exc}"
            raise PersistenceError(msg) from exc


class LoggingOutput:
    """``OutputChannel`` writing through the stdlib ``logging`` machinery.

    Each event-log severity maps onto its own ``logging`` level, so the
    host decides where lines end up by configuring handlers.

    Args:
        logger_name: Name of the target logger.
    """

    def __init__(self, logger_name: str = "slot_events.events") -> None:
        """Initialise the channel for the named logger."""
        self._logger = logging.getLogger(logger_name)

    def write(self, level: LogLevel, text: str) -> None:
        """Emit *text* at the ``logging`` level matching *level*."""
        self._logger.log(level.to_logging_level(), text)
