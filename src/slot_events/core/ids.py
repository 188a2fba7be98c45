"""Sortable event identifiers: ULIDs with a monotonic per-generator tie-break."""

from __future__ import annotations

import re
import time
from collections.abc import Callable

from ulid import ULID

ID_LENGTH = 26

_TIMESTAMP_BYTES = 6
_RANDOMNESS_BYTES = 10
_MAX_TIME_MS = (1 << (8 * _TIMESTAMP_BYTES)) - 1
_MAX_SEQUENCE = (1 << (8 * _RANDOMNESS_BYTES)) - 1
# Crockford base32, upper case; a 48-bit timestamp keeps the first char below 8.
_ID_PATTERN = re.compile(r"^[0-7][0-9A-HJKMNP-TV-Z]{25}$")


class IdGenerator:
    """Produce unique, lexicographically increasing ULIDs.

    The timestamp part holds the millisecond clock, the randomness part a
    sequence number.  The clock value used never goes backwards: if the
    wall clock regresses, the last seen millisecond is reused.  Two ids
    minted within the same millisecond differ by their sequence number,
    which is incremented; it restarts at zero on every new millisecond.

    Args:
        clock: Callable returning the current time in seconds.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        """Initialise the generator with the given clock."""
        self._clock = clock
        self._last_ms = -1
        self._sequence = 0

    def next_ulid(self) -> ULID:
        """Return the next identifier as a ``ULID``."""
        now_ms = min(int(self._clock() * 1000), _MAX_TIME_MS)
        if now_ms > self._last_ms:
            self._last_ms = now_ms
            self._sequence = 0
        elif self._sequence < _MAX_SEQUENCE:
            self._sequence += 1
        else:
            # Sequence space for this millisecond exhausted; borrow the next one.
            self._last_ms += 1
            self._sequence = 0
        return ULID.from_bytes(
            self._last_ms.to_bytes(_TIMESTAMP_BYTES, "big") + self._sequence.to_bytes(_RANDOMNESS_BYTES, "big")
        )

    def next_id(self) -> str:
        """Return the next identifier."""
        return str(self.next_ulid())


_default_generator = IdGenerator()


def generate_id() -> str:
    """Return a new identifier from the process-wide generator."""
    return _default_generator.next_id()


def is_valid_id(value: str) -> bool:
    """Return ``True`` if *value* is a well-formed identifier."""
    return bool(_ID_PATTERN.match(value))


def timestamp_from_id(value: str) -> float:
    """Return the creation time (seconds since the epoch) encoded in *value*.

    Raises:
        ValueError: If *value* is not a valid identifier.
    """
    if not is_valid_id(value):
        msg = f"Not a valid event id: {value!r}"
        raise ValueError(msg)
    return ULID.from_str(value).milliseconds / 1000.0
