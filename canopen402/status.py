"""Severity levels, layer lifecycle states and status collectors for layers."""

from __future__ import annotations

from enum import IntEnum


class Level(IntEnum):
    """Severity of a layer status; higher is worse."""

    OK = 0
    WARN = 1
    ERROR = 2
    STALE = 3
    UNBOUNDED = 3


class LayerState(IntEnum):
    """Lifecycle state of a layer, ordered from off to ready."""

    OFF = 0
    INIT = 1
    SHUTDOWN = 2
    ERROR = 3
    HALT = 4
    RECOVER = 5
    READY = 6


class LayerStatus:
    """Collects the worst severity seen and the reasons given for it."""

    separator = "; "

    def __init__(self) -> None:
        self._level = Level.OK
        self._reasons: list[str] = []

    def _raise_to(self, level: Level, reason: str) -> None:
        if level > self._level:
            self._level = level
        if reason:
            self._reasons.append(reason)

    @property
    def level(self) -> Level:
        """The worst severity reported so far."""
        return self._level

    @property
    def reasons(self) -> list[str]:
        """All reasons in the order they were reported."""
        return list(self._reasons)

    @property
    def reason(self) -> str:
        """All reasons joined into one line."""
        return self.separator.join(self._reasons)

    def warn(self, reason: str) -> None:
        """Record a warning."""
        self._raise_to(Level.WARN, reason)

    def error(self, reason: str) -> None:
        """Record an error."""
        self._raise_to(Level.ERROR, reason)

    def bounded(self, level: Level) -> bool:
        """Return True if the current severity does not exceed ``level``."""
        return self._level <= level

    def equals(self, level: Level) -> bool:
        """Return True if the current severity is exactly ``level``."""
        return self._level == level

    def __repr__(self) -> str:
        return f"{type(self).__name__}(level={self._level.name}, reason={self.reason!r})"


class LayerReport(LayerStatus):
    """A status that also carries named diagnostic values."""

    def __init__(self) -> None:
        super().__init__()
        self._values: list[tuple[str, str]] = []

    @property
    def values(self) -> list[tuple[str, str]]:
        """The recorded key/value pairs, in insertion order."""
        return list(self._values)

    def add(self, key: str, value: object) -> None:
        """Record a diagnostic value, stored as text."""
        self._values.append((key, str(value)))