# logstream.py
# Append-only narrative of the current session.
#
# Entries are immutable and ordered by creation. The stream is the
# user-facing run log; diagnostics go through the `logging` module instead.

from collections.abc import Callable, Iterator
from datetime import datetime

from autoqa.models import LogEntry, LogLevel

INITIAL_MESSAGE = "System initialized. Waiting for target configuration..."


def _now() -> str:
    return datetime.now().strftime("%H:%M:%S")


class LogStream:
    """
    Ordered, timestamped, leveled log entries for one session.

    `on_append` callbacks receive every new entry as it is created, which
    lets a terminal print the narrative live.
    """

    def __init__(self, on_append: Callable[[LogEntry], None] | None = None) -> None:
        self._entries: list[LogEntry] = []
        self._listeners: list[Callable[[LogEntry], None]] = []
        if on_append is not None:
            self._listeners.append(on_append)
        self.reset()

    def subscribe(self, listener: Callable[[LogEntry], None]) -> None:
        self._listeners.append(listener)

    def append(self, message: str, level: LogLevel = LogLevel.INFO) -> LogEntry:
        entry = LogEntry(timestamp=_now(), level=level, message=message)
        self._entries.append(entry)
        for listener in self._listeners:
            listener(entry)
        return entry

    def reset(self) -> None:
        """Back to the single 'waiting for configuration' entry."""
        self._entries = [LogEntry(timestamp=_now(), level=LogLevel.INFO, message=INITIAL_MESSAGE)]

    def clear(self) -> None:
        """Drop every entry. A new run starts from an empty stream."""
        self._entries = []

    @property
    def entries(self) -> list[LogEntry]:
        """Shallow copy in creation order."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(list(self._entries))
