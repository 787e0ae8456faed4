"""
Publish and IO counters.

An observer is created once per process and passed to every client. The
client reports publish outcomes through on_published/on_acked/on_failed and
its connection reports wire traffic through the byte and error hooks;
nothing here is module-level state.
"""
import threading
from typing import Any, Protocol


class Observer(Protocol):
    def on_published(self, n: int) -> None: ...

    def on_acked(self, n: int) -> None: ...

    def on_failed(self, n: int) -> None: ...

    def on_write_bytes(self, n: int) -> None: ...

    def on_read_bytes(self, n: int) -> None: ...

    def on_write_error(self) -> None: ...

    def on_read_error(self) -> None: ...


class NullObserver:
    """Observer that discards everything."""

    def on_published(self, n: int) -> None:
        pass

    def on_acked(self, n: int) -> None:
        pass

    def on_failed(self, n: int) -> None:
        pass

    def on_write_bytes(self, n: int) -> None:
        pass

    def on_read_bytes(self, n: int) -> None:
        pass

    def on_write_error(self) -> None:
        pass

    def on_read_error(self) -> None:
        pass


class CountingObserver:
    """
    In-memory counters, safe to share between clients on different threads.

    publish_calls counts publish_events invocations, acked/failed count events.
    write_bytes/read_bytes count request and response body bytes;
    write_errors/read_errors count failed sends and failed body reads.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.publish_calls = 0
        self.acked = 0
        self.failed = 0
        self.write_bytes = 0
        self.read_bytes = 0
        self.write_errors = 0
        self.read_errors = 0

    def on_published(self, n: int) -> None:
        with self._lock:
            self.publish_calls += n

    def on_acked(self, n: int) -> None:
        with self._lock:
            self.acked += n

    def on_failed(self, n: int) -> None:
        with self._lock:
            self.failed += n

    def on_write_bytes(self, n: int) -> None:
        with self._lock:
            self.write_bytes += n

    def on_read_bytes(self, n: int) -> None:
        with self._lock:
            self.read_bytes += n

    def on_write_error(self) -> None:
        with self._lock:
            self.write_errors += 1

    def on_read_error(self) -> None:
        with self._lock:
            self.read_errors += 1

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "publish_calls": self.publish_calls,
                "acked": self.acked,
                "failed": self.failed,
                "write_bytes": self.write_bytes,
                "read_bytes": self.read_bytes,
                "write_errors": self.write_errors,
                "read_errors": self.read_errors,
            }
