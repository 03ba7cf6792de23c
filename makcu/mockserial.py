"""An in-memory serial port that imitates the device, for tests and demos."""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Optional

_BUTTON_MASK = b"\x01"


class MockSerial:
    """Answers every ``#<id>``-tagged write with ``>>> OK#<id>:OK``.

    Every ``button_interval`` seconds a left-button mask byte is also
    reported; ``None`` turns that off.
    """

    def __init__(
        self, timeout: Optional[float] = 0.01, button_interval: Optional[float] = 0.5
    ) -> None:
        self.timeout = timeout
        self.button_interval = button_interval
        self._lock = threading.Lock()
        self._incoming: deque[bytes] = deque()
        self._outgoing: list[bytes] = []
        self._last_button = time.monotonic()
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise OSError("port is closed")

    def read(self, size: int = 1) -> bytes:
        """Return the next queued chunk, at most ``size`` bytes of it."""
        self._check_open()
        if size <= 0:
            return b""
        now = time.monotonic()
        with self._lock:
            if (
                self.button_interval is not None
                and now - self._last_button > self.button_interval
            ):
                self._last_button = now
                self._incoming.append(_BUTTON_MASK)
            chunk = self._incoming.popleft() if self._incoming else None
            if chunk is not None and len(chunk) > size:
                self._incoming.appendleft(chunk[size:])
                chunk = chunk[:size]
        if chunk is not None:
            return chunk
        time.sleep(self.timeout or 0)
        return b""

    def write(self, data: bytes) -> int:
        """Record ``data`` and queue an answer if it carries a command id."""
        self._check_open()
        data = bytes(data)
        text = data.decode("utf-8", "replace")
        idx = text.rfind("#")
        with self._lock:
            self._outgoing.append(data)
            if idx >= 0:
                command_id = text[idx + 1:].rstrip()
                self._incoming.append(f">>> OK#{command_id}:OK\r\n".encode("utf-8"))
        return len(data)

    def flush(self) -> None:
        """Nothing is buffered, so there is nothing to flush."""
        self._check_open()

    def close(self) -> None:
        """Close the port; further reads and writes fail."""
        self._closed = True

    def written(self) -> list[bytes]:
        """Every chunk written so far, in order."""
        with self._lock:
            return list(self._outgoing)