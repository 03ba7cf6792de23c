"""Threaded serial transport carrying fire-and-forget and tracked commands."""

from __future__ import annotations

import queue
import re
import sys
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Optional

import serial

from .buttons import MouseButtonStates
from .errors import CommandTimeout, MakcuConnectionError
from .profiler import PerformanceProfiler

CRLF = b"\r\n"
SENT_LOG_SIZE = 32
READ_CHUNK = 512
QUEUE_SIZE = 1024

_CLOSE_TIMEOUT = 0.02
_ERROR_BACKOFF = 0.01
_ID_MASK = 0xFFFFFFFF
_COMMAND_ID = re.compile(rb"\+?[0-9]+")

ButtonCallback = Callable[[MouseButtonStates], None]
SerialFactory = Callable[[str, int, float], Any]


def _as_bytes(payload: str | bytes) -> bytes:
    if isinstance(payload, str):
        return payload.encode("utf-8")
    return bytes(payload)


class SentLog:
    """The most recent payloads sent, used to recognise the device's echo."""

    def __init__(self, maxlen: int = SENT_LOG_SIZE) -> None:
        self._items: deque[bytes] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def append(self, payload: str | bytes) -> None:
        """Remember ``payload``, forgetting the oldest entry when full."""
        with self._lock:
            self._items.append(_as_bytes(payload))

    def __contains__(self, payload: object) -> bool:
        if not isinstance(payload, (str, bytes, bytearray)):
            return False
        with self._lock:
            return _as_bytes(payload) in self._items


class _PendingCommand:
    """A tracked command waiting for the device's answer."""

    def __init__(self, tag: str, started: float) -> None:
        self.tag = tag
        self.started = started
        self._event = threading.Event()
        self._response: Optional[str] = None

    def deliver(self, response: str) -> None:
        self._response = response
        self._event.set()

    def wait(self, timeout: Optional[float]) -> Optional[str]:
        """Return the response, or None if none arrived within ``timeout``."""
        if self._event.wait(timeout):
            return self._response
        return None


class PendingCommands:
    """Tracked commands awaiting a response, in the order they were sent."""

    def __init__(self) -> None:
        self._entries: dict[int, _PendingCommand] = {}
        self._lock = threading.Lock()

    def add(self, command_id: int, tag: str, started: float) -> _PendingCommand:
        """Register a command and return the entry to wait on."""
        entry = _PendingCommand(tag, started)
        with self._lock:
            self._entries[command_id] = entry
        return entry

    def resolve(self, command_id: int, response: str) -> Optional[_PendingCommand]:
        """Answer the command with ``command_id``; return its entry if it was pending."""
        with self._lock:
            entry = self._entries.pop(command_id, None)
        if entry is not None:
            entry.deliver(response)
        return entry

    def resolve_oldest(self, response: str) -> Optional[_PendingCommand]:
        """Answer the earliest pending command, if any."""
        with self._lock:
            if not self._entries:
                return None
            command_id = next(iter(self._entries))
            entry = self._entries.pop(command_id)
        entry.deliver(response)
        return entry

    def discard(self, command_id: int) -> bool:
        """Stop tracking a command; return whether it was pending."""
        with self._lock:
            return self._entries.pop(command_id, None) is not None

    def fail_all(self, message: str) -> None:
        """Answer every pending command with ``message`` and forget them."""
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
        for entry in entries:
            entry.deliver(message)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _first_of(data: bytes, *needles: bytes) -> Optional[int]:
    positions = [pos for pos in (data.find(n) for n in needles) if pos >= 0]
    return min(positions, default=None)


def handle_line(
    line: bytes,
    pending: PendingCommands,
    sent_log: SentLog,
    profiler: Optional[PerformanceProfiler] = None,
) -> bool:
    """Dispatch one received line; return whether a pending command was answered.

    A line carrying ``#<id>:`` answers that command. Any other line answers
    the oldest pending command, unless it is an echo of something sent.
    """
    line = bytes(line)
    hash_pos = line.find(b"#")
    if hash_pos >= 0:
        rest = line[hash_pos + 1:]
        end = _first_of(rest, b":", b"\r")
        if end is not None:
            digits = rest[:end]
            if _COMMAND_ID.fullmatch(digits) and int(digits) <= _ID_MASK:
                response = rest[end + 1:].decode("utf-8", "replace")
                entry = pending.resolve(int(digits), response)
                if entry is not None and profiler is not None:
                    profiler.record(entry.tag, entry.started)
                return entry is not None

    if not len(pending):
        return False

    payload = line
    if payload.startswith(b">>>"):
        payload = payload[3:]
        if payload.startswith(b" "):
            payload = payload[1:]

    if payload in sent_log:
        return False
    return pending.resolve_oldest(payload.decode("utf-8", "replace")) is not None


def split_lines(buffer: bytearray) -> list[bytes]:
    """Remove complete lines from ``buffer`` and return the non-empty ones.

    Line endings are stripped; an unterminated tail stays in the buffer.
    """
    lines = []
    while (pos := buffer.find(b"\n")) >= 0:
        line = bytes(buffer[:pos])
        del buffer[: pos + 1]
        if line.endswith(b"\r"):
            line = line[:-1]
        if line:
            lines.append(line)
    return lines


@dataclass
class _Packet:
    data: bytes
    tag: str
    started: float


def _open_serial(port: str, baudrate: int, timeout: float) -> serial.Serial:
    return serial.Serial(port, baudrate, timeout=timeout)


class SerialTransport:
    """A serial port served by a writer thread and a reader thread."""

    def __init__(
        self,
        port: str,
        baudrate: int = 115_200,
        timeout: float = 0.01,
        serial_factory: Optional[SerialFactory] = None,
        profiler: Optional[PerformanceProfiler] = None,
    ) -> None:
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self.profiler = profiler if profiler is not None else PerformanceProfiler()
        self.pending = PendingCommands()
        self.sent_log = SentLog()
        self._factory = serial_factory or _open_serial
        self._ser: Any = None
        self._stop = threading.Event()
        self._queue: Optional[queue.Queue[Optional[_Packet]]] = None
        self._reader: Optional[threading.Thread] = None
        self._writer: Optional[threading.Thread] = None
        self._button_callback: Optional[ButtonCallback] = None
        self._id_lock = threading.Lock()
        self._last_id = 0

    def open(self) -> None:
        """Open the port and start the I/O threads; does nothing if already open."""
        if self.is_open():
            return
        try:
            ser = self._factory(self.port, self.baudrate, self.timeout)
        except (OSError, ValueError) as exc:
            raise MakcuConnectionError(str(exc)) from exc
        self._ser = ser
        self._stop.clear()
        packets: queue.Queue[Optional[_Packet]] = queue.Queue(maxsize=QUEUE_SIZE)
        self._queue = packets
        self._writer = threading.Thread(
            target=self._write_loop, args=(ser, packets), name="makcu-writer", daemon=True
        )
        self._reader = threading.Thread(
            target=self._read_loop, args=(ser,), name="makcu-reader", daemon=True
        )
        self._writer.start()
        self._reader.start()

    def close(self) -> None:
        """Stop the I/O threads, close the port and release waiting commands."""
        self._stop.set()
        ser = self._ser
        if ser is not None:
            try:
                ser.timeout = _CLOSE_TIMEOUT
            except (OSError, ValueError, AttributeError):
                pass
        if self._queue is not None:
            try:
                self._queue.put_nowait(None)
            except queue.Full:
                pass
        for thread in (self._reader, self._writer):
            if thread is not None and thread is not threading.current_thread():
                thread.join()
        self._reader = self._writer = None
        if ser is not None:
            try:
                ser.close()
            except OSError:
                pass
        self._ser = None
        self._queue = None
        self.pending.fail_all("Port closed")

    def is_open(self) -> bool:
        """Whether the port is open."""
        return self._ser is not None

    def _next_id(self) -> int:
        with self._id_lock:
            self._last_id = (self._last_id + 1) & _ID_MASK
            return self._last_id

    def _enqueue(self, packet: _Packet) -> None:
        packets = self._queue
        if packets is None:
            raise MakcuConnectionError("Port not open")
        try:
            packets.put_nowait(packet)
        except queue.Full:
            pass

    def send_ff(self, payload: str) -> None:
        """Queue ``payload`` for sending without waiting for an answer."""
        self.sent_log.append(payload)
        self._enqueue(_Packet(_as_bytes(payload) + CRLF, "move", time.perf_counter()))

    def send_tracked(self, payload: str, timeout_s: float = 1.0) -> str:
        """Send ``payload`` tagged with a command id and return the device's answer."""
        if timeout_s < 0:
            raise ValueError(f"timeout must not be negative, got {timeout_s}")
        started = time.perf_counter()
        tag = "serial"
        self.sent_log.append(payload)
        command_id = self._next_id()
        entry = self.pending.add(command_id, tag, started)
        data = _as_bytes(payload) + f"#{command_id}".encode("ascii") + CRLF
        try:
            self._enqueue(_Packet(data, tag, started))
        except MakcuConnectionError:
            self.pending.discard(command_id)
            raise
        response = entry.wait(timeout_s)
        if response is None:
            self.pending.discard(command_id)
            raise CommandTimeout(command_id)
        return response

    def set_button_callback(self, callback: Optional[ButtonCallback]) -> None:
        """Call ``callback`` with each button state the device reports; None clears it."""
        self._button_callback = callback

    def _write_loop(self, ser: Any, packets: queue.Queue[Optional[_Packet]]) -> None:
        while not self._stop.is_set():
            batch = [packets.get()]
            while True:
                try:
                    batch.append(packets.get_nowait())
                except queue.Empty:
                    break
            real = [packet for packet in batch if packet is not None]
            if not real:
                continue
            try:
                ser.write(b"".join(packet.data for packet in real))
            except OSError as exc:
                print(f"writer error: {exc}", file=sys.stderr)
                break
            self.profiler.record(real[0].tag, real[0].started)

    def _read_loop(self, ser: Any) -> None:
        buffer = bytearray()
        while not self._stop.is_set():
            try:
                chunk = ser.read(READ_CHUNK)
            except OSError:
                time.sleep(_ERROR_BACKOFF)
                continue
            if not chunk:
                continue
            if len(chunk) == 1 and chunk[0] < 32 and chunk not in (b"\r", b"\n"):
                callback = self._button_callback
                if callback is not None:
                    callback(MouseButtonStates.from_mask(chunk[0]))
                continue
            buffer.extend(chunk)
            for line in split_lines(buffer):
                handle_line(line, self.pending, self.sent_log, self.profiler)

    def __enter__(self) -> SerialTransport:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()