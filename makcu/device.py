"""Synchronous control of a Makcu device over a serial port."""

from __future__ import annotations

import threading
from contextlib import suppress
from typing import Callable, Optional

from .buttons import MouseButton, MouseButtonStates
from .errors import MakcuConnectionError, MakcuError
from .profiler import PerformanceProfiler
from .transport import SerialFactory, SerialTransport

CRLF = "\r\n"

PROFILER = PerformanceProfiler()
"""Timing shared by every device; disabled unless switched on."""


def _flag(on: bool) -> int:
    return 1 if on else 0


class Batch:
    """Commands collected and sent to the device in a single write."""

    def __init__(self, device: Device) -> None:
        self._device = device
        self._parts: list[str] = []

    def _add(self, op: str, text: str) -> Batch:
        with PROFILER.measure(op):
            pass
        self._parts.append(text)
        return self

    def move_rel(self, dx: int, dy: int) -> Batch:
        """Move the pointer by ``dx``, ``dy``."""
        return self._add("move", f"km.move({dx},{dy}){CRLF}")

    def click(self, button: MouseButton) -> Batch:
        """Click ``button``."""
        return self._add("click", f"km.{button.command_name()}(){CRLF}")

    def press(self, button: MouseButton) -> Batch:
        """Press ``button`` down."""
        return self._add("press", f"km.{button.command_name()}(1){CRLF}")

    def release(self, button: MouseButton) -> Batch:
        """Let ``button`` go; the command is followed by an empty line."""
        return self._add("release", f"km.{button.command_name()}(0){CRLF}{CRLF}")

    def wheel(self, delta: int) -> Batch:
        """Turn the wheel by ``delta``."""
        return self._add("wheel", f"km.wheel({delta}){CRLF}")

    def run(self) -> None:
        """Send the collected commands; a disconnected device drops them."""
        with PROFILER.measure("batch"):
            with suppress(MakcuError):
                self._device._send_ff(str(self))

    def __str__(self) -> str:
        return "".join(self._parts)


class Device:
    """A Makcu device: pointer movement, buttons, wheel and input locks."""

    def __init__(
        self,
        port: str,
        baudrate: int = 115_200,
        timeout: float = 0.01,
        serial_factory: Optional[SerialFactory] = None,
    ) -> None:
        self._transport = SerialTransport(port, baudrate, timeout, serial_factory, PROFILER)
        self._connected = False
        self._buttons_lock = threading.Lock()
        self._buttons = MouseButtonStates()

    def batch(self) -> Batch:
        """Start a batch of commands for this device."""
        return Batch(self)

    def _store_buttons(self, states: MouseButtonStates) -> None:
        with self._buttons_lock:
            self._buttons = states

    def connect(self) -> None:
        """Open the port and ask the device to report button changes."""
        with PROFILER.measure("connect"):
            self._transport.open()
        self._connected = True
        self._transport.set_button_callback(self._store_buttons)
        self._send_ff("km.buttons(1)")

    def disconnect(self) -> None:
        """Close the port."""
        with PROFILER.measure("disconnect"):
            self._transport.close()
        self._connected = False

    def set_button_callback(
        self, callback: Optional[Callable[[MouseButtonStates], None]]
    ) -> None:
        """Call ``callback`` on each reported button state; None stops all tracking."""
        if callback is None:
            self._transport.set_button_callback(None)
            return

        def forward(states: MouseButtonStates) -> None:
            self._store_buttons(states)
            callback(states)

        self._transport.set_button_callback(forward)

    def button_states(self) -> MouseButtonStates:
        """The button state most recently reported by the device."""
        with self._buttons_lock:
            return self._buttons

    def _ensure(self) -> None:
        if not (self._connected and self._transport.is_open()):
            raise MakcuConnectionError("Not connected")

    def _send_ff(self, command: str) -> None:
        self._ensure()
        self._transport.send_ff(command)

    def _send_tracked(self, command: str, timeout_s: float) -> str:
        self._ensure()
        return self._transport.send_tracked(command, timeout_s)

    def _button(self, name: str, down: bool) -> None:
        self._send_ff(f"km.{name}({_flag(down)})")

    def _button_quiet(self, button: MouseButton, down: bool) -> None:
        with PROFILER.measure("click"):
            with suppress(MakcuError):
                self._button(button.command_name(), down)

    def _send_lock(self, short: str, lock: bool) -> None:
        self._send_ff(f"km.lock_{short}({_flag(lock)})")

    def move_rel(self, dx: int, dy: int) -> None:
        """Move the pointer; dropped silently when not connected."""
        with PROFILER.measure("move"):
            with suppress(MakcuError):
                self._send_ff(f"km.move({dx},{dy})")

    def press_left(self) -> None:
        self._button("left", True)

    def release_left(self) -> None:
        self._button("left", False)

    def press_right(self) -> None:
        self._button("right", True)

    def release_right(self) -> None:
        self._button("right", False)

    def press_middle(self) -> None:
        self._button("middle", True)

    def release_middle(self) -> None:
        self._button("middle", False)

    def click_left(self) -> None:
        self.press_left()
        self.release_left()

    def click_right(self) -> None:
        self.press_right()
        self.release_right()

    def press(self, button: MouseButton) -> None:
        """Press ``button``; dropped silently when not connected."""
        self._button_quiet(button, True)

    def release(self, button: MouseButton) -> None:
        """Release ``button``; dropped silently when not connected."""
        self._button_quiet(button, False)

    def click(self, button: MouseButton) -> None:
        self.press(button)
        self.release(button)

    def wheel(self, delta: int) -> None:
        """Turn the wheel; dropped silently when not connected."""
        with PROFILER.measure("wheel"):
            with suppress(MakcuError):
                self._send_ff(f"km.wheel({delta})")

    def lock_mouse_x(self, lock: bool) -> None:
        self._send_lock("mx", lock)

    def lock_mouse_y(self, lock: bool) -> None:
        self._send_lock("my", lock)

    def lock_left(self, lock: bool) -> None:
        self._send_lock("ml", lock)

    def lock_right(self, lock: bool) -> None:
        self._send_lock("mr", lock)

    def lock_middle(self, lock: bool) -> None:
        self._send_lock("mm", lock)

    def lock_side1(self, lock: bool) -> None:
        self._send_lock("ms1", lock)

    def lock_side2(self, lock: bool) -> None:
        self._send_lock("ms2", lock)

    def set_serial(self, value: str) -> str:
        """Set the device's reported serial (empty resets it); return the answer."""
        arg = "0" if not value else "'" + value.replace("'", "\\'") + "'"
        return self._send_tracked(f"km.serial({arg})", 1.0)

    @staticmethod
    def profiler_stats() -> dict[str, dict[str, float]]:
        """Timing statistics gathered by the shared profiler."""
        return PROFILER.stats()

    def __enter__(self) -> Device:
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()