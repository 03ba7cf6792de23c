"""Asynchronous, write-only control of a Makcu device."""

from __future__ import annotations

import asyncio
from typing import Any

import serial

from .buttons import MouseButton
from .device import CRLF, PROFILER
from .errors import MakcuConnectionError


class _SerialStream:
    """A pyserial port with the write/drain/close shape of an asyncio writer."""

    def __init__(self, ser: serial.Serial) -> None:
        self._ser = ser
        self._buffer = bytearray()

    def write(self, data: bytes) -> None:
        self._buffer.extend(data)

    async def drain(self) -> None:
        data = bytes(self._buffer)
        self._buffer.clear()
        if data:
            await asyncio.to_thread(self._ser.write, data)

    def close(self) -> None:
        self._ser.close()

    async def wait_closed(self) -> None:
        return None


def _mark(op: str) -> None:
    with PROFILER.measure(op):
        pass


class AsyncBatch:
    """Commands collected and sent in a single asynchronous write."""

    def __init__(self, device: AsyncDevice) -> None:
        self._device = device
        self._parts: list[str] = []

    def _add(self, op: str, text: str) -> AsyncBatch:
        _mark(op)
        self._parts.append(text)
        return self

    def move_rel(self, dx: int, dy: int) -> AsyncBatch:
        return self._add("move_async", f"km.move({dx},{dy}){CRLF}")

    def wheel(self, delta: int) -> AsyncBatch:
        return self._add("wheel_async", f"km.wheel({delta}){CRLF}")

    def press(self, button: MouseButton) -> AsyncBatch:
        return self._add("press_async", f"km.{button.command_name()}(1){CRLF}")

    def release(self, button: MouseButton) -> AsyncBatch:
        return self._add("release_async", f"km.{button.command_name()}(0){CRLF}")

    def click(self, button: MouseButton) -> AsyncBatch:
        return self._add("click_async", f"km.{button.command_name()}(){CRLF}")

    async def run(self) -> None:
        """Write the collected commands."""
        _mark("batch_async")
        await self._device._send_raw(str(self))

    def __str__(self) -> str:
        return "".join(self._parts)


class AsyncDevice:
    """Sends commands to a device through an asyncio-style writer.

    ``stream`` needs ``write(bytes)``, ``async drain()`` and ``close()``.
    """

    def __init__(self, stream: Any) -> None:
        self._stream = stream
        self._lock = asyncio.Lock()

    @classmethod
    async def open(cls, port: str, baudrate: int = 115_200) -> AsyncDevice:
        """Open ``port`` and return a device writing to it."""
        try:
            ser = await asyncio.to_thread(serial.Serial, port, baudrate)
        except (OSError, ValueError) as exc:
            raise MakcuConnectionError(str(exc)) from exc
        return cls(_SerialStream(ser))

    async def _send_raw(self, text: str) -> None:
        async with self._lock:
            self._stream.write(text.encode("utf-8"))
            await self._stream.drain()

    async def move_rel(self, dx: int, dy: int) -> None:
        _mark("move_async")
        await self._send_raw(f"km.move({dx},{dy}){CRLF}")

    async def wheel(self, delta: int) -> None:
        _mark("wheel_async")
        await self._send_raw(f"km.wheel({delta}){CRLF}")

    async def press(self, button: MouseButton) -> None:
        _mark("press_async")
        await self._send_raw(f"km.{button.command_name()}(1){CRLF}")

    async def release(self, button: MouseButton) -> None:
        _mark("release_async")
        await self._send_raw(f"km.{button.command_name()}(0){CRLF}")

    async def click(self, button: MouseButton) -> None:
        _mark("click_async")
        await self.press(button)
        await self.release(button)

    def batch(self) -> AsyncBatch:
        """Start a batch of commands for this device."""
        return AsyncBatch(self)

    async def close(self) -> None:
        """Close the underlying stream."""
        self._stream.close()
        wait_closed = getattr(self._stream, "wait_closed", None)
        if wait_closed is not None:
            await wait_closed()