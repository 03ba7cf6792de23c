"""Moves the pointer, clicks and scrolls once, then prints timing statistics."""

from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

from .buttons import MouseButton
from .device import Device
from .errors import MakcuError
from .mockserial import MockSerial


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="makcu-demo", description="Drive a Makcu device through a short sequence."
    )
    parser.add_argument("--port", default="COM3", help="serial port (default: COM3)")
    parser.add_argument("--baud", type=int, default=115_200, help="baud rate")
    parser.add_argument(
        "--timeout-ms", type=float, default=10.0, help="read timeout in milliseconds"
    )
    parser.add_argument(
        "--mock", action="store_true", help="use an in-memory device instead of a port"
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the demo; return the process exit status."""
    args = _parser().parse_args(argv)
    factory = None
    if args.mock:
        def factory(port: str, baudrate: int, timeout: float) -> MockSerial:
            return MockSerial(timeout=timeout)

    device = Device(args.port, args.baud, args.timeout_ms / 1000.0, factory)
    try:
        device.connect()
    except MakcuError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    try:
        device.set_button_callback(lambda states: print(f"Buttons: {states}"))
        (
            device.batch()
            .move_rel(100, 50)
            .click(MouseButton.LEFT)
            .wheel(-120)
            .press(MouseButton.RIGHT)
            .release(MouseButton.RIGHT)
            .run()
        )
        print(f"Profiler stats: {Device.profiler_stats()}")
    finally:
        device.disconnect()
    return 0


if __name__ == "__main__":
    sys.exit(main())