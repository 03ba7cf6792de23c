# makcu

Control a serial-attached mouse-emulation device from Python. Commands are
plain text lines (`km.move(10,5)`, `km.left(1)`, ...) written over a serial
port; the device reports button state changes back as single mask bytes.

## Install

    pip install makcu

For the test suite: `pip install makcu[test]`.

## Synchronous use

```python
from makcu.device import Device
from makcu.buttons import MouseButton

with Device("COM3", 115200, 0.01) as dev:
    dev.set_button_callback(lambda states: print("Buttons:", states))
    dev.move_rel(100, 50)
    dev.click(MouseButton.LEFT)
    dev.wheel(-120)
    dev.lock_mouse_x(True)

    (dev.batch()
        .move_rel(100, 50)
        .click(MouseButton.LEFT)
        .wheel(-120)
        .press(MouseButton.RIGHT)
        .release(MouseButton.RIGHT)
        .run())

    print(dev.button_states())
```

`Device(port, baudrate=115200, timeout=0.01, serial_factory=None)` opens the
port on `connect()` (or on entering the `with` block), starts a writer and a
reader thread, and asks the device to report button changes
(`km.buttons(1)`). `disconnect()` stops the threads and closes the port.

Commands:

- `move_rel(dx, dy)`, `wheel(delta)`, `press(button)`, `release(button)`,
  `click(button)` take a `makcu.buttons.MouseButton`
  (`LEFT`, `RIGHT`, `MIDDLE`, `SIDE1`, `SIDE2`). When the device is not
  connected these are dropped silently.
- `press_left()`, `release_left()`, `press_right()`, `release_right()`,
  `press_middle()`, `release_middle()`, `click_left()`, `click_right()`
  and the locks `lock_mouse_x`, `lock_mouse_y`, `lock_left`, `lock_right`,
  `lock_middle`, `lock_side1`, `lock_side2` (each taking a bool) raise
  `makcu.errors.MakcuConnectionError` when not connected.
- `set_serial(value)` is a tracked command: it sends `km.serial('value')`
  (or `km.serial(0)` for an empty string to reset), waits up to one second for
  the reply and returns it, raising `makcu.errors.CommandTimeout` otherwise.
- `batch()` collects commands and sends them in one write with `run()`; a
  disconnected device drops the batch. `Batch.release` follows its command
  with an empty line.

Fire-and-forget commands are queued and written by the background writer
thread. Failure to open the port raises `MakcuConnectionError`.

Button reports are decoded into `makcu.buttons.MouseButtonStates`
(`left`, `right`, `middle`, `side1`, `side2`), which also converts to and
from the raw mask with `from_mask` and `to_mask`. `button_states()` returns
the latest report; `set_button_callback(None)` stops reports being tracked.

### Errors

All errors derive from `makcu.errors.MakcuError`.
`MakcuConnectionError` is also a `ConnectionError`; `CommandTimeout` is also a
`TimeoutError` and carries the `command_id` that went unanswered.
`CommandError` is available for device-reported failures.

### Lower level

`makcu.transport.SerialTransport` is the threaded port on its own:
`open()`, `close()`, `send_ff(payload)`, `send_tracked(payload, timeout_s)`
and `set_button_callback(callback)`, usable as a context manager. Tracked
commands are sent as `payload#<id>` and matched to replies carrying
`#<id>:`; untagged replies answer the oldest waiting command unless they
echo something recently sent.

### Timing

`makcu.device.PROFILER` is a `makcu.profiler.PerformanceProfiler` shared by
every device. It is disabled by default, so `Device.profiler_stats()` returns
an empty dict; set `PROFILER.enabled = True` to collect `count`, `total_us`
and `avg_us` per operation, and `PROFILER.reset()` to clear them.

## Asynchronous use

```python
import asyncio
from makcu.async_device import AsyncDevice
from makcu.buttons import MouseButton

async def main():
    dev = await AsyncDevice.open("COM3", 115200)
    await dev.move_rel(100, 0)
    await dev.click(MouseButton.LEFT)
    await (dev.batch()
        .press(MouseButton.LEFT)
        .move_rel(50, 0)
        .release(MouseButton.LEFT)
        .wheel(-120)
        .run())
    await dev.close()

asyncio.run(main())
```

`AsyncDevice` can also wrap any object with `write(bytes)`, `async drain()`
and `close()`, such as an asyncio `StreamWriter`.

## Testing without hardware

`makcu.mockserial.MockSerial(timeout=0.01, button_interval=0.5)` stands in
for a serial port: it answers every `#<id>`-tagged write with
`>>> OK#<id>:OK`, reports a left-button mask byte every `button_interval`
seconds (`None` turns that off), and keeps what was written in `written()`.
Pass a factory that returns one as `serial_factory` to `Device`:

```python
from makcu.device import Device
from makcu.mockserial import MockSerial

dev = Device("mock", serial_factory=lambda port, baud, timeout: MockSerial(timeout))
dev.connect()
print(dev.set_serial("example"))  # "OK"
dev.disconnect()
```

## Demo

    makcu-demo --port COM3

connects to a device, installs a button callback that prints each report,
sends a short batch (move, left click, wheel, right press and release), prints
the profiler statistics and disconnects. Options: `--port` (default `COM3`),
`--baud` (default 115200), `--timeout-ms` (default 10) and `--mock` to use
`MockSerial` instead of a real port. It exits with status 1 if the port
cannot be opened.

## Limitations

- The asynchronous device only writes: it does not read button reports and
  has no tracked commands such as `set_serial`.
- Nothing here queries the device for its current settings; only button
  reports and replies to tracked commands are read back.