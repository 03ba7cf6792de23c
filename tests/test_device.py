import time
from contextlib import contextmanager

import pytest

from makcu.buttons import MouseButton, MouseButtonStates
from makcu.device import Batch, Device
from makcu.errors import CommandTimeout, MakcuConnectionError
from makcu.mockserial import MockSerial


@contextmanager
def _rig(button_interval=None):
    mock = MockSerial(timeout=0.005, button_interval=button_interval)
    device = Device("MOCK", serial_factory=lambda port, baud, timeout: mock)
    device.connect()
    try:
        yield device, mock
    finally:
        device.disconnect()


def _synced(device, mock):
    """Wait until everything queued so far has been written."""
    assert device.set_serial("sync") == "OK"
    return b"".join(mock.written())


def _run(action):
    with _rig() as (device, mock):
        action(device)
        return _synced(device, mock)


class _Silent:
    def __init__(self):
        self.timeout = 0.005

    def read(self, size):
        time.sleep(0.005)
        return b""

    def write(self, data):
        return len(data)

    def close(self):
        pass


def test_connect_enables_button_reports():
    data = _run(lambda d: None)
    assert data.startswith(b"km.buttons(1)\r\n")


def test_move_rel_wire_format():
    data = _run(lambda d: d.move_rel(10, -5))
    assert b"km.move(10,-5)\r\n" in data


def test_lock_wire_format():
    data = _run(lambda d: d.lock_side1(False))
    assert b"km.lock_ms1(0)\r\n" in data


def test_set_serial_returns_answer_and_tags_command():
    with _rig() as (device, mock):
        assert device.set_serial("abc") == "OK"
        assert b"km.serial('abc')#1\r\n" in b"".join(mock.written())


def test_set_serial_empty_resets():
    with _rig() as (device, mock):
        device.set_serial("")
        assert b"km.serial(0)#1\r\n" in b"".join(mock.written())


def test_set_serial_escapes_quotes():
    with _rig() as (device, mock):
        device.set_serial("a'b")
        assert b"km.serial('a\\'b')#1" in b"".join(mock.written())


def test_press_by_enum_matches_named_method():
    assert _run(lambda d: d.press(MouseButton.LEFT)) == _run(lambda d: d.press_left())
    assert _run(lambda d: d.release(MouseButton.RIGHT)) == _run(lambda d: d.release_right())


def test_click_is_press_then_release():
    def both(d):
        d.press_left()
        d.release_left()

    assert _run(lambda d: d.click_left()) == _run(both)
    assert _run(lambda d: d.click(MouseButton.MIDDLE)) == _run(
        lambda d: (d.press_middle(), d.release_middle())
    )


def test_lock_and_unlock_differ_only_in_flag():
    locked = _run(lambda d: d.lock_mouse_x(True))
    unlocked = _run(lambda d: d.lock_mouse_x(False))
    assert len(locked) == len(unlocked)
    assert locked != unlocked


def test_batch_run_sends_batch_text():
    with _rig() as (device, mock):
        batch = device.batch().move_rel(1, 2).click(MouseButton.LEFT).wheel(-3)
        text = str(batch)
        batch.run()
        data = _synced(device, mock)
    assert (text + "\r\n").encode() in data


def test_batch_methods_chain_on_same_object():
    batch = Device("MOCK").batch()
    assert isinstance(batch, Batch)
    assert batch.move_rel(1, 1).press(MouseButton.SIDE1).release(MouseButton.SIDE1) is batch


def test_batch_release_adds_blank_line():
    text = str(Device("MOCK").batch().release(MouseButton.LEFT))
    assert text.endswith("\r\n\r\n")
    assert text.count("\r\n") == 2


def test_batch_press_matches_device_press():
    batch_text = str(Device("MOCK").batch().press(MouseButton.SIDE2))
    data = _run(lambda d: d.press(MouseButton.SIDE2))
    assert batch_text.encode() in data


def test_named_buttons_require_connection():
    device = Device("MOCK")
    with pytest.raises(MakcuConnectionError):
        device.press_left()
    with pytest.raises(MakcuConnectionError):
        device.lock_mouse_y(True)
    with pytest.raises(MakcuConnectionError):
        device.set_serial("abc")


def test_disconnect_stops_commands():
    with _rig() as (device, _mock):
        pass
    with pytest.raises(MakcuConnectionError):
        device.click_right()


def test_connect_failure_is_connection_error():
    def failing(port, baud, timeout):
        raise OSError("no such port")

    device = Device("MOCK", serial_factory=failing)
    with pytest.raises(MakcuConnectionError) as info:
        device.connect()
    assert "no such port" in str(info.value)


def test_context_manager_connects_and_disconnects():
    mock = MockSerial(timeout=0.005, button_interval=None)
    with Device("MOCK", serial_factory=lambda p, b, t: mock) as device:
        assert device.set_serial("x") == "OK"
    with pytest.raises(MakcuConnectionError):
        device.press_left()


def test_button_reports_reach_callback_and_cache():
    received = []
    with _rig(button_interval=0.02) as (device, _mock):
        device.set_button_callback(received.append)
        deadline = time.monotonic() + 2.0
        while not received and time.monotonic() < deadline:
            time.sleep(0.01)
        states = device.button_states()
    assert received
    assert received[0] == MouseButtonStates.from_mask(0x01)
    assert states.left is True


def test_set_serial_times_out_without_answer():
    device = Device("MOCK", serial_factory=lambda p, b, t: _Silent())
    device.connect()
    try:
        with pytest.raises(CommandTimeout) as info:
            device.set_serial("abc")
    finally:
        device.disconnect()
    assert info.value.command_id == 1


def test_profiler_stats_empty_when_disabled():
    assert Device.profiler_stats() == {}