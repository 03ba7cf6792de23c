import pytest

from makcu.async_device import AsyncBatch, AsyncDevice
from makcu.buttons import MouseButton
from makcu.errors import MakcuConnectionError


class FakeWriter:
    def __init__(self):
        self.pending = bytearray()
        self.data = bytearray()
        self.drains = 0
        self.closed = False
        self.waited = False

    def write(self, data):
        self.pending.extend(data)

    async def drain(self):
        self.drains += 1
        self.data.extend(self.pending)
        self.pending.clear()

    def close(self):
        self.closed = True

    async def wait_closed(self):
        self.waited = True


@pytest.mark.asyncio
async def test_move_rel_wire_format():
    writer = FakeWriter()
    await AsyncDevice(writer).move_rel(3, 4)
    assert bytes(writer.data) == b"km.move(3,4)\r\n"


@pytest.mark.asyncio
async def test_click_is_press_then_release():
    clicked, separate = FakeWriter(), FakeWriter()
    await AsyncDevice(clicked).click(MouseButton.RIGHT)
    device = AsyncDevice(separate)
    await device.press(MouseButton.RIGHT)
    await device.release(MouseButton.RIGHT)
    assert bytes(clicked.data) == bytes(separate.data)
    assert clicked.drains == 2


@pytest.mark.asyncio
async def test_batch_run_writes_once():
    writer = FakeWriter()
    device = AsyncDevice(writer)
    batch = device.batch().press(MouseButton.LEFT).move_rel(50, 0).release(MouseButton.LEFT).wheel(-120)
    await batch.run()
    assert bytes(writer.data) == str(batch).encode()
    assert writer.drains == 1


@pytest.mark.asyncio
async def test_batch_commands_match_single_commands():
    single = FakeWriter()
    device = AsyncDevice(single)
    await device.press(MouseButton.SIDE1)
    await device.wheel(7)
    await device.release(MouseButton.SIDE1)
    batch = device.batch().press(MouseButton.SIDE1).wheel(7).release(MouseButton.SIDE1)
    assert str(batch).encode() == bytes(single.data)


def test_batch_click_format_and_chaining():
    batch = AsyncDevice(FakeWriter()).batch()
    assert isinstance(batch, AsyncBatch)
    assert batch.click(MouseButton.LEFT) is batch
    assert str(batch) == "km.left()\r\n"


@pytest.mark.asyncio
async def test_close_closes_stream():
    writer = FakeWriter()
    await AsyncDevice(writer).close()
    assert writer.closed is True
    assert writer.waited is True


@pytest.mark.asyncio
async def test_open_missing_port_raises():
    with pytest.raises(MakcuConnectionError):
        await AsyncDevice.open("/nonexistent/makcu-port", 115_200)