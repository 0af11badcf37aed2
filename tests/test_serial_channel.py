"""Tests for the pyserial channel, with the port itself mocked."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import serial

from buspirate_eeprom_mcp.protocol.errors import ChannelIoError
from buspirate_eeprom_mcp.transport.serial_channel import (
    BAUDRATE,
    PRODUCT_ID,
    VENDOR_ID,
    SerialChannel,
    find_ports,
)

MODULE = "buspirate_eeprom_mcp.transport.serial_channel"


def _port(device, vid=VENDOR_ID, pid=PRODUCT_ID):
    return SimpleNamespace(
        device=device, vid=vid, pid=pid,
        manufacturer="FTDI", product="FT232R USB UART", serial_number="A1B2",
    )


@pytest.fixture
def fake_serial():
    with patch(f"{MODULE}.serial.Serial") as cls:
        port = MagicMock()
        port.is_open = True
        cls.return_value = port
        yield cls


def test_find_ports_filters_by_usb_id():
    ports = [_port("/dev/ttyUSB0"), _port("/dev/ttyACM0", vid=0x2341, pid=0x0043)]
    with patch(f"{MODULE}.list_ports.comports", return_value=ports):
        found = find_ports()
    assert [p.device for p in found] == ["/dev/ttyUSB0"]
    assert found[0].to_dict()["vendor_id"] == "0x0403"


def test_open_explicit_port(fake_serial):
    channel = SerialChannel("/dev/ttyUSB3")
    channel.open()
    assert channel.connected
    kwargs = fake_serial.call_args.kwargs
    assert kwargs["port"] == "/dev/ttyUSB3"
    assert kwargs["baudrate"] == BAUDRATE
    assert kwargs["parity"] == serial.PARITY_NONE
    fake_serial.return_value.reset_input_buffer.assert_called_once()


def test_open_discovers_port(fake_serial):
    with patch(f"{MODULE}.list_ports.comports", return_value=[_port("/dev/ttyUSB1")]):
        info = SerialChannel().open()
    assert info.device == "/dev/ttyUSB1"
    assert info.manufacturer == "FTDI"
    assert fake_serial.call_args.kwargs["port"] == "/dev/ttyUSB1"


def test_open_without_device_raises():
    with patch(f"{MODULE}.list_ports.comports", return_value=[]):
        with pytest.raises(ConnectionError):
            SerialChannel().open()


def test_open_failure_is_connection_error(fake_serial):
    fake_serial.side_effect = serial.SerialException("busy")
    channel = SerialChannel("/dev/ttyUSB0")
    with pytest.raises(ConnectionError):
        channel.open()
    assert not channel.connected


def test_io_requires_connection():
    channel = SerialChannel("/dev/ttyUSB0")
    with pytest.raises(ConnectionError):
        channel.write(b"\x00")
    with pytest.raises(ConnectionError):
        channel.read(1)


def test_write_and_read_pass_through(fake_serial):
    port = fake_serial.return_value
    port.write.return_value = 3
    port.read.return_value = b"BBIO1"
    channel = SerialChannel("/dev/ttyUSB0")
    channel.open()
    assert channel.write(b"abc") == 3
    assert channel.read(5) == b"BBIO1"
    port.read.assert_called_with(5)


def test_serial_errors_become_channel_errors(fake_serial):
    port = fake_serial.return_value
    port.write.side_effect = serial.SerialException("gone")
    port.read.side_effect = serial.SerialException("gone")
    channel = SerialChannel("/dev/ttyUSB0")
    channel.open()
    with pytest.raises(ChannelIoError):
        channel.write(b"\x00")
    with pytest.raises(ChannelIoError):
        channel.read(1)


def test_close_is_idempotent(fake_serial):
    channel = SerialChannel("/dev/ttyUSB0")
    channel.open()
    channel.close()
    channel.close()
    assert not channel.connected
    fake_serial.return_value.close.assert_called_once()
