"""Tests for the mode handshake against the simulated Bus Pirate."""

import pytest

from buspirate_eeprom_mcp.engine.handshake import ModeHandshake, execute
from buspirate_eeprom_mcp.models.session import SessionState
from buspirate_eeprom_mcp.protocol.commands import stop_bit
from buspirate_eeprom_mcp.protocol.errors import (
    ControlAckFailed,
    DataNack,
    HandshakeFailed,
    Stage,
)


def test_enter_reaches_i2c_mode(link, device):
    handshake = ModeHandshake(link)
    handshake.enter()
    assert handshake.state is SessionState.I2C
    assert device.mode == "i2c"
    assert device.sent == b"\x00" * 20 + b"\x02\x4c"


def test_exit_returns_to_user_mode_and_drains_banner(link, device):
    handshake = ModeHandshake(link)
    handshake.enter()
    handshake.exit()
    assert handshake.state is SessionState.USER
    assert device.mode == "user"
    assert device.pending_output == b""


def test_session_round_trip_is_repeatable(link, device):
    """Each round leaves the device quiet and ready for the next one."""
    handshake = ModeHandshake(link)
    for _ in range(3):
        with handshake.session():
            assert handshake.state is SessionState.I2C
    assert device.mode == "user"
    assert handshake.state is SessionState.USER


@pytest.mark.parametrize("key,reply,stage", [
    (("user", 0x00), b"BBIO2", Stage.BINARY),
    (("binary", 0x02), b"I2C0", Stage.I2C),
    (("i2c", 0x4C), b"\x00", Stage.PERIPHERALS),
])
def test_enter_failure_names_stage(link, device, key, reply, stage):
    device.overrides[key] = reply
    handshake = ModeHandshake(link)
    with pytest.raises(HandshakeFailed) as exc:
        handshake.enter()
    assert exc.value.stage is stage
    assert handshake.state is SessionState.USER


def test_silent_device_is_binary_stage_failure(link, device):
    device.muted = True
    with pytest.raises(HandshakeFailed) as exc:
        ModeHandshake(link).enter()
    assert exc.value.stage is Stage.BINARY


def test_peripheral_failure_tears_down(link, device):
    """After I2C mode was reached, teardown sends stop, I2C disable, bitbang disable."""
    device.overrides[("i2c", 0x4C)] = b"\x00"
    handshake = ModeHandshake(link)
    with pytest.raises(HandshakeFailed):
        handshake.enter()
    assert device.writes[-3:] == [b"\x03", b"\x00", b"\x0f"]
    assert device.mode == "user"


def test_exit_failure_is_reported(link, device):
    device.overrides[("binary", 0x0F)] = b"\x00"
    handshake = ModeHandshake(link)
    handshake.enter()
    with pytest.raises(HandshakeFailed) as exc:
        handshake.exit()
    assert exc.value.stage is Stage.RESET
    assert handshake.state is SessionState.USER


def test_body_failure_tears_down(link, device):
    """A failed command inside a session collapses the state to user mode."""
    handshake = ModeHandshake(link)
    device.overrides[("i2c", 0x03)] = b"\x00"
    with pytest.raises(ControlAckFailed):
        with handshake.session():
            execute(link, stop_bit())
    assert handshake.state is SessionState.USER
    assert device.mode == "user"


def test_session_error_is_not_masked_by_teardown(link, device, monkeypatch):
    """The original error propagates even when teardown itself fails."""
    handshake = ModeHandshake(link)

    def broken(data):
        raise OSError("unplugged")

    with pytest.raises(DataNack):
        with handshake.session():
            monkeypatch.setattr(device, "write", broken)
            raise DataNack("data byte")
    assert handshake.state is SessionState.USER


def test_teardown_swallows_channel_errors(link, device, monkeypatch):
    handshake = ModeHandshake(link)
    handshake.enter()

    def broken(data):
        raise OSError("unplugged")

    monkeypatch.setattr(device, "write", broken)
    handshake.teardown()
    assert handshake.state is SessionState.USER


def test_garbled_i2c_reply_tears_down_from_i2c_mode(link, device):
    """The I2C enable may have taken effect even though its reply was wrong."""
    device.overrides[("binary", 0x02)] = b"I2C0"
    handshake = ModeHandshake(link)
    with pytest.raises(HandshakeFailed):
        handshake.enter()
    assert device.writes[-3:] == [b"\x03", b"\x00", b"\x0f"]
    assert device.mode == "user"
    assert device.pending_output == b""


def test_garbled_binary_reply_leaves_binary_mode(link, device):
    device.overrides[("user", 0x00)] = b"BBIO2"
    handshake = ModeHandshake(link)
    with pytest.raises(HandshakeFailed):
        handshake.enter()
    assert device.writes[-1] == b"\x0f"
    assert device.mode == "user"
