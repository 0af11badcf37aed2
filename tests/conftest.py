"""Shared fixtures: a simulated Bus Pirate with a 24LC08B on its I2C bus."""

from __future__ import annotations

import pytest

from buspirate_eeprom_mcp.client import EepromClient
from buspirate_eeprom_mcp.transport.link import ByteLink, LinkSettings

USER_BANNER = (
    b"Bus Pirate v3.b\r\n"
    b"Firmware v5.10 (r559)  Bootloader v4.4\r\n"
    b"DEVID:0x0447 REVID:0x3046 (24FJ64GA002 B8)\r\n"
    b"http://dangerousprototypes.com\r\n"
    b"HiZ>"
)

PAGE_SIZE = 16
MEMORY_SIZE = 256


class FakeBusPirate:
    """Byte-level simulation of the Bus Pirate binary I2C mode.

    The EEPROM buffers page writes until the stop bit and wraps the word
    pointer within the current page, as the real part does.
    """

    def __init__(self, memory: bytes = b"") -> None:
        self.memory = bytearray(memory.ljust(MEMORY_SIZE, b"\xff"))
        self.mode = "user"
        self.present = True
        self.nack_addresses: set[int] = set()
        self.overrides: dict[tuple[str, int], bytes] = {}
        self.muted = False
        self.writes: list[bytes] = []
        self.page_writes = 0
        self._zeros = 0
        self._out = bytearray()
        self._bulk_remaining = 0
        self._phase: str | None = None
        self._pointer = 0
        self._pending: list[tuple[int, int]] = []

    # Channel interface

    def write(self, data: bytes) -> int:
        self.writes.append(bytes(data))
        for value in data:
            self._feed(value)
        return len(data)

    def read(self, max_len: int) -> bytes:
        if self.muted:
            return b""
        chunk = bytes(self._out[:max_len])
        del self._out[:max_len]
        return chunk

    @property
    def sent(self) -> bytes:
        return b"".join(self.writes)

    @property
    def pending_output(self) -> bytes:
        return bytes(self._out)

    # Simulation

    def _reply(self, data: bytes) -> None:
        self._out += data

    def _feed(self, value: int) -> None:
        key = (self.mode, value)
        in_bulk = self.mode == "i2c" and self._bulk_remaining > 0
        mark = len(self._out)

        if self.mode == "user":
            self._feed_user(value)
        elif self.mode == "binary":
            self._feed_binary(value)
        else:
            self._feed_i2c(value)

        if not in_bulk and key in self.overrides:
            del self._out[mark:]
            self._reply(self.overrides[key])

    def _feed_user(self, value: int) -> None:
        if value != 0x00:
            self._zeros = 0
            return
        self._zeros += 1
        if self._zeros == 20:
            self._zeros = 0
            self.mode = "binary"
            self._reply(b"BBIO1")

    def _feed_binary(self, value: int) -> None:
        if value == 0x00:
            self._reply(b"BBIO1")
        elif value == 0x02:
            self.mode = "i2c"
            self._reply(b"I2C1")
        elif value == 0x0F:
            self.mode = "user"
            self._reply(b"\x01" + USER_BANNER)
        else:
            self._reply(b"\x00")

    def _feed_i2c(self, value: int) -> None:
        if self._bulk_remaining:
            self._bulk_remaining -= 1
            self._reply(bytes([self._bus_write(value)]))
        elif value == 0x00:
            self.mode = "binary"
            self._reply(b"BBIO1")
        elif value == 0x01:
            self._reply(b"I2C1")
        elif value == 0x02:
            self._phase = "device"
            self._reply(b"\x01")
        elif value == 0x03:
            self._bus_stop()
            self._reply(b"\x01")
        elif value == 0x04:
            self._reply(bytes([self.memory[self._pointer]]))
            self._pointer = (self._pointer + 1) % MEMORY_SIZE
        elif value in (0x06, 0x07):
            self._reply(b"\x01")
        elif 0x10 <= value <= 0x1F:
            self._bulk_remaining = (value & 0x0F) + 1
            self._reply(b"\x01")
        elif 0x40 <= value <= 0x4F:
            self._reply(b"\x01")
        else:
            self._reply(b"\x00")

    def _bus_write(self, value: int) -> int:
        """Clock one byte onto the bus; returns 0 for ACK, 1 for NACK."""
        if self._phase == "device":
            if not self.present or value & 0xFE != 0xA0:
                self._phase = None
                return 1
            self._phase = None if value & 0x01 else "word"
            return 0
        if self._phase == "word":
            self._pointer = value
            self._phase = "data"
            return 0
        if self._phase == "data":
            if self._pointer in self.nack_addresses:
                return 1
            self._pending.append((self._pointer, value))
            page = self._pointer - (self._pointer % PAGE_SIZE)
            self._pointer = page + (self._pointer + 1) % PAGE_SIZE
            return 0
        return 1

    def _bus_stop(self) -> None:
        if self._pending:
            self.page_writes += 1
        for address, value in self._pending:
            self.memory[address] = value
        self._pending.clear()
        self._phase = None


@pytest.fixture
def device() -> FakeBusPirate:
    return FakeBusPirate()


@pytest.fixture
def settings() -> LinkSettings:
    return LinkSettings(retries=2)


@pytest.fixture
def link(device, settings) -> ByteLink:
    return ByteLink(device, settings)


@pytest.fixture
def client(device, settings) -> EepromClient:
    return EepromClient(device, settings)
