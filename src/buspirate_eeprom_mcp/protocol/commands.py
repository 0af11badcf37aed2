"""Opcode constants and command builders for the Bus Pirate binary mode.

Each command is the raw bytes sent to the translator plus a description of
the reply it produces. Two acknowledgement polarities coexist:

- control commands (mode changes, start/stop, bulk header) answer ``0x01``
  on success;
- I2C data-phase bytes (device address, word address, data) answer ``0x00``
  when the EEPROM ACKs and ``0x01`` when it NACKs.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum

from .errors import Stage


class Opcode(IntEnum):
    """Single-byte opcodes understood in binary and I2C mode."""

    I2C_DISABLE = 0x00       # in I2C mode: back to binary mode
    I2C_ENABLE = 0x02        # in binary mode
    START_BIT = 0x02         # in I2C mode
    STOP_BIT = 0x03
    READ_BYTE = 0x04
    SEND_ACK = 0x06
    SEND_NACK = 0x07
    BITBANG_DISABLE = 0x0F
    BULK_WRITE = 0x10
    PERIPHERALS = 0x40


BITBANG_ENABLE_LENGTH = 20
BITBANG_ENABLE = b"\x00" * BITBANG_ENABLE_LENGTH
BINARY_BANNER = b"BBIO1"
I2C_BANNER = b"I2C1"

# Peripheral configuration bits (lower nibble of 0100wxyz)
PERIPHERAL_POWER = 0x08
PERIPHERAL_PULLUPS = 0x04
PERIPHERAL_AUX = 0x02
PERIPHERAL_CS = 0x01
POWER_AND_PULLUPS = Opcode.PERIPHERALS | PERIPHERAL_POWER | PERIPHERAL_PULLUPS  # 0x4C

MAX_BULK_WRITE = 16


class FieldKind(Enum):
    """Position of a command inside a serialized message."""

    HEADER = "header"
    ADDRESS = "address"
    DATA = "data"
    TRAILER = "trailer"


@dataclass(frozen=True)
class Literal:
    """An exact ASCII echo such as ``BBIO1``."""

    text: bytes

    @property
    def arity(self) -> int:
        return len(self.text)


@dataclass(frozen=True)
class ControlAck:
    """One byte, ``0x01`` on success."""

    arity: int = 1


@dataclass(frozen=True)
class DataAck:
    """One byte, ``0x00`` (ACK) to continue, ``0x01`` (NACK) to abort."""

    arity: int = 1


@dataclass(frozen=True)
class RawByte:
    """One payload byte clocked in from the bus."""

    arity: int = 1


Reply = Literal | ControlAck | DataAck | RawByte


@dataclass(frozen=True)
class Command:
    """One primitive sent to the translator, tagged with its expected reply."""

    raw: bytes
    reply: Reply
    kind: FieldKind
    label: str
    stage: Stage | None = None

    @property
    def arity(self) -> int:
        return self.reply.arity

    def __repr__(self) -> str:
        return (
            f"Command({self.label!r}, raw={self.raw.hex(' ')}, "
            f"reply={type(self.reply).__name__})"
        )


def bitbang_enable() -> Command:
    """Twenty 0x00 bytes: user mode to binary mode, answered by ``BBIO1``."""
    return Command(
        BITBANG_ENABLE, Literal(BINARY_BANNER), FieldKind.HEADER,
        "bitbang enable", Stage.BINARY,
    )


def i2c_enable() -> Command:
    return Command(
        bytes([Opcode.I2C_ENABLE]), Literal(I2C_BANNER), FieldKind.HEADER,
        "I2C enable", Stage.I2C,
    )


def peripherals_on() -> Command:
    """Switch on the power supplies and pull-up resistors."""
    return Command(
        bytes([POWER_AND_PULLUPS]), ControlAck(), FieldKind.HEADER,
        "power and pull-ups", Stage.PERIPHERALS,
    )


def start_bit() -> Command:
    return Command(
        bytes([Opcode.START_BIT]), ControlAck(), FieldKind.HEADER, "start bit"
    )


def stop_bit() -> Command:
    return Command(
        bytes([Opcode.STOP_BIT]), ControlAck(), FieldKind.TRAILER, "stop bit"
    )


def bulk_write_header(count: int) -> Command:
    """Announce a bulk write of ``count`` bytes (1-16) as ``0x10 | (count-1)``.

    Args:
        count: Number of bytes that follow on the bus, address bytes included.
    """
    if not 1 <= count <= MAX_BULK_WRITE:
        raise ValueError(
            f"Bulk write must carry 1-{MAX_BULK_WRITE} bytes, got {count}"
        )
    return Command(
        bytes([Opcode.BULK_WRITE | (count - 1)]), ControlAck(),
        FieldKind.HEADER, f"bulk write header ({count} bytes)",
    )


def address_byte(value: int, label: str) -> Command:
    """A device address or word address byte clocked onto the bus."""
    if not 0 <= value <= 0xFF:
        raise ValueError(f"Address byte must be 0-255, got {value}")
    return Command(bytes([value]), DataAck(), FieldKind.ADDRESS, label)


def data_byte(value: int) -> Command:
    if not 0 <= value <= 0xFF:
        raise ValueError(f"Data byte must be 0-255, got {value}")
    return Command(bytes([value]), DataAck(), FieldKind.DATA, "data byte")


def read_byte() -> Command:
    return Command(
        bytes([Opcode.READ_BYTE]), RawByte(), FieldKind.DATA, "read byte"
    )


def send_nack() -> Command:
    """Host NACK after a read, telling the EEPROM the read is over."""
    return Command(
        bytes([Opcode.SEND_NACK]), ControlAck(), FieldKind.TRAILER, "send NACK"
    )


def i2c_disable() -> Command:
    """Leave I2C mode; the translator re-announces ``BBIO1``."""
    return Command(
        bytes([Opcode.I2C_DISABLE]), Literal(BINARY_BANNER), FieldKind.TRAILER,
        "I2C disable", Stage.I2C_DISABLE,
    )


def bitbang_disable() -> Command:
    """Leave binary mode; answered by 0x01 and then the user-mode banner."""
    return Command(
        bytes([Opcode.BITBANG_DISABLE]), ControlAck(), FieldKind.TRAILER,
        "bitbang disable", Stage.RESET,
    )
