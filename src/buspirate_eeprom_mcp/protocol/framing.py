"""Message builder and field-by-field response parser.

A message is an ordered list of commands. It is serialized on demand and
its response is consumed by each command's declared reply arity, so no
offset into the response is ever computed by hand.

Fused batch write layout (``j`` data bytes)::

    +-----------+-------+-------+-------+--------+------+------+--------+------+-------+-------+
    | 20 x 0x00 | 0x02  | 0x4C  | 0x02  | 0x10|  | 0xA0 | addr | data x | 0x03 | 0x00  | 0x0F  |
    | bitbang   | I2C   | power | start | (1+j)  | dev  | word |   j    | stop | I2C   | reset |
    +-----------+-------+-------+-------+--------+------+------+--------+------+-------+-------+

    Reply: "BBIO1" "I2C1" 01 01 01 | 00 00 (00 x j) | 01 "BBIO1" 01   -> 21 + j bytes
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator

from .commands import (
    Command,
    RawByte,
    address_byte,
    bitbang_disable,
    bitbang_enable,
    bulk_write_header,
    data_byte,
    i2c_disable,
    i2c_enable,
    peripherals_on,
    read_byte,
    start_bit,
    stop_bit,
)
from .parser import validate


@dataclass
class ParsedResponse:
    """A response split into per-command replies."""

    fields: list[tuple[Command, bytes]] = field(default_factory=list)
    values: list[int] = field(default_factory=list)

    def __repr__(self) -> str:
        return f"ParsedResponse(fields={len(self.fields)}, values={self.values})"


@dataclass
class Message:
    """An ordered sequence of commands forming one logical operation."""

    commands: list[Command] = field(default_factory=list)

    def append(self, command: Command) -> Message:
        self.commands.append(command)
        return self

    def extend(self, commands: Iterable[Command]) -> Message:
        self.commands.extend(commands)
        return self

    def __iter__(self) -> Iterator[Command]:
        return iter(self.commands)

    def __len__(self) -> int:
        return len(self.commands)

    def to_bytes(self) -> bytes:
        """Serialize every command into one flat buffer."""
        return b"".join(command.raw for command in self.commands)

    @property
    def response_length(self) -> int:
        return sum(command.arity for command in self.commands)

    def parse(self, response: bytes) -> ParsedResponse:
        """Consume ``response`` command by command and validate each reply.

        A response that runs out early is still validated up to the point
        where it ends, so the first wrong field is reported rather than a
        generic short read.
        """
        parsed = ParsedResponse()
        offset = 0
        for command in self.commands:
            chunk = response[offset : offset + command.arity]
            value = validate(command, chunk)
            parsed.fields.append((command, chunk))
            if isinstance(command.reply, RawByte):
                parsed.values.append(value)
            offset += command.arity
        return parsed


def handshake_enter() -> list[Command]:
    """User mode -> binary mode -> I2C mode with power and pull-ups on."""
    return [bitbang_enable(), i2c_enable(), peripherals_on()]


def handshake_exit() -> list[Command]:
    """I2C mode -> binary mode -> user mode."""
    return [i2c_disable(), bitbang_disable()]


def build_random_read(device_write: int, device_read: int, address: int) -> Message:
    """Set the EEPROM word pointer, then clock in one byte.

    ``start, bulk(2), dev-write, addr, start, bulk(1), dev-read, read``
    """
    return Message([
        start_bit(),
        bulk_write_header(2),
        address_byte(device_write, "device write address"),
        address_byte(address, "word address"),
        start_bit(),
        bulk_write_header(1),
        address_byte(device_read, "device read address"),
        read_byte(),
    ])


def build_byte_write(device_write: int, address: int, value: int) -> Message:
    """``start, bulk(3), dev-write, addr, data, stop``"""
    return Message([
        start_bit(),
        bulk_write_header(3),
        address_byte(device_write, "device write address"),
        address_byte(address, "word address"),
        data_byte(value),
        stop_bit(),
    ])


def build_batch_message(device_write: int, address: int, payload: bytes) -> Message:
    """Build the fused handshake + page write + teardown message.

    The bulk header counts the device address and word address bytes as
    well, so it encodes ``2 + len(payload)`` bytes: ``0x10 | (1 + j)``.
    """
    if not payload:
        raise ValueError("Batch payload must not be empty")
    message = Message(handshake_enter())
    message.extend([
        start_bit(),
        bulk_write_header(2 + len(payload)),
        address_byte(device_write, "device write address"),
        address_byte(address, "word address"),
    ])
    message.extend(data_byte(value) for value in payload)
    message.append(stop_bit())
    message.extend(handshake_exit())
    return message
