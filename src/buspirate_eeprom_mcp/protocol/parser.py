"""Response validation for the bytes echoed after each command.

Control commands and I2C data-phase bytes use opposite conventions, so
they are checked by two separate functions and never by a shared
"truthy means success" rule.
"""

from __future__ import annotations

import logging

from .commands import Command, ControlAck, DataAck, Literal, RawByte
from .errors import (
    ControlAckFailed,
    DataNack,
    HandshakeFailed,
    ProtocolError,
    ShortRead,
    UnexpectedReply,
)

logger = logging.getLogger(__name__)

CONTROL_SUCCESS = 0x01

DATA_ACK = 0x00
DATA_NACK = 0x01


def check_literal(command: Command, reply: bytes) -> None:
    """The reply must equal the expected text exactly, length included."""
    expected = command.reply.text
    if len(reply) < len(expected):
        raise ShortRead(len(expected), reply, command.label)
    if reply != expected:
        raise ControlAckFailed(command.label, reply)


def check_control_ack(command: Command, reply: bytes) -> None:
    """Control command succeeded only if the device echoed exactly 0x01."""
    if len(reply) < 1:
        raise ShortRead(1, reply, command.label)
    if reply[0] != CONTROL_SUCCESS:
        raise ControlAckFailed(command.label, reply)


def check_data_ack(command: Command, reply: bytes) -> None:
    """Data-phase byte: 0x00 is ACK (continue), 0x01 is NACK (abort)."""
    if len(reply) < 1:
        raise ShortRead(1, reply, command.label)
    if reply[0] == DATA_NACK:
        raise DataNack(command.label)
    if reply[0] != DATA_ACK:
        raise UnexpectedReply(command.label, reply)


def validate(command: Command, reply: bytes) -> int | None:
    """Validate ``reply`` against ``command``'s reply descriptor.

    Returns:
        The clocked-in byte for read commands, otherwise ``None``.

    Raises:
        HandshakeFailed: For any failure of a mode-change command.
        ShortRead, ControlAckFailed, DataNack, UnexpectedReply: Otherwise.
    """
    try:
        if isinstance(command.reply, Literal):
            check_literal(command, reply)
        elif isinstance(command.reply, ControlAck):
            check_control_ack(command, reply)
        elif isinstance(command.reply, DataAck):
            check_data_ack(command, reply)
        elif isinstance(command.reply, RawByte):
            if len(reply) < 1:
                raise ShortRead(1, reply, command.label)
            return reply[0]
        else:
            raise TypeError(f"Unknown reply descriptor: {command.reply!r}")
    except ProtocolError as e:
        if command.stage is None:
            raise
        logger.debug("Handshake stage %s rejected: %s", command.stage.value, e)
        raise HandshakeFailed(command.stage, str(e)) from e
    return None
