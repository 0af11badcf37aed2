"""Exception hierarchy for the Bus Pirate binary protocol.

Every engine operation either returns a result or raises exactly one
``ProtocolError`` subclass. Reaching the terminator byte is not an error;
the engines report it through the ``terminated`` flag of their results.
"""

from __future__ import annotations

from enum import Enum


class Stage(Enum):
    """Mode-handshake stages, in the order they are entered or left."""

    BINARY = "binary"
    I2C = "i2c"
    PERIPHERALS = "peripherals"
    I2C_DISABLE = "i2c-disable"
    RESET = "reset"


class ProtocolError(Exception):
    """Base class for every failure raised by the protocol engine."""

    kind = "protocol"


class ChannelIoError(ProtocolError):
    """The channel's write or read call itself failed."""

    kind = "channel-io"


class ShortRead(ProtocolError):
    """Fewer bytes arrived than the command's reply requires."""

    kind = "short-read"

    def __init__(self, expected: int, received: bytes, what: str = "") -> None:
        self.expected = expected
        self.received = bytes(received)
        label = f" ({what})" if what else ""
        super().__init__(
            f"Short read{label}: expected {expected} bytes, "
            f"got {len(self.received)}"
        )


class HandshakeFailed(ProtocolError):
    """A mode change (enter or exit) was not confirmed by the device."""

    kind = "handshake"

    def __init__(self, stage: Stage, detail: str = "") -> None:
        self.stage = stage
        message = f"Handshake failed at stage '{stage.value}'"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class ControlAckFailed(ProtocolError):
    """A control command was echoed with something other than 0x01."""

    kind = "control-ack"

    def __init__(self, command: str, reply: bytes) -> None:
        self.command = command
        self.reply = bytes(reply)
        super().__init__(
            f"Control command '{command}' failed: device replied "
            f"{self.reply.hex(' ') or '(nothing)'}"
        )


class DataNack(ProtocolError):
    """The I2C device NACKed an address or data byte."""

    kind = "data-nack"

    def __init__(self, phase: str) -> None:
        self.phase = phase
        super().__init__(f"Device NACKed the {phase}")


class UnexpectedReply(ProtocolError):
    """A data-phase acknowledgement was neither ACK (0) nor NACK (1)."""

    kind = "unexpected-reply"

    def __init__(self, phase: str, reply: bytes) -> None:
        self.phase = phase
        self.reply = bytes(reply)
        super().__init__(
            f"Unexpected acknowledgement for the {phase}: {self.reply.hex(' ')}"
        )
