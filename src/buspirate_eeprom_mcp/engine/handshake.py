"""Mode handshake: user mode <-> binary mode <-> I2C mode.

The translator is not kept in I2C mode between transactions; every
read or write round enters and leaves it again.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from ..models.session import SessionState
from ..protocol.commands import (
    Command,
    bitbang_disable,
    i2c_disable,
    stop_bit,
)
from ..protocol.errors import ProtocolError, ShortRead, Stage
from ..protocol.framing import handshake_enter, handshake_exit
from ..protocol.parser import validate
from ..transport.link import ByteLink

logger = logging.getLogger(__name__)

# Session state once each handshake stage has been confirmed
STATE_AFTER: dict[Stage, SessionState] = {
    Stage.BINARY: SessionState.BINARY,
    Stage.I2C: SessionState.I2C,
    Stage.PERIPHERALS: SessionState.I2C,
    Stage.I2C_DISABLE: SessionState.BINARY,
    Stage.RESET: SessionState.USER,
}

# How many mode changes separate each state from user mode
DEPTH: dict[SessionState, int] = {
    SessionState.USER: 0,
    SessionState.BINARY: 1,
    SessionState.I2C: 2,
}


def execute(link: ByteLink, command: Command) -> int | None:
    """Send one command, read its reply and validate it.

    A reply that never fully arrives is validated as far as it goes, so
    a wrong first byte is reported as such rather than as a short read.
    """
    try:
        reply = link.exchange(command.raw, command.arity, command.label)
    except ShortRead as e:
        reply = e.received
    return validate(command, reply)


class ModeHandshake:
    """Tracks and changes the translator's session state."""

    def __init__(self, link: ByteLink) -> None:
        self.link = link
        self.state = SessionState.USER

    def _advance(self, command: Command) -> int | None:
        target = STATE_AFTER[command.stage] if command.stage is not None else None
        # A mode-entering command may take effect even if its reply is lost.
        if target is not None and DEPTH[target] > DEPTH[self.state]:
            self.state = target
        value = execute(self.link, command)
        if target is not None:
            self.state = target
        return value

    def enter(self) -> None:
        """Bitbang enable, I2C enable, power and pull-ups on.

        Raises:
            HandshakeFailed: Identifying the stage that was not confirmed.
        """
        try:
            for command in handshake_enter():
                self._advance(command)
        except ProtocolError:
            self.teardown()
            raise
        logger.debug("Entered I2C mode")

    def exit(self) -> None:
        """I2C disable, bitbang disable, then drain the user-mode banner."""
        try:
            for command in handshake_exit():
                self._advance(command)
        except ProtocolError:
            self.teardown()
            raise
        self.link.drain()
        logger.debug("Returned to user mode")

    def teardown(self) -> None:
        """Best-effort return to user mode after a failure.

        Sends stop, I2C disable and bitbang disable as far as the current
        state requires, without reading their replies. Errors are logged
        and never raised.
        """
        commands: list[Command] = []
        if self.state is SessionState.I2C:
            commands.extend([stop_bit(), i2c_disable()])
        if self.state is not SessionState.USER:
            commands.append(bitbang_disable())

        for command in commands:
            try:
                self.link.send(command.raw)
            except (ProtocolError, OSError) as e:
                logger.warning("Teardown: could not send %s: %s", command.label, e)

        self.state = SessionState.USER
        try:
            self.link.drain()
        except (ProtocolError, OSError) as e:
            logger.warning("Teardown: could not drain channel: %s", e)

    @contextmanager
    def session(self) -> Iterator[ModeHandshake]:
        """Enter I2C mode for the body of the ``with`` block.

        If the body raises, teardown runs and the original error
        propagates; ``exit`` only runs after a clean body.
        """
        self.enter()
        try:
            yield self
        except Exception:
            self.teardown()
            raise
        self.exit()
