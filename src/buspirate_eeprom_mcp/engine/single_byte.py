"""Single-byte engine: one full handshake round per transferred byte.

Every primitive is sent on its own and its echo validated before the
next one goes out. Simple and slow; batched writes go through
``BulkWriteBatcher`` instead.
"""

from __future__ import annotations

import logging

from ..models.cursor import AddressCursor
from ..models.eeprom import EEPROM_24LC08B, EepromGeometry
from ..models.results import ReadResult, WriteResult
from ..protocol.commands import send_nack, stop_bit
from ..protocol.framing import build_byte_write, build_random_read
from ..transport.link import ByteLink
from .handshake import ModeHandshake, execute

logger = logging.getLogger(__name__)


class SingleByteEngine:
    """Reads and writes one EEPROM byte per translator session."""

    def __init__(
        self,
        handshake: ModeHandshake,
        geometry: EepromGeometry = EEPROM_24LC08B,
    ) -> None:
        self.handshake = handshake
        self.geometry = geometry

    @property
    def link(self) -> ByteLink:
        return self.handshake.link

    def read_byte(self, address: int) -> int:
        """Read the byte at ``address`` in one complete round.

        A terminator byte ends the transfer with a stop; any other byte is
        followed by a host NACK and a stop.
        """
        with self.handshake.session():
            message = build_random_read(
                self.geometry.write_address, self.geometry.read_address, address
            )
            value = None
            for command in message:
                result = execute(self.link, command)
                if result is not None:
                    value = result
            if value != self.geometry.terminator:
                execute(self.link, send_nack())
            execute(self.link, stop_bit())
        return value

    def read(self, start: int = 0, max_bytes: int | None = None) -> ReadResult:
        """Read sequentially from ``start`` until the terminator or ``max_bytes``.

        The terminator is not included in the returned data and the
        cursor is left pointing at it.
        """
        cursor = AddressCursor(start, self.geometry.block_size)
        limit = cursor.remaining if max_bytes is None else min(max_bytes, cursor.remaining)
        data = bytearray()
        terminated = False

        while len(data) < limit:
            value = self.read_byte(cursor.position)
            if value == self.geometry.terminator:
                terminated = True
                break
            data.append(value)
            cursor.advance(1)

        logger.info(
            "Read %d bytes from 0x%02X%s",
            len(data), start, " (terminator)" if terminated else "",
        )
        return ReadResult(
            start=start,
            data=bytes(data),
            next_address=cursor.position,
            terminated=terminated,
        )

    def write_byte(self, address: int, value: int) -> None:
        """Write one byte at ``address`` in one complete round."""
        with self.handshake.session():
            for command in build_byte_write(self.geometry.write_address, address, value):
                execute(self.link, command)

    def write(self, data: bytes, start: int = 0) -> WriteResult:
        """Write every byte of ``data``, the terminator value included."""
        cursor = AddressCursor(start, self.geometry.block_size)
        cursor.require(len(data))
        result = WriteResult(start=start, next_address=start)

        for value in data:
            self.write_byte(cursor.position, value)
            cursor.advance(1)
            result.written += 1
            result.round_trips += 1
            result.next_address = cursor.position

        logger.info("Wrote %d bytes from 0x%02X byte by byte", result.written, start)
        return result
