"""Batched write engine: one round trip per group of up to eight bytes.

Each batch is one fused message (handshake, page write, teardown) sent
with a single write and answered by a single reply. A batch never crosses
an EEPROM page boundary, never exceeds ``max_batch`` bytes and stops at
the first terminator byte, which is not transmitted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..models.cursor import AddressCursor
from ..models.eeprom import DEFAULT_BATCH_SIZE, EEPROM_24LC08B, EepromGeometry
from ..models.results import WriteResult
from ..models.session import SessionState
from ..protocol.commands import Opcode
from ..protocol.errors import ProtocolError, ShortRead
from ..protocol.framing import Message, build_batch_message
from ..transport.link import ByteLink
from .handshake import ModeHandshake

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Batch:
    """A run of data bytes written in one page-write cycle."""

    address: int
    payload: bytes

    def __len__(self) -> int:
        return len(self.payload)

    @property
    def header(self) -> int:
        """Bulk write opcode: device address + word address + payload."""
        return Opcode.BULK_WRITE | (1 + len(self.payload))

    def __repr__(self) -> str:
        return f"Batch(address=0x{self.address:02X}, payload={self.payload.hex(' ')})"


def plan_batches(
    data: bytes,
    start: int = 0,
    geometry: EepromGeometry = EEPROM_24LC08B,
    max_batch: int = DEFAULT_BATCH_SIZE,
) -> tuple[list[Batch], bool]:
    """Split ``data`` into page-safe batches.

    Returns:
        The batches and whether a terminator byte cut the data short.

    Raises:
        ValueError: If the planned bytes run past the end of the block.
    """
    batches: list[Batch] = []
    terminated = False
    cursor = AddressCursor(start, geometry.block_size)
    offset = 0

    while offset < len(data):
        page_left = cursor.page_remaining(geometry.page_size)
        window = min(max_batch, page_left, len(data) - offset)
        chunk = data[offset : offset + window]

        stop = chunk.find(bytes([geometry.terminator]))
        if stop != -1:
            chunk = chunk[:stop]
            terminated = True
        if chunk:
            batches.append(Batch(cursor.position, bytes(chunk)))
            cursor.advance(len(chunk))
        if terminated:
            break

        offset += len(chunk)

    return batches, terminated


class BulkWriteBatcher:
    """Writes a buffer to the EEPROM in fused page-write batches."""

    def __init__(
        self,
        handshake: ModeHandshake,
        geometry: EepromGeometry = EEPROM_24LC08B,
        max_batch: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if not 1 <= max_batch <= geometry.max_bulk_payload:
            raise ValueError(
                f"Batch size must be 1-{geometry.max_bulk_payload}, got {max_batch}"
            )
        self.handshake = handshake
        self.geometry = geometry
        self.max_batch = max_batch

    @property
    def link(self) -> ByteLink:
        return self.handshake.link

    def plan(self, data: bytes, start: int = 0) -> tuple[list[Batch], bool]:
        return plan_batches(data, start, self.geometry, self.max_batch)

    def build(self, batch: Batch) -> Message:
        return build_batch_message(
            self.geometry.write_address, batch.address, batch.payload
        )

    def transfer(self, batch: Batch) -> None:
        """Send one fused batch message and validate its fused reply.

        Raises:
            ProtocolError: The first field that failed validation, after
                best-effort teardown.
        """
        message = self.build(batch)
        # Until the reply confirms otherwise, assume the deepest mode.
        self.handshake.state = SessionState.I2C
        try:
            self.link.send(message.to_bytes())
            try:
                response = self.link.read_exact(message.response_length, "batch write")
            except ShortRead as e:
                message.parse(e.received)
                raise
            message.parse(response)
        except ProtocolError:
            self.handshake.teardown()
            raise

        self.handshake.state = SessionState.USER
        self.link.drain()
        logger.debug("Wrote %r", batch)

    def write(self, data: bytes, start: int = 0) -> WriteResult:
        """Write ``data`` from ``start`` up to (not including) any terminator."""
        batches, terminated = self.plan(data, start)
        cursor = AddressCursor(start, self.geometry.block_size)
        result = WriteResult(start=start, next_address=start, terminated=terminated)

        for batch in batches:
            self.transfer(batch)
            cursor.advance(len(batch))
            result.written += len(batch)
            result.round_trips += 1
            result.next_address = cursor.position

        logger.info(
            "Wrote %d bytes from 0x%02X in %d batches%s",
            result.written, start, result.round_trips,
            " (terminator)" if terminated else "",
        )
        return result
