"""High-level EEPROM client over a Bus Pirate channel."""

from __future__ import annotations

import logging

from .engine.batched import BulkWriteBatcher
from .engine.handshake import ModeHandshake
from .engine.single_byte import SingleByteEngine
from .models.cursor import AddressCursor
from .models.eeprom import DEFAULT_BATCH_SIZE, EEPROM_24LC08B, EepromGeometry
from .models.results import ReadResult, WriteResult
from .models.session import SessionState
from .transport.link import ByteLink, Channel, LinkSettings

logger = logging.getLogger(__name__)


class EepromClient:
    """Reads and writes the EEPROM behind a Bus Pirate.

    Usage::

        channel = SerialChannel("/dev/ttyUSB0")
        channel.open()
        client = EepromClient(channel)
        client.store_text("hello")
        print(client.read().data)
    """

    def __init__(
        self,
        channel: Channel,
        settings: LinkSettings | None = None,
        geometry: EepromGeometry = EEPROM_24LC08B,
        max_batch: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self.link = ByteLink(channel, settings)
        self.geometry = geometry
        self.handshake = ModeHandshake(self.link)
        self.single = SingleByteEngine(self.handshake, geometry)
        self.batcher = BulkWriteBatcher(self.handshake, geometry, max_batch)

    @property
    def state(self) -> SessionState:
        return self.handshake.state

    def read(self, start: int = 0, max_bytes: int | None = None) -> ReadResult:
        """Read from ``start`` until the terminator byte or ``max_bytes``."""
        return self.single.read(start, max_bytes)

    def write(self, data: bytes, start: int = 0, batched: bool = True) -> WriteResult:
        """Write ``data`` at ``start``.

        The batched engine stops at the first terminator byte; the
        byte-by-byte engine writes every byte as given.
        """
        if batched:
            return self.batcher.write(data, start)
        return self.single.write(data, start)

    def store_text(self, text: str, start: int = 0) -> WriteResult:
        """Write ``text`` followed by a terminator so ``read`` finds its end.

        Only the first line is stored. The text goes out in batches, the
        terminator as one single-byte write after it.
        """
        data = text.encode("ascii")
        line = data.split(bytes([self.geometry.terminator]), 1)[0]
        AddressCursor(start, self.geometry.block_size).require(len(line) + 1)
        result = self.batcher.write(line, start)
        self.single.write_byte(result.next_address, self.geometry.terminator)
        result.round_trips += 1
        result.terminated = True
        return result

    def verify(self, data: bytes, start: int = 0) -> bool:
        """Read back ``len(data)`` bytes and compare them with ``data``."""
        readback = self.read(start, len(data))
        if readback.data != data:
            logger.warning(
                "Verify mismatch at 0x%02X: wrote %s, read %s",
                start, data.hex(" "), readback.data.hex(" "),
            )
            return False
        return True
