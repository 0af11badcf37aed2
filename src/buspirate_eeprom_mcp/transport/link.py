"""Flow control over a raw byte channel.

The translator needs time to execute a command before its reply can be
read, and a single ``read`` may return only part of it. Instead of a
fixed sleep after every write, ``ByteLink`` keeps reading until the
expected number of bytes has arrived or a bounded number of empty reads
has passed.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from ..protocol.errors import ChannelIoError, ShortRead

logger = logging.getLogger(__name__)

READ_RETRIES = 5
BANNER_SIZE = 132
BANNER_READS = 2


@runtime_checkable
class Channel(Protocol):
    """Duplex byte stream; both calls may be short and may block."""

    def write(self, data: bytes) -> int: ...

    def read(self, max_len: int) -> bytes: ...


@dataclass
class LinkSettings:
    """Connection and flow-control settings."""

    port: str | None = None
    baudrate: int = 115200
    timeout: float = 0.1
    retries: int = READ_RETRIES
    settle_delay: float = 0.0
    banner_size: int = BANNER_SIZE
    banner_reads: int = BANNER_READS


class ByteLink:
    """Write-then-read primitives with bounded retry on short reads."""

    def __init__(self, channel: Channel, settings: LinkSettings | None = None) -> None:
        self.channel = channel
        self.settings = settings or LinkSettings()

    def send(self, data: bytes) -> None:
        """Write all of ``data``, resuming after partial writes."""
        view = memoryview(bytes(data))
        while view:
            try:
                written = self.channel.write(bytes(view))
            except OSError as e:
                raise ChannelIoError(f"Channel write failed: {e}") from e
            if not written:
                raise ChannelIoError(
                    f"Channel accepted no bytes ({len(view)} pending)"
                )
            view = view[written:]
        logger.debug("-> %s", bytes(data).hex(" "))
        if self.settings.settle_delay:
            time.sleep(self.settings.settle_delay)

    def read_exact(self, count: int, what: str = "") -> bytes:
        """Read exactly ``count`` bytes.

        Raises:
            ShortRead: If ``retries`` consecutive reads return nothing
                before ``count`` bytes have arrived.
        """
        received = bytearray()
        misses = 0
        while len(received) < count:
            try:
                chunk = self.channel.read(count - len(received))
            except OSError as e:
                raise ChannelIoError(f"Channel read failed: {e}") from e
            if chunk:
                received += chunk
                misses = 0
                continue
            misses += 1
            if misses >= self.settings.retries:
                raise ShortRead(count, bytes(received), what)
        logger.debug("<- %s", bytes(received).hex(" "))
        return bytes(received)

    def exchange(self, data: bytes, count: int, what: str = "") -> bytes:
        """Send ``data`` and read its ``count``-byte reply."""
        self.send(data)
        return self.read_exact(count, what)

    def drain(self, max_len: int | None = None, reads: int | None = None) -> bytes:
        """Consume informational output, such as the user-mode banner.

        Never fails on a short or empty read.
        """
        max_len = self.settings.banner_size if max_len is None else max_len
        reads = self.settings.banner_reads if reads is None else reads
        drained = bytearray()
        for _ in range(reads):
            try:
                drained += self.channel.read(max_len)
            except OSError as e:
                raise ChannelIoError(f"Channel read failed: {e}") from e
        if drained:
            logger.debug("Drained %d banner bytes", len(drained))
        return bytes(drained)
