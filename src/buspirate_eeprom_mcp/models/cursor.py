"""EEPROM address cursor."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class AddressCursor:
    """Next EEPROM word address to read or write within one 256-byte block.

    ``position`` may reach ``limit`` (one past the last byte) but never
    move beyond it; addressing other blocks is not modelled.
    """

    position: int = 0
    limit: int = 256

    def __post_init__(self) -> None:
        if not 0 <= self.position <= self.limit:
            raise ValueError(
                f"Address must be 0-{self.limit - 1}, got {self.position}"
            )

    @property
    def remaining(self) -> int:
        return self.limit - self.position

    def require(self, count: int) -> None:
        """Raise if ``count`` more bytes would run past the end of the block."""
        if count > self.remaining:
            raise ValueError(
                f"{count} bytes from address {self.position} exceed the "
                f"{self.limit}-byte block"
            )

    def page_remaining(self, page_size: int) -> int:
        """Bytes left before the next page boundary."""
        return page_size - (self.position % page_size)

    def advance(self, count: int) -> int:
        """Move forward by ``count`` completed bytes and return the new position."""
        if count < 0:
            raise ValueError(f"Cursor only moves forward, got {count}")
        self.require(count)
        self.position += count
        return self.position
