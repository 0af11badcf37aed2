"""Target EEPROM geometry.

24LC08B: 8 Kbit organised as four 256-byte blocks selected through the
device address. Only block 0 is addressed here. Page writes must stay
within one 16-byte page.
"""

from __future__ import annotations

from dataclasses import dataclass

TERMINATOR = 0x0A  # newline, end-of-data marker stored in the EEPROM
MAX_BULK_PAYLOAD = 14  # 16-byte bulk write minus device and word address
DEFAULT_BATCH_SIZE = 8  # half a page


@dataclass(frozen=True)
class EepromGeometry:
    """Fixed addressing parameters of the target device."""

    name: str = "24LC08B"
    write_address: int = 0xA0
    read_address: int = 0xA1
    page_size: int = 16
    block_size: int = 256
    terminator: int = TERMINATOR
    max_bulk_payload: int = MAX_BULK_PAYLOAD

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "write_address": f"0x{self.write_address:02X}",
            "read_address": f"0x{self.read_address:02X}",
            "page_size": self.page_size,
            "block_size": self.block_size,
            "terminator": self.terminator,
            "max_bulk_payload": self.max_bulk_payload,
        }


EEPROM_24LC08B = EepromGeometry()
