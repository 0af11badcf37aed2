"""Outcomes of EEPROM read and write runs."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ReadResult:
    """Bytes read from ``start`` up to the terminator or the byte limit."""

    start: int
    data: bytes = b""
    next_address: int = 0
    terminated: bool = False

    def to_dict(self) -> dict:
        return {
            "start": self.start,
            "length": len(self.data),
            "data_hex": self.data.hex(" "),
            "text": self.data.decode("ascii", errors="replace"),
            "next_address": self.next_address,
            "terminated": self.terminated,
        }


@dataclass
class WriteResult:
    """How many bytes reached the EEPROM and in how many round trips."""

    start: int
    written: int = 0
    next_address: int = 0
    round_trips: int = 0
    terminated: bool = False

    def to_dict(self) -> dict:
        return {
            "start": self.start,
            "written": self.written,
            "next_address": self.next_address,
            "round_trips": self.round_trips,
            "terminated": self.terminated,
        }
