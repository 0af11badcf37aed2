"""Data models for session state, the address cursor and EEPROM geometry."""

from .cursor import AddressCursor
from .eeprom import EEPROM_24LC08B, EepromGeometry
from .session import SessionState
