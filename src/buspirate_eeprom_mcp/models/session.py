"""Translator session state."""

from __future__ import annotations

from enum import Enum


class SessionState(Enum):
    """Which command set the translator is currently listening to."""

    USER = "user"
    BINARY = "binary"
    I2C = "i2c"
