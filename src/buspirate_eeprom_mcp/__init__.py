"""Bus Pirate driver for I2C EEPROMs, exposed as an MCP server."""

from .client import EepromClient

__version__ = "0.1.0"
