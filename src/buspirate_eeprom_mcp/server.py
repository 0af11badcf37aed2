"""MCP server entry point for the Bus Pirate EEPROM driver.

Exposes tools, resources, and prompts via the Model Context Protocol
using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .client import EepromClient
from .engine.batched import plan_batches
from .models.eeprom import DEFAULT_BATCH_SIZE, EEPROM_24LC08B
from .protocol.commands import (
    BINARY_BANNER,
    BITBANG_ENABLE_LENGTH,
    I2C_BANNER,
    POWER_AND_PULLUPS,
    Opcode,
)
from .protocol.errors import ProtocolError
from .transport.link import LinkSettings
from .transport.serial_channel import BAUDRATE, SerialChannel

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "buspirate-eeprom",
    instructions="MCP server for a 24LC08B I2C EEPROM behind a Bus Pirate",
)

# Global connection state
_channel: SerialChannel | None = None
_client: EepromClient | None = None


def _get_client() -> EepromClient:
    """Get the active EEPROM client, raising if not connected."""
    if _client is None or _channel is None or not _channel.connected:
        raise RuntimeError(
            "Not connected to device. Use the 'connect' tool first."
        )
    return _client


def _error(e: Exception) -> dict[str, Any]:
    kind = e.kind if isinstance(e, ProtocolError) else type(e).__name__
    logger.warning("Operation failed (%s): %s", kind, e)
    return {"error": str(e), "kind": kind}


def _decode(data: str, encoding: str) -> bytes:
    if encoding == "text":
        return data.encode("ascii")
    if encoding == "hex":
        return bytes.fromhex(data)
    raise ValueError(f"Unknown encoding '{encoding}'. Valid: ['text', 'hex']")


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(
    port: str | None = None,
    baudrate: int = BAUDRATE,
    timeout: float = 0.1,
    retries: int = 5,
    max_batch: int = DEFAULT_BATCH_SIZE,
) -> dict[str, Any]:
    """Open the serial connection to the Bus Pirate.

    Args:
        port: Serial device (e.g. /dev/ttyUSB0). Auto-discovered by USB id
              (0x0403:0x6001) when omitted.
        baudrate: Serial speed, 115200 for the Bus Pirate v3.
        timeout: Per-read timeout in seconds.
        retries: Empty reads tolerated before a reply counts as short.
        max_batch: Data bytes per batched write (1-14).
    """
    global _channel, _client
    if _channel is not None and _channel.connected:
        return {
            "connected": True,
            "message": "Already connected",
            "port": _channel.port_info.device,
        }

    settings = LinkSettings(
        port=port, baudrate=baudrate, timeout=timeout, retries=retries
    )
    channel = SerialChannel(
        settings.port, baudrate=settings.baudrate, timeout=settings.timeout
    )
    try:
        info = channel.open()
        _client = EepromClient(channel, settings, max_batch=max_batch)
    except (ConnectionError, ValueError) as e:
        channel.close()
        return _error(e)
    _channel = channel

    result: dict[str, Any] = {"connected": True}
    result.update(info.to_dict())
    return result


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the serial connection to the Bus Pirate."""
    global _channel, _client
    if _channel is None:
        return {"disconnected": True}
    _channel.close()
    _channel = None
    _client = None
    return {"disconnected": True}


@mcp.tool()
def get_device_info() -> dict[str, Any]:
    """Report the serial port, session state and EEPROM geometry."""
    client = _get_client()
    return {
        "port": _channel.port_info.to_dict(),
        "session_state": client.state.value,
        "eeprom": client.geometry.to_dict(),
        "max_batch": client.batcher.max_batch,
    }


# ─── EEPROM TOOLS ─────────────────────────────────────────────────────

@mcp.tool()
def read_eeprom(start: int = 0, max_bytes: int = 256) -> dict[str, Any]:
    """Read bytes one at a time until the newline terminator or max_bytes.

    Args:
        start: First address (0-255).
        max_bytes: Upper bound on the number of bytes read.
    """
    client = _get_client()
    try:
        return client.read(start, max_bytes).to_dict()
    except (ProtocolError, ValueError) as e:
        return _error(e)


@mcp.tool()
def write_eeprom(
    data: str,
    start: int = 0,
    encoding: str = "text",
    batched: bool = True,
) -> dict[str, Any]:
    """Write data to the EEPROM.

    Batched writes send up to eight bytes per round trip, never cross a
    16-byte page and stop at the first newline byte. Byte-by-byte writes
    send every byte, newline included.

    Args:
        data: Text, or hex digits when encoding is "hex".
        start: First address (0-255).
        encoding: "text" (ASCII) or "hex".
        batched: Use the batched engine (default) or the byte-by-byte one.
    """
    client = _get_client()
    try:
        payload = _decode(data, encoding)
        return client.write(payload, start, batched=batched).to_dict()
    except (ProtocolError, ValueError) as e:
        return _error(e)


@mcp.tool()
def store_text(text: str, start: int = 0) -> dict[str, Any]:
    """Store one line of text followed by the newline terminator.

    Args:
        text: ASCII text; anything after the first newline is dropped.
        start: First address (0-255).
    """
    client = _get_client()
    try:
        return client.store_text(text, start).to_dict()
    except (ProtocolError, ValueError) as e:
        return _error(e)


@mcp.tool()
def verify_eeprom(data: str, start: int = 0, encoding: str = "text") -> dict[str, Any]:
    """Read back len(data) bytes from start and compare them with data.

    Args:
        data: Expected content, text or hex.
        start: First address (0-255).
        encoding: "text" (ASCII) or "hex".
    """
    client = _get_client()
    try:
        expected = _decode(data, encoding)
        return {"match": client.verify(expected, start), "length": len(expected)}
    except (ProtocolError, ValueError) as e:
        return _error(e)


@mcp.tool()
def plan_write(data: str, start: int = 0, encoding: str = "text") -> dict[str, Any]:
    """Show how a batched write would be split, without touching the device.

    Args:
        data: Text, or hex digits when encoding is "hex".
        start: First address (0-255).
        encoding: "text" (ASCII) or "hex".
    """
    max_batch = _client.batcher.max_batch if _client else DEFAULT_BATCH_SIZE
    geometry = _client.geometry if _client else EEPROM_24LC08B
    try:
        payload = _decode(data, encoding)
        batches, terminated = plan_batches(payload, start, geometry, max_batch)
    except ValueError as e:
        return _error(e)
    return {
        "batches": [
            {
                "address": batch.address,
                "length": len(batch),
                "header": f"0x{batch.header:02X}",
                "data_hex": batch.payload.hex(" "),
            }
            for batch in batches
        ],
        "terminated": terminated,
    }


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("buspirate://eeprom/geometry")
def resource_geometry() -> str:
    """Addressing parameters of the target EEPROM."""
    return json.dumps(EEPROM_24LC08B.to_dict())


@mcp.resource("buspirate://protocol/opcodes")
def resource_opcodes() -> str:
    """Binary-mode opcode table with expected replies."""
    opcodes = [
        {"meaning": "Enable binary mode",
         "bytes": f"{BITBANG_ENABLE_LENGTH} x 0x00",
         "reply": BINARY_BANNER.decode()},
        {"meaning": "Enable I2C mode", "bytes": f"0x{Opcode.I2C_ENABLE:02X}",
         "reply": I2C_BANNER.decode()},
        {"meaning": "Enable power and pull-ups", "bytes": f"0x{POWER_AND_PULLUPS:02X}",
         "reply": "0x01"},
        {"meaning": "Start bit", "bytes": f"0x{Opcode.START_BIT:02X}", "reply": "0x01"},
        {"meaning": "Bulk write (N bytes)", "bytes": "0x10 | (N-1)", "reply": "0x01"},
        {"meaning": "Address / data byte", "bytes": "raw",
         "reply": "0x00 ACK, 0x01 NACK"},
        {"meaning": "Read one byte", "bytes": f"0x{Opcode.READ_BYTE:02X}",
         "reply": "data byte"},
        {"meaning": "Send NACK", "bytes": f"0x{Opcode.SEND_NACK:02X}", "reply": "0x01"},
        {"meaning": "Stop bit", "bytes": f"0x{Opcode.STOP_BIT:02X}", "reply": "0x01"},
        {"meaning": "Disable I2C", "bytes": f"0x{Opcode.I2C_DISABLE:02X}",
         "reply": BINARY_BANNER.decode()},
        {"meaning": "Disable binary mode", "bytes": f"0x{Opcode.BITBANG_DISABLE:02X}",
         "reply": "0x01 + user-mode banner"},
    ]
    return json.dumps({"opcodes": opcodes})


# ─── MCP PROMPTS ─────────────────────────────────────────────────────

@mcp.prompt()
def write_and_verify(text: str) -> str:
    """Guide the AI through storing text and checking it was written.

    Args:
        text: The line of text to store.
    """
    return f"""Store the text {text!r} in the EEPROM and confirm it.
Steps:
- Use plan_write to preview the batches (no device access)
- Use store_text to write the line and its newline terminator
- Use read_eeprom from the same start address to read it back
- Compare the returned text with the original

If a tool returns an error with kind "data-nack", check the EEPROM wiring
and address; with kind "handshake", reconnect the Bus Pirate."""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
