"""Serial connection to the Bus Pirate.

The Bus Pirate v3 enumerates as an FTDI USB-serial adapter. We talk to it
at 115200 8N1 through pyserial; the port is either given explicitly or
discovered by USB vendor/product id.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import serial
from serial.tools import list_ports

from ..protocol.errors import ChannelIoError

logger = logging.getLogger(__name__)

VENDOR_ID = 0x0403
PRODUCT_ID = 0x6001
BAUDRATE = 115200
READ_TIMEOUT_S = 0.1
WRITE_TIMEOUT_S = 1.0


@dataclass
class PortInfo:
    """Identification of the opened serial port."""

    device: str = ""
    vendor_id: int | None = VENDOR_ID
    product_id: int | None = PRODUCT_ID
    manufacturer: str = ""
    product: str = ""
    serial_number: str = ""

    def to_dict(self) -> dict:
        return {
            "device": self.device,
            "vendor_id": f"{self.vendor_id:#06x}" if self.vendor_id is not None else None,
            "product_id": f"{self.product_id:#06x}" if self.product_id is not None else None,
            "manufacturer": self.manufacturer,
            "product": self.product,
            "serial_number": self.serial_number,
        }


def find_ports(
    vendor_id: int = VENDOR_ID,
    product_id: int = PRODUCT_ID,
) -> list[PortInfo]:
    """List serial ports whose USB ids match the Bus Pirate."""
    found = []
    for port in list_ports.comports():
        if port.vid == vendor_id and port.pid == product_id:
            found.append(PortInfo(
                device=port.device,
                vendor_id=port.vid,
                product_id=port.pid,
                manufacturer=port.manufacturer or "",
                product=port.product or "",
                serial_number=port.serial_number or "",
            ))
    return found


class SerialChannel:
    """Duplex byte channel over a pyserial port.

    Usage::

        channel = SerialChannel("/dev/ttyUSB0")
        channel.open()
        channel.write(b"\\x00" * 20)
        reply = channel.read(5)
        channel.close()
    """

    def __init__(
        self,
        port: str | None = None,
        baudrate: int = BAUDRATE,
        timeout: float = READ_TIMEOUT_S,
        vendor_id: int = VENDOR_ID,
        product_id: int = PRODUCT_ID,
    ) -> None:
        self._port = port
        self._baudrate = baudrate
        self._timeout = timeout
        self._vendor_id = vendor_id
        self._product_id = product_id
        self._serial: serial.Serial | None = None
        self._port_info = PortInfo(device=port or "")

    @property
    def connected(self) -> bool:
        return self._serial is not None and self._serial.is_open

    @property
    def port_info(self) -> PortInfo:
        return self._port_info

    def open(self) -> PortInfo:
        """Open the port, discovering it by USB id when none was given.

        Raises:
            ConnectionError: If no Bus Pirate is found or the port cannot be opened.
        """
        if self._port is None:
            candidates = find_ports(self._vendor_id, self._product_id)
            if not candidates:
                raise ConnectionError(
                    f"No Bus Pirate found "
                    f"({self._vendor_id:#06x}:{self._product_id:#06x}). "
                    f"Pass the serial port explicitly."
                )
            if len(candidates) > 1:
                logger.warning(
                    "Several matching ports, using %s: %s",
                    candidates[0].device,
                    [c.device for c in candidates],
                )
            self._port_info = candidates[0]
            self._port = self._port_info.device

        try:
            self._serial = serial.Serial(
                port=self._port,
                baudrate=self._baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self._timeout,
                write_timeout=WRITE_TIMEOUT_S,
            )
        except serial.SerialException as e:
            raise ConnectionError(
                f"Could not open {self._port}: {e}"
            ) from e

        self._serial.reset_input_buffer()
        logger.info("Connected to %s at %d baud", self._port, self._baudrate)
        return self._port_info

    def close(self) -> None:
        """Close the serial port."""
        if self._serial is None:
            return

        try:
            self._serial.close()
        except serial.SerialException as e:
            logger.warning("Error closing port: %s", e)
        finally:
            self._serial = None
            logger.info("Disconnected")

    def write(self, data: bytes) -> int:
        """Write bytes; returns how many the driver accepted.

        Raises:
            ConnectionError: If not connected.
            ChannelIoError: If the write fails.
        """
        if not self.connected:
            raise ConnectionError("Not connected to device")
        try:
            written = self._serial.write(data)
        except serial.SerialException as e:
            raise ChannelIoError(f"Write to {self._port} failed: {e}") from e
        return len(data) if written is None else written

    def read(self, max_len: int) -> bytes:
        """Read up to ``max_len`` bytes, returning early on the port timeout.

        Raises:
            ConnectionError: If not connected.
            ChannelIoError: If the read fails.
        """
        if not self.connected:
            raise ConnectionError("Not connected to device")
        try:
            return bytes(self._serial.read(max_len))
        except serial.SerialException as e:
            raise ChannelIoError(f"Read from {self._port} failed: {e}") from e
