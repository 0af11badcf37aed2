"""Transport layer: the serial channel and read/write flow control."""

from .link import ByteLink, Channel, LinkSettings
from .serial_channel import PortInfo, SerialChannel
