"""Protocol layer: opcodes, command builders, message framing and reply validation."""

from .commands import Command, Opcode
from .errors import ProtocolError, Stage
from .framing import Message, build_batch_message
