"""Protocol engines: mode handshake, single-byte transfers and batched writes."""

from .batched import Batch, BulkWriteBatcher, plan_batches
from .handshake import ModeHandshake
from .single_byte import SingleByteEngine
