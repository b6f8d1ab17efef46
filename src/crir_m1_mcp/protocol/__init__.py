"""Protocol layer: CRC framing, register map, request builders, and decoders."""

from .framing import FunctionCode, ProtocolError, build_request, parse_response, check_echo
from .commands import HoldingRegister, InputRegister, Register, build_read, build_write
