"""Modbus RTU frame builder and response validator.

Request layout (always 8 bytes)::

    +---------+----------+-----------+-----------+---------+---------+
    | Address | Function | Register  | Value or  | CRC lo  | CRC hi  |
    | 0xFE    | 1 byte   | 2 B (BE)  | count 2 B |         |         |
    +---------+----------+-----------+-----------+---------+---------+

Read response layout::

    +---------+----------+------------+-----------------+--------+--------+
    | Address | Function | Byte count |     Payload     | CRC lo | CRC hi |
    +---------+----------+------------+-----------------+--------+--------+

A write response is a verbatim echo of the 8-byte request.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from ..models.result import FailureKind
from ..utils.crc import crc16_bytes

ANY_ADDRESS = 0xFE
REQUEST_SIZE = 8
MIN_RESPONSE_SIZE = 7
MAX_RESPONSE_SIZE = 20
RESPONSE_OVERHEAD = 5  # address + function + byte count + 2 CRC bytes


class FunctionCode(IntEnum):
    """Modbus function codes understood by the sensor."""

    READ_HOLDING_REGISTERS = 0x03
    READ_INPUT_REGISTERS = 0x04
    WRITE_SINGLE_REGISTER = 0x06


READ_FUNCTIONS = (FunctionCode.READ_HOLDING_REGISTERS, FunctionCode.READ_INPUT_REGISTERS)


class ProtocolError(Exception):
    """A response was missing or failed validation."""

    def __init__(self, kind: FailureKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


@dataclass
class Frame:
    """A validated read response."""

    address: int
    function: int
    payload: bytes
    raw: bytes

    def __repr__(self) -> str:
        return (
            f"Frame(address=0x{self.address:02X}, function=0x{self.function:02X}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'})"
        )


def response_size(words: int) -> int:
    """Wire length of a read response carrying ``words`` registers."""
    return RESPONSE_OVERHEAD + 2 * words


def build_request(function: int, register_address: int, value: int) -> bytes:
    """Build an 8-byte request frame.

    Args:
        function: One of the :class:`FunctionCode` values.
        register_address: 16-bit register address.
        value: Word count for reads, new register value for writes. Negative
            values down to -32768 are sent in two's complement.

    Returns:
        The complete frame including CRC.

    Raises:
        ValueError: If the combination cannot be sent to the sensor.
    """
    if function not in tuple(FunctionCode):
        raise ValueError(f"Unsupported function code 0x{function:02X}")
    if not 0 <= register_address <= 0xFFFF:
        raise ValueError(f"Register address must be 0-0xFFFF, got {register_address}")

    if function in READ_FUNCTIONS:
        if value < 1:
            raise ValueError(f"Word count must be at least 1, got {value}")
        if response_size(value) > MAX_RESPONSE_SIZE:
            raise ValueError(
                f"Reading {value} words exceeds the {MAX_RESPONSE_SIZE}-byte response limit"
            )
    elif not -0x8000 <= value <= 0xFFFF:
        raise ValueError(f"Register value must fit in 16 bits, got {value}")

    body = bytes([ANY_ADDRESS, function]) + register_address.to_bytes(2, "big")
    body += (value & 0xFFFF).to_bytes(2, "big")
    return body + crc16_bytes(body)


def check_crc(data: bytes) -> bool:
    """True if the trailing two bytes are the CRC of everything before them."""
    if len(data) < 3:
        return False
    return crc16_bytes(data[:-2]) == data[-2:]


def parse_response(data: bytes, expected_length: int) -> Frame:
    """Validate a captured read response and split out its payload.

    Args:
        data: Bytes captured from the transport in a single read.
        expected_length: Exact length the request should have produced.

    Returns:
        The validated :class:`Frame`.

    Raises:
        ProtocolError: With the failure kind of the first check that failed.
    """
    if not data:
        raise ProtocolError(FailureKind.TIMEOUT, "No response from sensor")
    if len(data) != expected_length:
        raise ProtocolError(
            FailureKind.UNEXPECTED_LENGTH,
            f"Expected {expected_length} bytes, got {len(data)}",
        )
    if len(data) < MIN_RESPONSE_SIZE:
        raise ProtocolError(
            FailureKind.UNEXPECTED_LENGTH,
            f"Response shorter than {MIN_RESPONSE_SIZE} bytes",
        )
    if not check_crc(data):
        raise ProtocolError(FailureKind.CHECKSUM_MISMATCH, "Checksum mismatch")

    address, function, byte_count = data[0], data[1], data[2]
    if address != ANY_ADDRESS:
        raise ProtocolError(
            FailureKind.MALFORMED_RESPONSE, f"Unexpected address 0x{address:02X}"
        )
    if function not in READ_FUNCTIONS:
        raise ProtocolError(
            FailureKind.MALFORMED_RESPONSE, f"Unexpected function code 0x{function:02X}"
        )
    if byte_count != len(data) - RESPONSE_OVERHEAD:
        raise ProtocolError(
            FailureKind.MALFORMED_RESPONSE,
            f"Byte count {byte_count} does not match frame length {len(data)}",
        )

    return Frame(address=address, function=function, payload=data[3:-2], raw=data)


def check_echo(sent: bytes, received: bytes) -> None:
    """Validate a write response, which must echo the request verbatim.

    Raises:
        ProtocolError: ``TIMEOUT`` if nothing came back,
            ``UNEXPECTED_LENGTH`` if the echo is not the request's length,
            ``ECHO_MISMATCH`` if the bytes differ.
    """
    if not received:
        raise ProtocolError(FailureKind.TIMEOUT, "No response from sensor")
    if len(received) != len(sent):
        raise ProtocolError(
            FailureKind.UNEXPECTED_LENGTH,
            f"Expected {len(sent)}-byte echo, got {len(received)}",
        )
    if received != sent:
        raise ProtocolError(
            FailureKind.ECHO_MISMATCH,
            f"Echo {received.hex(' ')} differs from request {sent.hex(' ')}",
        )
