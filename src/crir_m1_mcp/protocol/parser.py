"""Payload decoders for validated read responses.

Each decoder takes the response payload (the bytes after the byte-count
field, i.e. wire offsets 3 onward) and returns a typed value.
"""

from __future__ import annotations

SERIAL_NUMBER_LENGTH = 10
TEMPERATURE_SCALE = 100
TEMPERATURE_OFFSET = 100


def decode_uint16(payload: bytes) -> int:
    return int.from_bytes(payload[0:2], "big")


def decode_int16(payload: bytes) -> int:
    return int.from_bytes(payload[0:2], "big", signed=True)


def decode_uint32(payload: bytes) -> int:
    return int.from_bytes(payload[0:4], "big")


def decode_temperature(payload: bytes) -> int:
    """Whole degrees Celsius: raw / 100 - 100, with integer division."""
    raw = payload[0] * 256 + payload[1]
    return raw // TEMPERATURE_SCALE - TEMPERATURE_OFFSET


def decode_serial_number(payload: bytes) -> str:
    """NUL-terminated ASCII, at most 10 characters."""
    text = payload[:SERIAL_NUMBER_LENGTH].split(b"\x00")[0]
    return text.decode("ascii", errors="replace")


def decode_software_version(payload: bytes) -> str:
    """Two raw bytes rendered as ``major.minor``."""
    return f"{payload[0]}.{payload[1]}"
