"""Modbus CRC-16.

Reflected polynomial 0xA001 (0x8005), initial register 0xFFFF, no final XOR.
The checksum goes on the wire low byte first.
"""

from __future__ import annotations

CRC16_INIT = 0xFFFF
CRC16_POLY = 0xA001


def crc16(data: bytes) -> int:
    """Compute the Modbus CRC-16 of ``data``.

    Args:
        data: Frame bytes to checksum (everything before the CRC field).

    Returns:
        The 16-bit checksum as an integer.
    """
    crc = CRC16_INIT
    for byte in data:
        crc ^= byte
        for _ in range(8):
            if crc & 0x0001:
                crc = (crc >> 1) ^ CRC16_POLY
            else:
                crc >>= 1
    return crc & 0xFFFF


def crc16_bytes(data: bytes) -> bytes:
    """Return the CRC of ``data`` as the 2 bytes sent on the wire."""
    return crc16(data).to_bytes(2, "little")
