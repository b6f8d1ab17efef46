"""Shared fixtures: an in-memory CRIR M1 that answers Modbus frames."""

from __future__ import annotations

import pytest

from crir_m1_mcp.utils.crc import crc16_bytes

SERIAL_NUMBER = b"SN12345678"


def serial_number_words(text: bytes) -> dict[int, int]:
    padded = text.ljust(10, b"\x00")
    return {
        0x000F + i: int.from_bytes(padded[2 * i : 2 * i + 2], "big")
        for i in range(5)
    }


class FakeSensor:
    """Transport double that behaves like a healthy sensor.

    Queue raw bytes on ``responses`` to answer the next request with
    something else (a corrupted frame, ``b""`` for a timeout, ...).
    """

    def __init__(
        self,
        input_registers: dict[int, int] | None = None,
        holding_registers: dict[int, int] | None = None,
    ) -> None:
        self.input_registers = dict(input_registers or {})
        self.holding_registers = dict(holding_registers or {})
        self.responses: list[bytes] = []
        self.sent: list[bytes] = []
        self.reads: list[tuple[int, float]] = []
        self._pending = b""

    def write(self, data: bytes) -> int:
        self.sent.append(bytes(data))
        if self.responses:
            self._pending = self.responses.pop(0)
            return len(data)

        function = data[1]
        address = int.from_bytes(data[2:4], "big")
        value = int.from_bytes(data[4:6], "big")
        if function == 0x06:
            self.holding_registers[address] = value
            self._pending = bytes(data)
        else:
            table = self.input_registers if function == 0x04 else self.holding_registers
            payload = b"".join(
                table.get(address + i, 0).to_bytes(2, "big") for i in range(value)
            )
            body = bytes([0xFE, function, len(payload)]) + payload
            self._pending = body + crc16_bytes(body)
        return len(data)

    def read(self, max_bytes: int, timeout: float = 5) -> bytes:
        self.reads.append((max_bytes, timeout))
        data, self._pending = self._pending[:max_bytes], b""
        return data


@pytest.fixture
def fake_sensor() -> FakeSensor:
    inputs = {
        0x0004: 0x30D4,  # 125.00 raw -> 25 C
        0x0005: 0x0020,  # out of range
        0x0006: 0x0003,  # alarm + PWM
        0x0007: 612,
        0x0008: 0x0100,
        0x0009: 0x0001,
        0x000A: 0x0203,
        0x000B: 0x0005,
        0x000C: 0x0102,  # firmware 1.2
        0x000D: 0xFF01,
        0x000E: 0x0203,
    }
    inputs.update(serial_number_words(SERIAL_NUMBER))
    holdings = {
        0x0004: 180,
        0x0005: 0,
        0x0006: 0,
        0x0007: 400,
    }
    return FakeSensor(inputs, holdings)
