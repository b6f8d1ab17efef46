"""Sensor-level data models: snapshot and status bitfields."""

from __future__ import annotations

from dataclasses import dataclass

# Meter status bits
METER_OUT_OF_RANGE = 0x0020
METER_MEMORY_ERROR = 0x0040

# Output status bits
OUTPUT_ALARM = 0x0001
OUTPUT_PWM = 0x0002


@dataclass
class SensorSnapshot:
    """Identification plus the latest reading, combined from four queries."""

    serial_number: str = ""
    software_version: str = ""
    co2: int = 0
    temperature: int = 0

    def to_dict(self) -> dict:
        return {
            "serial_number": self.serial_number,
            "software_version": self.software_version,
            "co2_ppm": self.co2,
            "temperature_c": self.temperature,
        }


@dataclass
class MeterStatus:
    """Meter status register (IR6)."""

    raw: int = 0

    @property
    def out_of_range(self) -> bool:
        return bool(self.raw & METER_OUT_OF_RANGE)

    @property
    def memory_error(self) -> bool:
        return bool(self.raw & METER_MEMORY_ERROR)

    def to_dict(self) -> dict:
        return {
            "raw": self.raw,
            "bits": f"{self.raw & 0xFFFF:016b}",
            "out_of_range": self.out_of_range,
            "memory_error": self.memory_error,
        }


@dataclass
class OutputStatus:
    """Output status register (IR7)."""

    raw: int = 0

    @property
    def alarm(self) -> bool:
        return bool(self.raw & OUTPUT_ALARM)

    @property
    def pwm(self) -> bool:
        return bool(self.raw & OUTPUT_PWM)

    def to_dict(self) -> dict:
        return {
            "raw": self.raw,
            "bits": f"{self.raw & 0xFFFF:016b}",
            "alarm": self.alarm,
            "pwm": self.pwm,
        }
