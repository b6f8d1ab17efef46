"""Register map and request builders for the CRIR M1.

Addresses are 0-based on the wire; the datasheet numbers registers from 1
(IR5 is address 0x0004).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .framing import FunctionCode, build_request, response_size

# Values for the user acknowledgement / special command registers
CLEAR_CALIBRATION_COMPLETION = 0x0000
START_USER_CALIBRATION = 0x7C01
CALIBRATION_COMPLETED = 0x0001


class RegisterKind(Enum):
    """Modbus register class."""

    INPUT = "input"
    HOLDING = "holding"


@dataclass(frozen=True)
class Register:
    """A logical sensor register: address, class, and width in words."""

    name: str
    address: int
    kind: RegisterKind
    words: int = 1

    @property
    def read_function(self) -> FunctionCode:
        if self.kind is RegisterKind.INPUT:
            return FunctionCode.READ_INPUT_REGISTERS
        return FunctionCode.READ_HOLDING_REGISTERS

    @property
    def response_size(self) -> int:
        return response_size(self.words)

    @property
    def writable(self) -> bool:
        return self.kind is RegisterKind.HOLDING

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "address": f"0x{self.address:04X}",
            "kind": self.kind.value,
            "words": self.words,
        }


class InputRegister:
    """Read-only registers (function 0x04)."""

    TEMPERATURE = Register("temperature", 0x0004, RegisterKind.INPUT)
    METER_STATUS = Register("meter_status", 0x0005, RegisterKind.INPUT)
    OUTPUT_STATUS = Register("output_status", 0x0006, RegisterKind.INPUT)
    CO2 = Register("co2", 0x0007, RegisterKind.INPUT)
    PWM_OUTPUT = Register("pwm_output", 0x0008, RegisterKind.INPUT)
    SENSOR_TYPE_ID = Register("sensor_type_id", 0x0009, RegisterKind.INPUT, words=2)
    MEMORY_MAP_VERSION = Register("memory_map_version", 0x000B, RegisterKind.INPUT)
    FIRMWARE_VERSION = Register("firmware_version", 0x000C, RegisterKind.INPUT)
    SENSOR_ID = Register("sensor_id", 0x000D, RegisterKind.INPUT, words=2)
    SERIAL_NUMBER = Register("serial_number", 0x000F, RegisterKind.INPUT, words=5)


class HoldingRegister:
    """Read/write registers (functions 0x03 and 0x06)."""

    ABC_PERIOD = Register("abc_period", 0x0004, RegisterKind.HOLDING)
    USER_ACKNOWLEDGEMENT = Register("user_acknowledgement", 0x0005, RegisterKind.HOLDING)
    USER_SPECIAL_COMMAND = Register("user_special_command", 0x0006, RegisterKind.HOLDING)
    USER_CONCENTRATION = Register("user_concentration", 0x0007, RegisterKind.HOLDING)


REGISTER_MAP: tuple[Register, ...] = (
    InputRegister.TEMPERATURE,
    InputRegister.METER_STATUS,
    InputRegister.OUTPUT_STATUS,
    InputRegister.CO2,
    InputRegister.PWM_OUTPUT,
    InputRegister.SENSOR_TYPE_ID,
    InputRegister.MEMORY_MAP_VERSION,
    InputRegister.FIRMWARE_VERSION,
    InputRegister.SENSOR_ID,
    InputRegister.SERIAL_NUMBER,
    HoldingRegister.ABC_PERIOD,
    HoldingRegister.USER_ACKNOWLEDGEMENT,
    HoldingRegister.USER_SPECIAL_COMMAND,
    HoldingRegister.USER_CONCENTRATION,
)


def build_read(register: Register) -> bytes:
    """Build a read request covering every word of ``register``."""
    return build_request(register.read_function, register.address, register.words)


def build_write(register: Register, value: int) -> bytes:
    """Build a write-single-register request.

    Raises:
        ValueError: If the register is read-only or the value does not fit.
    """
    if not register.writable:
        raise ValueError(f"Register '{register.name}' is read-only")
    return build_request(FunctionCode.WRITE_SINGLE_REGISTER, register.address, value)
