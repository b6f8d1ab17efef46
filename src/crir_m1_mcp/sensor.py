"""CRIR M1 CO2 sensor: register operations and the public API.

Every operation is one request frame, one bounded read, and one validation
pass. Failures come back as :class:`Result` values; nothing is retried.

Usage::

    with SerialConnection("/dev/ttyUSB0") as conn:
        sensor = CRIRM1(conn)
        co2 = sensor.get_co2()
        if co2.ok:
            print(co2.value)

The instance is not reentrant: callers sharing one sensor across threads
must serialize access themselves.
"""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from .models.result import FailureKind, Result
from .models.sensor import MeterStatus, OutputStatus, SensorSnapshot
from .protocol.commands import (
    CALIBRATION_COMPLETED,
    CLEAR_CALIBRATION_COMPLETION,
    START_USER_CALIBRATION,
    HoldingRegister,
    InputRegister,
    Register,
    build_read,
    build_write,
)
from .protocol.framing import REQUEST_SIZE, ProtocolError, check_echo, parse_response
from .protocol.parser import (
    decode_int16,
    decode_serial_number,
    decode_software_version,
    decode_temperature,
    decode_uint16,
    decode_uint32,
)
from .transport.base import DEFAULT_TIMEOUT, Transport

logger = logging.getLogger(__name__)

T = TypeVar("T")

ABC_PERIOD_DISABLED = 0
ABC_PERIOD_MIN = 4
ABC_PERIOD_MAX = 4800
USER_CONCENTRATION_MIN = 400
USER_CONCENTRATION_MAX = 2000


class CRIRM1:
    """Master-side driver for one CRIR M1 on a point-to-point link."""

    def __init__(self, transport: Transport, timeout: float = DEFAULT_TIMEOUT) -> None:
        if timeout <= 0:
            raise ValueError(f"Timeout must be positive, got {timeout}")
        self._transport = transport
        self._timeout = timeout

    @property
    def timeout(self) -> float:
        return self._timeout

    # ─── PRIMITIVES ───────────────────────────────────────────────────

    def _read(self, register: Register, decode: Callable[[bytes], T], default: T) -> Result[T]:
        """Read every word of ``register`` and decode the payload."""
        try:
            request = build_read(register)
        except ValueError as e:
            return Result.failure(FailureKind.INVALID_ARGUMENT, default, str(e))

        logger.debug("Request %s => %s", register.name, request.hex(" "))
        self._transport.write(request)
        response = self._transport.read(register.response_size, self._timeout)

        try:
            frame = parse_response(response, register.response_size)
        except ProtocolError as e:
            logger.debug("Error reading %s: %s", register.name, e)
            return Result.failure(e.kind, default, str(e))

        value = decode(frame.payload)
        logger.debug("Valid response: %s = %r", register.name, value)
        return Result.success(value)

    def _write(self, register: Register, value: int) -> Result[bool]:
        """Write one holding register and check the echoed frame."""
        try:
            request = build_write(register, value)
        except ValueError as e:
            return Result.failure(FailureKind.INVALID_ARGUMENT, False, str(e))

        logger.debug("Request %s := %d => %s", register.name, value, request.hex(" "))
        self._transport.write(request)
        response = self._transport.read(REQUEST_SIZE, self._timeout)

        try:
            check_echo(request, response)
        except ProtocolError as e:
            logger.debug("Error in setting of %s: %s", register.name, e)
            return Result.failure(e.kind, False, str(e))

        logger.debug("Successful setting of %s", register.name)
        return Result.success(True)

    @staticmethod
    def _rejected(name: str, value: int, allowed: str) -> Result[bool]:
        logger.debug("Invalid %s %d: must be %s", name, value, allowed)
        return Result.failure(
            FailureKind.INVALID_ARGUMENT, False, f"Invalid {name} {value}: must be {allowed}"
        )

    # ─── IDENTIFICATION ───────────────────────────────────────────────

    def get_serial_number(self) -> Result[str]:
        return self._read(InputRegister.SERIAL_NUMBER, decode_serial_number, "")

    def get_software_version(self) -> Result[str]:
        return self._read(InputRegister.FIRMWARE_VERSION, decode_software_version, "")

    def get_sensor_type_id(self) -> Result[int]:
        return self._read(InputRegister.SENSOR_TYPE_ID, decode_uint32, 0)

    def get_sensor_id(self) -> Result[int]:
        return self._read(InputRegister.SENSOR_ID, decode_uint32, 0)

    def get_memory_map_version(self) -> Result[int]:
        return self._read(InputRegister.MEMORY_MAP_VERSION, decode_int16, 0)

    # ─── MEASUREMENTS ─────────────────────────────────────────────────

    def get_co2(self) -> Result[int]:
        """CO2 concentration in ppm."""
        return self._read(InputRegister.CO2, decode_int16, 0)

    def get_temperature(self) -> Result[int]:
        """Detector temperature in whole degrees Celsius."""
        return self._read(InputRegister.TEMPERATURE, decode_temperature, 0)

    def get_pwm_output(self) -> Result[int]:
        return self._read(InputRegister.PWM_OUTPUT, decode_int16, 0)

    def get_meter_status(self) -> Result[MeterStatus]:
        return self._read(
            InputRegister.METER_STATUS,
            lambda payload: MeterStatus(decode_uint16(payload)),
            MeterStatus(),
        )

    def get_output_status(self) -> Result[OutputStatus]:
        return self._read(
            InputRegister.OUTPUT_STATUS,
            lambda payload: OutputStatus(decode_uint16(payload)),
            OutputStatus(),
        )

    # ─── CONFIGURATION ────────────────────────────────────────────────

    def get_abc_period(self) -> Result[int]:
        """Automatic baseline correction period in hours (0 = disabled)."""
        return self._read(HoldingRegister.ABC_PERIOD, decode_int16, 0)

    def set_abc_period(self, period: int) -> Result[bool]:
        """Set the ABC period: 4-4800 hours, or 0 to disable."""
        if period != ABC_PERIOD_DISABLED and not ABC_PERIOD_MIN <= period <= ABC_PERIOD_MAX:
            return self._rejected(
                "ABC period", period, f"{ABC_PERIOD_DISABLED} or {ABC_PERIOD_MIN}-{ABC_PERIOD_MAX}"
            )
        return self._write(HoldingRegister.ABC_PERIOD, period)

    def get_user_concentration(self) -> Result[int]:
        """Reference concentration for user calibration, in ppm."""
        return self._read(HoldingRegister.USER_CONCENTRATION, decode_int16, 0)

    def set_user_concentration(self, concentration: int) -> Result[bool]:
        if not USER_CONCENTRATION_MIN <= concentration <= USER_CONCENTRATION_MAX:
            return self._rejected(
                "user concentration",
                concentration,
                f"{USER_CONCENTRATION_MIN}-{USER_CONCENTRATION_MAX}",
            )
        return self._write(HoldingRegister.USER_CONCENTRATION, concentration)

    def get_user_acknowledgement(self) -> Result[int]:
        return self._read(HoldingRegister.USER_ACKNOWLEDGEMENT, decode_int16, 0)

    def set_user_acknowledgement(self, flag: int) -> Result[bool]:
        return self._write(HoldingRegister.USER_ACKNOWLEDGEMENT, flag)

    def set_user_special_command(self, command: int) -> Result[bool]:
        return self._write(HoldingRegister.USER_SPECIAL_COMMAND, command)

    # ─── CONVENIENCE ──────────────────────────────────────────────────

    def read_snapshot(self) -> Result[SensorSnapshot]:
        """Serial number, software version, CO2, and temperature.

        Four separate exchanges; the first failure aborts the rest.
        """
        snapshot = SensorSnapshot()
        steps = (
            ("serial_number", self.get_serial_number),
            ("software_version", self.get_software_version),
            ("co2", self.get_co2),
            ("temperature", self.get_temperature),
        )
        for field_name, query in steps:
            result = query()
            if not result.ok:
                return Result.failure(result.error, SensorSnapshot(), result.message)
            setattr(snapshot, field_name, result.value)
        return Result.success(snapshot)

    def start_user_calibration(self) -> Result[bool]:
        """Clear the completion flag, then start a user calibration.

        Set the reference gas with :meth:`set_user_concentration` first and
        poll :meth:`calibration_completed` afterwards.
        """
        cleared = self.set_user_acknowledgement(CLEAR_CALIBRATION_COMPLETION)
        if not cleared.ok:
            return cleared
        return self.set_user_special_command(START_USER_CALIBRATION)

    def calibration_completed(self) -> Result[bool]:
        flag = self.get_user_acknowledgement()
        if not flag.ok:
            return Result.failure(flag.error, False, flag.message)
        return Result.success(flag.value == CALIBRATION_COMPLETED)
