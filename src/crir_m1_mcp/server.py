"""MCP server entry point for the CRIR M1 CO2 sensor.

Exposes tools, resources, and prompts via the Model Context Protocol
using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from typing import Any, Callable

from mcp.server.fastmcp import FastMCP

from .models.result import FailureKind, Result
from .protocol.commands import REGISTER_MAP
from .sensor import (
    ABC_PERIOD_MAX,
    ABC_PERIOD_MIN,
    USER_CONCENTRATION_MAX,
    USER_CONCENTRATION_MIN,
    CRIRM1,
)
from .transport.base import DEFAULT_TIMEOUT
from .transport.serial_connection import SerialConnection

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "crir-m1",
    instructions="MCP server for the CRIR M1 NDIR CO2 sensor (Modbus RTU over serial)",
)

# Global connection state. The sensor engine is not reentrant, so every
# exchange goes through _lock.
_connection: SerialConnection | None = None
_sensor: CRIRM1 | None = None
_lock = threading.Lock()


def _get_sensor() -> CRIRM1:
    """Get the driver for the open connection, raising if not connected."""
    if _sensor is None or _connection is None or not _connection.connected:
        raise RuntimeError(
            "Not connected to sensor. Use the 'connect' tool first."
        )
    return _sensor


def _result_dict(result: Result, key: str) -> dict[str, Any]:
    """Render a Result as a tool response."""
    if not result.ok:
        return {"error": result.error.value, "message": result.message}
    value = result.value
    if hasattr(value, "to_dict"):
        return {key: value.to_dict()}
    return {key: value}


def _query(operation: Callable[[CRIRM1], Result], key: str) -> dict[str, Any]:
    """Run one sensor operation under the lock and render its result."""
    with _lock:
        result = operation(_get_sensor())
    return _result_dict(result, key)


def _hex_id(result: Result, key: str) -> dict[str, Any]:
    response = _result_dict(result, key)
    if result.ok:
        response["hex"] = f"0x{result.value:08X}"
    return response


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def list_serial_ports() -> dict[str, Any]:
    """List serial ports available for connecting to the sensor."""
    return {"ports": SerialConnection.list_ports()}


@mcp.tool()
def connect(port: str, timeout: float = DEFAULT_TIMEOUT) -> dict[str, Any]:
    """Open the serial port and identify the CRIR M1.

    Args:
        port: Serial device, e.g. /dev/ttyUSB0 or COM3.
        timeout: Seconds to wait for each response (default 5).
    """
    global _connection, _sensor
    if timeout <= 0:
        return {
            "error": FailureKind.INVALID_ARGUMENT.value,
            "message": f"Timeout must be positive, got {timeout}",
        }
    with _lock:
        if _connection is not None and _connection.connected:
            return {
                "connected": True,
                "message": "Already connected",
                "port": _connection.port_info.port,
                "timeout": _sensor.timeout,
            }

        connection = SerialConnection(port)
        info = connection.open()
        _connection = connection
        _sensor = CRIRM1(connection, timeout=timeout)

        result: dict[str, Any] = {
            "connected": True,
            "port": info.port,
            "baudrate": info.baudrate,
            "description": info.description,
            "timeout": _sensor.timeout,
        }

        serial_number = _sensor.get_serial_number()
        if serial_number.ok:
            result["serial_number"] = serial_number.value
        version = _sensor.get_software_version()
        if version.ok:
            result["software_version"] = version.value

    return result


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the serial connection to the sensor."""
    global _connection, _sensor
    with _lock:
        if _connection is not None:
            _connection.close()
        _connection = None
        _sensor = None
    return {"disconnected": True}


@mcp.tool()
def get_device_info() -> dict[str, Any]:
    """Read every identification register of the sensor."""
    with _lock:
        sensor = _get_sensor()
        results = {
            "serial_number": sensor.get_serial_number(),
            "software_version": sensor.get_software_version(),
            "sensor_type_id": sensor.get_sensor_type_id(),
            "sensor_id": sensor.get_sensor_id(),
            "memory_map_version": sensor.get_memory_map_version(),
        }

    info: dict[str, Any] = {}
    errors: dict[str, str] = {}
    for name, result in results.items():
        if result.ok:
            info[name] = result.value
        else:
            errors[name] = result.error.value
    if errors:
        info["errors"] = errors
    return info


# ─── MEASUREMENT TOOLS ───────────────────────────────────────────────

@mcp.tool()
def get_co2() -> dict[str, Any]:
    """Read the CO2 concentration in ppm."""
    return _query(CRIRM1.get_co2, "co2_ppm")


@mcp.tool()
def get_temperature() -> dict[str, Any]:
    """Read the detector temperature in degrees Celsius."""
    return _query(CRIRM1.get_temperature, "temperature_c")


@mcp.tool()
def get_snapshot() -> dict[str, Any]:
    """Read serial number, software version, CO2, and temperature."""
    return _query(CRIRM1.read_snapshot, "snapshot")


@mcp.tool()
def get_meter_status() -> dict[str, Any]:
    """Read the meter status flags (out of range, memory error)."""
    return _query(CRIRM1.get_meter_status, "meter_status")


@mcp.tool()
def get_output_status() -> dict[str, Any]:
    """Read the output status flags (alarm, PWM)."""
    return _query(CRIRM1.get_output_status, "output_status")


@mcp.tool()
def get_pwm_output() -> dict[str, Any]:
    """Read the PWM output value."""
    return _query(CRIRM1.get_pwm_output, "pwm_output")


# ─── IDENTIFICATION TOOLS ────────────────────────────────────────────

@mcp.tool()
def get_serial_number() -> dict[str, Any]:
    """Read the sensor serial number."""
    return _query(CRIRM1.get_serial_number, "serial_number")


@mcp.tool()
def get_software_version() -> dict[str, Any]:
    """Read the firmware version as major.minor."""
    return _query(CRIRM1.get_software_version, "software_version")


@mcp.tool()
def get_sensor_type_id() -> dict[str, Any]:
    """Read the 32-bit sensor type ID."""
    with _lock:
        result = _get_sensor().get_sensor_type_id()
    return _hex_id(result, "sensor_type_id")


@mcp.tool()
def get_sensor_id() -> dict[str, Any]:
    """Read the 32-bit sensor ID."""
    with _lock:
        result = _get_sensor().get_sensor_id()
    return _hex_id(result, "sensor_id")


@mcp.tool()
def get_memory_map_version() -> dict[str, Any]:
    """Read the memory map version."""
    return _query(CRIRM1.get_memory_map_version, "memory_map_version")


# ─── CONFIGURATION TOOLS ─────────────────────────────────────────────

@mcp.tool()
def get_abc_period() -> dict[str, Any]:
    """Read the automatic baseline correction period in hours (0 = disabled)."""
    return _query(CRIRM1.get_abc_period, "abc_period_hours")


@mcp.tool()
def set_abc_period(hours: int) -> dict[str, Any]:
    """Set the automatic baseline correction period.

    Args:
        hours: 4-4800 hours, or 0 to disable ABC.
    """
    return _query(lambda sensor: sensor.set_abc_period(hours), "success")


@mcp.tool()
def get_user_concentration() -> dict[str, Any]:
    """Read the user calibration reference concentration in ppm."""
    return _query(CRIRM1.get_user_concentration, "user_concentration_ppm")


@mcp.tool()
def set_user_concentration(ppm: int) -> dict[str, Any]:
    """Set the user calibration reference concentration.

    Args:
        ppm: Reference gas concentration, 400-2000 ppm.
    """
    return _query(lambda sensor: sensor.set_user_concentration(ppm), "success")


@mcp.tool()
def get_user_acknowledgement() -> dict[str, Any]:
    """Read the user acknowledgement register (calibration completion flag)."""
    return _query(CRIRM1.get_user_acknowledgement, "user_acknowledgement")


@mcp.tool()
def set_user_acknowledgement(flag: int) -> dict[str, Any]:
    """Write the user acknowledgement register.

    Args:
        flag: 16-bit value; 0 clears the calibration completion flag.
    """
    return _query(lambda sensor: sensor.set_user_acknowledgement(flag), "success")


@mcp.tool()
def set_user_special_command(command: int) -> dict[str, Any]:
    """Write the user special command register.

    Args:
        command: 16-bit command word; 0x7C01 (31745) starts user calibration.
    """
    return _query(lambda sensor: sensor.set_user_special_command(command), "success")


@mcp.tool()
def start_calibration(concentration_ppm: int | None = None) -> dict[str, Any]:
    """Start a user calibration against a known reference gas.

    Args:
        concentration_ppm: If given, written as the reference concentration
            (400-2000 ppm) before calibration starts.
    """
    with _lock:
        sensor = _get_sensor()
        if concentration_ppm is not None:
            written = sensor.set_user_concentration(concentration_ppm)
            if not written.ok:
                return _result_dict(written, "success")
        started = sensor.start_user_calibration()
    return _result_dict(started, "started")


@mcp.tool()
def get_calibration_status() -> dict[str, Any]:
    """Check whether the last user calibration has completed."""
    return _query(CRIRM1.calibration_completed, "completed")


# ─── RESOURCES ───────────────────────────────────────────────────────

@mcp.resource("crir-m1://sensor/snapshot")
def resource_snapshot() -> str:
    """Current identification and reading as JSON."""
    return json.dumps(get_snapshot(), indent=2)


@mcp.resource("crir-m1://sensor/status")
def resource_status() -> str:
    """Meter and output status flags as JSON."""
    status = {
        "meter_status": get_meter_status(),
        "output_status": get_output_status(),
    }
    return json.dumps(status, indent=2)


@mcp.resource("crir-m1://sensor/registers")
def resource_registers() -> str:
    """The supported register map and write limits."""
    registers = {
        "registers": [register.to_dict() for register in REGISTER_MAP],
        "limits": {
            "abc_period_hours": {"disable": 0, "min": ABC_PERIOD_MIN, "max": ABC_PERIOD_MAX},
            "user_concentration_ppm": {
                "min": USER_CONCENTRATION_MIN,
                "max": USER_CONCENTRATION_MAX,
            },
        },
    }
    return json.dumps(registers, indent=2)


# ─── PROMPTS ─────────────────────────────────────────────────────────

@mcp.prompt()
def diagnose_sensor() -> str:
    """Walk through a health check of the connected sensor."""
    return """Check the health of the connected CRIR M1 CO2 sensor.

Steps:
- Use get_device_info to confirm the sensor answers and note its firmware
- Use get_meter_status; out_of_range or memory_error flags indicate a fault
- Read get_co2 and get_temperature a few times and look for implausible jumps
- Read get_abc_period and explain whether automatic baseline correction is on

Timeouts usually mean wiring or port problems; checksum or length errors
usually mean noise on the line. Report findings and suggest next steps."""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=os.environ.get("CRIR_M1_LOG_LEVEL", "INFO").upper())
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
