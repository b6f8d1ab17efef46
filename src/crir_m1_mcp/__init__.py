"""Modbus RTU driver and MCP server for the CRIR M1 NDIR CO2 sensor."""

from .models.result import FailureKind, Result
from .models.sensor import MeterStatus, OutputStatus, SensorSnapshot
from .sensor import CRIRM1
from .transport.serial_connection import SerialConnection

__version__ = "0.1.0"
