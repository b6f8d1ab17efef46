"""Serial connection to the CRIR M1 using pyserial.

The sensor talks Modbus RTU at a fixed 9600 baud, 8N1, no flow control.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import serial
from serial.tools import list_ports

from .base import DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

BAUDRATE = 9600
SERIAL_READ_TIMEOUT = 1.0  # per read() call, once data has started arriving
POLL_INTERVAL = 0.01


@dataclass
class PortInfo:
    """Settings of the open serial port."""

    port: str = ""
    baudrate: int = BAUDRATE
    description: str = ""


class SerialConnection:
    """Manages the serial link to one sensor.

    Usage::

        conn = SerialConnection("/dev/ttyUSB0")
        conn.open()
        conn.write(frame_bytes)
        response = conn.read(7, timeout=5)
        conn.close()
    """

    def __init__(
        self,
        port: str,
        baudrate: int = BAUDRATE,
        read_timeout: float = SERIAL_READ_TIMEOUT,
    ) -> None:
        self._port = port
        self._baudrate = baudrate
        self._read_timeout = read_timeout
        self._serial: serial.Serial | None = None
        self._port_info = PortInfo(port=port, baudrate=baudrate)

    @property
    def connected(self) -> bool:
        return self._serial is not None and self._serial.is_open

    @property
    def port_info(self) -> PortInfo:
        return self._port_info

    def __enter__(self) -> SerialConnection:
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def open(self) -> PortInfo:
        """Open the serial port.

        Raises:
            ConnectionError: If the port cannot be opened.
        """
        try:
            self._serial = serial.Serial(
                port=self._port,
                baudrate=self._baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self._read_timeout,
                xonxoff=False,
                rtscts=False,
            )
        except serial.SerialException as e:
            raise ConnectionError(
                f"Could not open serial port {self._port}: {e}"
            ) from e

        self._port_info = PortInfo(
            port=self._port,
            baudrate=self._baudrate,
            description=_describe_port(self._port),
        )
        logger.info("Connected to %s at %d baud", self._port, self._baudrate)
        return self._port_info

    def close(self) -> None:
        """Close the serial port."""
        if self._serial is None:
            return

        try:
            self._serial.close()
        except serial.SerialException as e:
            logger.warning("Error closing %s: %s", self._port, e)
        finally:
            self._serial = None
            logger.info("Disconnected from %s", self._port)

    def write(self, data: bytes) -> int:
        """Send a frame, discarding any stale input first.

        Raises:
            ConnectionError: If the port is not open.
        """
        ser = self._require_open()
        ser.reset_input_buffer()
        logger.debug("Bytes to send => %s (%d bytes)", data.hex(" "), len(data))
        written = ser.write(data)
        ser.flush()
        return written

    def read(self, max_bytes: int, timeout: float = DEFAULT_TIMEOUT) -> bytes:
        """Wait for a response and capture it with a single read.

        Args:
            max_bytes: Upper bound on bytes returned.
            timeout: Seconds to wait for the first byte. The single read that
                follows may block up to the port's ``read_timeout`` more
                while the frame finishes arriving.

        Returns:
            The captured bytes, or ``b""`` if nothing arrived in time.

        Raises:
            ConnectionError: If the port is not open.
        """
        ser = self._require_open()
        if max_bytes <= 0 or timeout <= 0:
            logger.debug("Invalid read parameters: max_bytes=%s timeout=%s", max_bytes, timeout)
            return b""

        start = time.monotonic()
        while time.monotonic() - start <= timeout:
            if ser.in_waiting:
                data = bytes(ser.read(max_bytes))
                logger.debug("Bytes received => %s (%d bytes)", data.hex(" "), len(data))
                return data
            time.sleep(POLL_INTERVAL)

        logger.debug("Bytes received => (0 bytes)")
        return b""

    def _require_open(self) -> serial.Serial:
        if self._serial is None or not self._serial.is_open:
            raise ConnectionError("Serial port is not open")
        return self._serial

    @staticmethod
    def list_ports() -> list[dict[str, str]]:
        """List serial ports present on this machine."""
        return [
            {"device": p.device, "description": p.description or ""}
            for p in list_ports.comports()
        ]


def _describe_port(port: str) -> str:
    for p in list_ports.comports():
        if p.device == port:
            return p.description or ""
    return ""
