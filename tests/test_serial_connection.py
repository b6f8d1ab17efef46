"""Tests for the pyserial transport, with the port mocked out."""

from __future__ import annotations

import time
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import serial

from crir_m1_mcp.transport.serial_connection import (
    BAUDRATE,
    SERIAL_READ_TIMEOUT,
    SerialConnection,
)

MODULE = "crir_m1_mcp.transport.serial_connection"


@pytest.fixture
def mock_serial():
    port = MagicMock()
    port.is_open = True
    port.in_waiting = 0
    with patch(f"{MODULE}.serial.Serial", return_value=port) as serial_cls, \
            patch(f"{MODULE}.list_ports.comports", return_value=[]):
        port.serial_cls = serial_cls
        yield port


@pytest.fixture
def conn(mock_serial):
    connection = SerialConnection("/dev/ttyUSB0")
    connection.open()
    return connection


def test_open_uses_fixed_line_settings(mock_serial, conn):
    mock_serial.serial_cls.assert_called_once()
    kwargs = mock_serial.serial_cls.call_args.kwargs
    assert kwargs["port"] == "/dev/ttyUSB0"
    assert kwargs["baudrate"] == BAUDRATE == 9600
    assert kwargs["bytesize"] == serial.EIGHTBITS
    assert kwargs["parity"] == serial.PARITY_NONE
    assert kwargs["stopbits"] == serial.STOPBITS_ONE
    assert kwargs["rtscts"] is False
    assert conn.connected
    assert conn.port_info.port == "/dev/ttyUSB0"


def test_single_read_is_bounded_by_read_timeout(mock_serial):
    with SerialConnection("/dev/ttyUSB0", read_timeout=0.25):
        assert mock_serial.serial_cls.call_args.kwargs["timeout"] == 0.25
    with SerialConnection("/dev/ttyUSB0"):
        assert mock_serial.serial_cls.call_args.kwargs["timeout"] == SERIAL_READ_TIMEOUT


def test_open_failure_raises_connection_error():
    with patch(f"{MODULE}.serial.Serial", side_effect=serial.SerialException("busy")):
        with pytest.raises(ConnectionError):
            SerialConnection("/dev/ttyUSB9").open()


def test_write_flushes_stale_input(mock_serial, conn):
    mock_serial.write.return_value = 8
    frame = bytes.fromhex("fe 04 00 04 00 01 64 04")
    assert conn.write(frame) == 8
    mock_serial.reset_input_buffer.assert_called_once()
    mock_serial.write.assert_called_once_with(frame)
    mock_serial.flush.assert_called_once()


def test_read_single_shot_when_data_ready(mock_serial, conn):
    """Once bytes are waiting, exactly one read call is made, even if short."""
    mock_serial.in_waiting = 3
    mock_serial.read.return_value = b"\xfe\x04\x02"
    assert conn.read(7, timeout=1) == b"\xfe\x04\x02"
    mock_serial.read.assert_called_once_with(7)


def test_read_timeout_returns_nothing_within_bound(mock_serial, conn):
    start = time.monotonic()
    assert conn.read(7, timeout=1) == b""
    elapsed = time.monotonic() - start
    assert elapsed < 1.5
    mock_serial.read.assert_not_called()


def test_read_invalid_parameters(mock_serial, conn):
    mock_serial.in_waiting = 7
    assert conn.read(0, timeout=1) == b""
    assert conn.read(7, timeout=0) == b""
    mock_serial.read.assert_not_called()


def test_io_requires_open_port():
    conn = SerialConnection("/dev/ttyUSB0")
    assert not conn.connected
    with pytest.raises(ConnectionError):
        conn.write(b"\x00")
    with pytest.raises(ConnectionError):
        conn.read(7)


def test_close(mock_serial, conn):
    conn.close()
    mock_serial.close.assert_called_once()
    assert not conn.connected
    conn.close()  # second close is a no-op
    mock_serial.close.assert_called_once()


def test_context_manager(mock_serial):
    with SerialConnection("/dev/ttyUSB0") as conn:
        assert conn.connected
    mock_serial.close.assert_called_once()


def test_list_ports():
    ports = [SimpleNamespace(device="/dev/ttyUSB0", description="CP2102 USB to UART")]
    with patch(f"{MODULE}.list_ports.comports", return_value=ports):
        assert SerialConnection.list_ports() == [
            {"device": "/dev/ttyUSB0", "description": "CP2102 USB to UART"}
        ]
