"""Data models for operation results, readings, and status registers."""

from .result import FailureKind, Result
from .sensor import MeterStatus, OutputStatus, SensorSnapshot
