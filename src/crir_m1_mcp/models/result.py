"""Outcome of a single sensor operation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class FailureKind(str, Enum):
    """Why a sensor operation did not produce a value."""

    INVALID_ARGUMENT = "invalid_argument"
    TIMEOUT = "timeout"
    UNEXPECTED_LENGTH = "unexpected_length"
    CHECKSUM_MISMATCH = "checksum_mismatch"
    MALFORMED_RESPONSE = "malformed_response"
    ECHO_MISMATCH = "echo_mismatch"


@dataclass(frozen=True)
class Result(Generic[T]):
    """A value read from (or a write acknowledged by) the sensor.

    On failure ``value`` holds the attribute's zero/empty default and
    ``error`` says what went wrong, so a legitimate zero reading is never
    confused with a failed call.
    """

    value: T
    error: FailureKind | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, kind: FailureKind, default: T, message: str = "") -> Result[T]:
        return cls(value=default, error=kind, message=message)
