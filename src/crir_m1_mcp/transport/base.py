"""The two capabilities the engine needs from a link to the sensor."""

from __future__ import annotations

from typing import Protocol

DEFAULT_TIMEOUT = 5  # seconds


class Transport(Protocol):
    """Write bytes, and read bytes with a deadline.

    ``read`` waits until data is available or ``timeout`` seconds pass. Once
    data is available it performs a single read of up to ``max_bytes`` and
    returns whatever that read produced; the read itself may block for the
    link's own per-call timeout while the rest of the frame arrives, but it
    is never repeated to reassemble a frame. A timeout with nothing available
    returns ``b""``.
    """

    def write(self, data: bytes) -> int:
        ...

    def read(self, max_bytes: int, timeout: float = DEFAULT_TIMEOUT) -> bytes:
        ...
