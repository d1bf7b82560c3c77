"""Receive buffer for the serial link.

Thread-safe FIFO filled by the reader thread and drained by blocking reads.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Optional

logger = logging.getLogger(__name__)


class ReceiveBuffer:
    """Thread-safe byte buffer with blocking, timeout-bounded reads."""

    def __init__(self, max_size: int = 256 * 1024):
        """Initialize buffer.

        Args:
            max_size: Maximum buffer size in bytes. If exceeded, oldest data is dropped.
        """
        self._max_size = max_size
        self._buffer = bytearray()
        self._cond = threading.Condition()
        self._closed = False
        self._overflow_count = 0

    def write(self, data: bytes) -> None:
        """Append received bytes and wake up waiting readers."""
        if not data:
            return

        with self._cond:
            self._buffer.extend(data)
            excess = len(self._buffer) - self._max_size
            if excess > 0:
                del self._buffer[:excess]
                self._overflow_count += 1
                if self._overflow_count % 100 == 1:
                    logger.warning(f"Receive buffer overflow: dropped {excess} bytes of old data")
            self._cond.notify_all()

    def read(self, size: int, timeout: Optional[float] = None) -> bytes:
        """Read exactly ``size`` bytes, or fewer if the timeout expires first.

        Args:
            size: Number of bytes wanted
            timeout: Seconds to wait, None to wait until closed

        Returns:
            Up to ``size`` bytes; a short result means timeout or close.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while len(self._buffer) < size and not self._closed:
                if not self._wait(deadline):
                    break
            data = bytes(self._buffer[:size])
            del self._buffer[:size]
            return data

    def read_until(self, terminator: bytes, timeout: Optional[float] = None) -> Optional[bytes]:
        """Read up to and including ``terminator``.

        Returns:
            The bytes before the terminator, or None if it did not arrive in time.
            Nothing is consumed on timeout.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while True:
                idx = self._buffer.find(terminator)
                if idx != -1:
                    line = bytes(self._buffer[:idx])
                    del self._buffer[:idx + len(terminator)]
                    return line
                if self._closed or not self._wait(deadline):
                    return None

    def _wait(self, deadline: Optional[float]) -> bool:
        if deadline is None:
            self._cond.wait()
            return True
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return False
        self._cond.wait(remaining)
        return True

    @property
    def size(self) -> int:
        """Current number of bytes in buffer."""
        with self._cond:
            return len(self._buffer)

    def clear(self) -> None:
        with self._cond:
            self._buffer.clear()

    def open(self) -> None:
        with self._cond:
            self._closed = False
            self._buffer.clear()

    def close(self) -> None:
        """Mark the buffer closed; pending and future reads return what is left."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()
