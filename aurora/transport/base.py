"""Abstract base class for the serial link to the Aurora SCU.

The driver core only talks to a Link. The physical port name, device
enumeration and OS specifics stay behind the implementation.

Key properties:
- Byte oriented, CR terminated lines for ASCII replies
- Fixed 8-N-1 framing, configurable baud rate
- Break signal and RTS/DTR control lines for reset and handshake
- Receive-threshold callback for streaming
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..constants import TERMINATOR


class Link(ABC):
    """Byte transport to the SCU.

    Reads never raise on timeout: they return short (``read``) or None
    (``read_line``) and the caller decides what that means. Writes raise
    TransportError when the link is unusable.
    """

    @abstractmethod
    def open(self) -> None:
        """Open the link at the current baud rate.

        Raises:
            TransportError: if the port cannot be opened
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the link. Safe to call multiple times."""
        pass

    @abstractmethod
    def is_open(self) -> bool:
        pass

    @abstractmethod
    def write(self, data: bytes) -> None:
        """Send raw bytes.

        Raises:
            TransportError: if the link is closed or the write fails
        """
        pass

    @abstractmethod
    def read(self, size: int, timeout: Optional[float] = None) -> bytes:
        """Read ``size`` bytes; fewer are returned on timeout or close."""
        pass

    @abstractmethod
    def read_line(self, timeout: Optional[float] = None) -> Optional[bytes]:
        """Read one CR terminated line without the terminator, None on timeout."""
        pass

    @property
    @abstractmethod
    def in_waiting(self) -> int:
        """Number of received bytes not yet read."""
        pass

    @abstractmethod
    def reset_input_buffer(self) -> None:
        """Discard all received bytes not yet read."""
        pass

    @abstractmethod
    def flush(self) -> None:
        """Block until all written bytes are transmitted."""
        pass

    @abstractmethod
    def send_break(self, duration: float) -> None:
        """Hold the line in break condition for ``duration`` seconds."""
        pass

    @abstractmethod
    def set_rts(self, state: bool) -> None:
        pass

    @abstractmethod
    def set_dtr(self, state: bool) -> None:
        pass

    @property
    @abstractmethod
    def baudrate(self) -> int:
        pass

    @baudrate.setter
    @abstractmethod
    def baudrate(self, value: int) -> None:
        pass

    @abstractmethod
    def set_receive_callback(self, threshold: int, callback: Callable[[], None]) -> None:
        """Call ``callback`` whenever at least ``threshold`` bytes are buffered.

        The callback runs on the thread that services inbound data and must
        not block.
        """
        pass

    @abstractmethod
    def clear_receive_callback(self) -> None:
        """Remove the receive callback. No invocation starts after this returns."""
        pass

    def write_line(self, line: bytes) -> None:
        """Write a line, appending the CR terminator if missing."""
        if not line.endswith(TERMINATOR):
            line += TERMINATOR
        self.write(line)

    def __enter__(self) -> Link:
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
