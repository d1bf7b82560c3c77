"""Serial link to the Aurora SCU using pyserial.

A background reader thread moves inbound bytes into a ReceiveBuffer.
Replies are then read with blocking, timeout-bounded calls, and the
receive-threshold callback used for streaming is fired from the reader
thread.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

import serial

from ..constants import DEFAULT_BAUD_RATE, TERMINATOR
from ..errors import TransportError
from .base import Link
from .buffer import ReceiveBuffer

logger = logging.getLogger(__name__)

REPLY_TIMEOUT = 10.0  # seconds to wait for a reply
READ_TIMEOUT = 0.05  # reader thread poll interval
WRITE_TIMEOUT = 2.0
RECEIVE_BUFFER_SIZE = 1024 * 1024


class SerialLink(Link):
    """pyserial implementation of the Link interface.

    Responsibilities:
    - Open/close the port with fixed 8-N-1 framing and no hardware handshake
    - Forward inbound bytes into the receive buffer
    - Expose break, RTS/DTR and baud rate control
    - Fire the receive-threshold callback

    Example:
        >>> link = SerialLink("/dev/ttyUSB0")
        >>> link.open()
        >>> link.write_line(b"APIREV ")
        >>> link.read_line()
        b'D.001.00558DE'
        >>> link.close()
    """

    def __init__(self,
                 port: str,
                 baudrate: int = DEFAULT_BAUD_RATE,
                 timeout: float = REPLY_TIMEOUT,
                 write_timeout: float = WRITE_TIMEOUT):
        """Initialize serial link.

        Args:
            port: Serial port path (e.g. '/dev/ttyUSB0', 'COM6')
            baudrate: Initial baud rate
            timeout: Default seconds to wait in read/read_line
            write_timeout: Seconds before a blocked write fails
        """
        self._port = port
        self._baudrate = baudrate
        self._timeout = timeout
        self._write_timeout = write_timeout

        self._serial: Optional[serial.Serial] = None
        self._buffer = ReceiveBuffer(max_size=RECEIVE_BUFFER_SIZE)

        # Threading
        self._active = False
        self._reader_thread: Optional[threading.Thread] = None

        # Receive threshold callback; RLock so it may be cleared from inside itself
        self._callback_lock = threading.RLock()
        self._threshold = 0
        self._receive_callback: Optional[Callable[[], None]] = None

    @property
    def port(self) -> str:
        return self._port

    @property
    def timeout(self) -> float:
        return self._timeout

    def open(self) -> None:
        if self.is_open():
            return

        try:
            self._serial = serial.Serial(
                port=self._port,
                baudrate=self._baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                rtscts=False,
                timeout=READ_TIMEOUT,
                write_timeout=self._write_timeout,
            )
            self._serial.reset_input_buffer()
            self._serial.reset_output_buffer()
        except serial.SerialException as e:
            self._serial = None
            raise TransportError(f"Failed to open {self._port}: {e}") from e

        logger.info(f"Opened {self._port} @ {self._baudrate} baud")

        self._buffer.open()
        self._active = True
        self._start_reader_thread()

    def close(self) -> None:
        if self._serial is None:
            return

        self._active = False
        if self._reader_thread and self._reader_thread.is_alive() \
                and self._reader_thread is not threading.current_thread():
            self._reader_thread.join(timeout=1.0)
        self._reader_thread = None

        try:
            self._serial.close()
        except serial.SerialException as e:
            logger.error(f"Error closing serial port: {e}")
        finally:
            self._serial = None
            self._buffer.close()

        logger.info(f"Closed {self._port}")

    def is_open(self) -> bool:
        return self._serial is not None and self._active

    def write(self, data: bytes) -> None:
        if not self.is_open():
            raise TransportError(f"Cannot write, {self._port} is not open")

        try:
            self._serial.write(data)
        except serial.SerialTimeoutException as e:
            raise TransportError(f"Write timed out on {self._port}") from e
        except serial.SerialException as e:
            self._handle_error(e)
            raise TransportError(f"Write failed on {self._port}: {e}") from e
        logger.debug(f"TX {data!r}")

    def read(self, size: int, timeout: Optional[float] = None) -> bytes:
        return self._buffer.read(size, self._timeout if timeout is None else timeout)

    def read_line(self, timeout: Optional[float] = None) -> Optional[bytes]:
        line = self._buffer.read_until(TERMINATOR, self._timeout if timeout is None else timeout)
        if line is not None:
            logger.debug(f"RX {line!r}")
        return line

    @property
    def in_waiting(self) -> int:
        return self._buffer.size

    def reset_input_buffer(self) -> None:
        if self._serial is not None:
            try:
                self._serial.reset_input_buffer()
            except serial.SerialException as e:
                logger.warning(f"Failed to reset input buffer: {e}")
        self._buffer.clear()

    def flush(self) -> None:
        if self._serial is not None:
            self._serial.flush()

    def send_break(self, duration: float) -> None:
        if not self.is_open():
            raise TransportError(f"Cannot send break, {self._port} is not open")
        self._serial.send_break(duration=duration)

    def set_rts(self, state: bool) -> None:
        if self._serial is not None:
            self._serial.rts = state

    def set_dtr(self, state: bool) -> None:
        if self._serial is not None:
            self._serial.dtr = state

    @property
    def baudrate(self) -> int:
        return self._baudrate

    @baudrate.setter
    def baudrate(self, value: int) -> None:
        self._baudrate = value
        if self._serial is not None:
            self._serial.baudrate = value
        logger.debug(f"Baud rate set to {value}")

    def set_receive_callback(self, threshold: int, callback: Callable[[], None]) -> None:
        with self._callback_lock:
            self._threshold = threshold
            self._receive_callback = callback
        # Bytes may already be waiting
        self._check_threshold()

    def clear_receive_callback(self) -> None:
        # Waits for an in-flight invocation on the reader thread to finish
        with self._callback_lock:
            self._receive_callback = None
            self._threshold = 0

    # Internal methods

    def _start_reader_thread(self) -> None:
        self._reader_thread = threading.Thread(
            target=self._reader_loop,
            daemon=True,
            name="AuroraReader"
        )
        self._reader_thread.start()

    def _reader_loop(self) -> None:
        """Read raw bytes from the port into the receive buffer."""
        logger.debug("Reader thread started")

        port = self._serial
        while self._active and self._serial is port:
            try:
                chunk = port.read(port.in_waiting or 1)
            except serial.SerialException as e:
                if self._active:
                    logger.error(f"Serial read error: {e}")
                    self._handle_error(e)
                break

            if chunk:
                self._buffer.write(chunk)
                self._check_threshold()

        logger.debug("Reader thread exiting")

    def _check_threshold(self) -> None:
        with self._callback_lock:
            callback = self._receive_callback
            if callback is None or self._buffer.size < self._threshold:
                return
            try:
                callback()
            except Exception as e:
                logger.error(f"Error in receive callback: {e}")

    def _handle_error(self, error: Exception) -> None:
        """Close resources after a fatal error (e.g. device unplugged).

        Does not join the reader thread, it may be the caller.
        """
        logger.warning(f"Handling link error: {error}")
        self._active = False

        if self._serial:
            try:
                self._serial.close()
            except serial.SerialException:
                pass
            self._serial = None
        self._buffer.close()
