"""Command channel: one request line out, one reply back.

Also owns the two link-level procedures the SCU needs before normal
operation: the break-based hardware reset and baud rate negotiation.
"""
from __future__ import annotations

import logging
import struct
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from ..constants import (
    BAUD_RATE_CODES,
    BAUD_RATE_PREFERENCE,
    DATA_BITS_8,
    HANDSHAKE_OFF,
    PARITY_NONE,
    STOP_BITS_1,
)
from ..errors import CommandFormatNotImplemented, ProtocolTimeout, TransportError
from ..models import CommandFormat
from ..protocol.commands import CommandSerializer, Param
from ..protocol.frame import FrameReader
from ..protocol.replies import BinaryReply, Reply
from ..transport.base import Link

logger = logging.getLogger(__name__)

BREAK_DURATION = 0.01  # seconds per break during reset
BREAK_COUNT = 2

BINARY_HEADER = struct.Struct('<HHH')
BINARY_CRC = struct.Struct('<H')


class CommandChannel:
    """Line-based request/reply exchange with the SCU.

    A transaction (write command, read its reply) holds the channel lock, so
    only one exchange is in flight at a time.

    Args:
        link: Transport to the SCU
        command_format: Only CommandFormat.SIMPLE is supported
        timeout: Seconds to wait for a reply, None for the link default
    """

    def __init__(self,
                 link: Link,
                 command_format: CommandFormat = CommandFormat.SIMPLE,
                 timeout: Optional[float] = None):
        self._link = link
        self._timeout = timeout
        self._lock = threading.RLock()
        self._command_format = CommandFormat.SIMPLE
        self.command_format = command_format

    @property
    def link(self) -> Link:
        return self._link

    @property
    def command_format(self) -> CommandFormat:
        return self._command_format

    @command_format.setter
    def command_format(self, value: CommandFormat) -> None:
        if value is not CommandFormat.SIMPLE:
            raise CommandFormatNotImplemented("CRC framed command format is not implemented")
        self._command_format = value

    @contextmanager
    def transaction(self) -> Iterator[CommandChannel]:
        """Hold the channel for a multi-step exchange (e.g. BX + frame read)."""
        with self._lock:
            yield self

    def send(self, command: str, *params: Param) -> None:
        """Send one command line without waiting for a reply.

        Raises:
            TransportError: if the link is closed or the write fails
        """
        data = CommandSerializer.serialize(command, *params, command_format=self._command_format)
        with self._lock:
            if not self._link.is_open():
                raise TransportError(f"Cannot send {command}, link is closed")
            self._link.write(data)
        logger.debug(f"Sent {data!r}")

    def send_and_receive(self, command: str, *params: Param) -> Reply:
        """Send one command and read its one-line reply.

        Raises:
            TransportError: if the link is closed or fails
            ProtocolTimeout: if no complete line arrives in time
        """
        with self._lock:
            self.send(command, *params)
            line = self._link.read_line(self._timeout)
            if line is None:
                if not self._link.is_open():
                    raise TransportError(f"Link closed while waiting for {command} reply")
                raise ProtocolTimeout(f"No reply to {command}")
        reply = Reply.from_bytes(line)
        logger.debug(f"{command} -> {reply.text!r}")
        return reply

    def send_and_receive_binary(self, command: str, *params: Param) -> BinaryReply:
        """Send one command and read a length-prefixed binary reply.

        Raises:
            TransportError: if the link is closed or fails
            ProtocolTimeout: if nothing arrives in time
            TruncatedFrame: if the reply ends early
        """
        with self._lock:
            self.send(command, *params)
            reader = FrameReader(self.read)
            start_sequence, reply_length, header_crc = reader.take(BINARY_HEADER)
            body = reader.take_bytes(reply_length)
            (crc,) = reader.take(BINARY_CRC)

        return BinaryReply(
            start_sequence=start_sequence,
            reply_length=reply_length,
            header_crc=header_crc,
            body=body,
            crc=crc,
        )

    def read(self, size: int) -> bytes:
        """Read raw reply bytes with the channel timeout; short on timeout."""
        return self._link.read(size, self._timeout)

    def negotiate_baud_rate(self) -> Optional[int]:
        """Raise the link to the fastest rate the SCU accepts.

        Candidates are tried in BAUD_RATE_PREFERENCE order with 8 data bits,
        no parity, 1 stop bit and no hardware handshake. The first reply
        starting with OKAY wins: the local link is switched to that rate and
        RTS/DTR are asserted. Input is flushed before each candidate.

        Returns:
            The negotiated rate, or None if every candidate was rejected
        """
        for baud_rate in BAUD_RATE_PREFERENCE:
            code = BAUD_RATE_CODES[baud_rate]
            # A late reply to the previous candidate must not answer this one
            self._link.reset_input_buffer()
            try:
                reply = self.send_and_receive(
                    "COMM", code, DATA_BITS_8, PARITY_NONE, STOP_BITS_1, HANDSHAKE_OFF
                )
            except ProtocolTimeout:
                logger.debug(f"No reply to COMM for {baud_rate} baud")
                continue

            if reply.ok:
                self._link.baudrate = baud_rate
                self._link.set_rts(True)
                self._link.set_dtr(True)
                logger.info(f"Negotiated {baud_rate} baud")
                return baud_rate

            logger.debug(f"SCU rejected {baud_rate} baud: {reply.text!r}")

        logger.error("SCU rejected every baud rate candidate")
        return None

    def reset_device(self) -> None:
        """Reset the SCU with a break sequence: open, break twice, close.

        The link is left closed; reopen it at the default rate afterwards.

        Raises:
            TransportError: if the port cannot be opened
        """
        with self._lock:
            self._link.open()
            try:
                for _ in range(BREAK_COUNT):
                    self._link.send_break(BREAK_DURATION)
            finally:
                self._link.close()
        logger.info("Sent reset break sequence")
