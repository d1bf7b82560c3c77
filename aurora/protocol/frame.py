"""Decoder for the binary tracking reply (BX).

Wire layout, all little-endian:

    start_sequence u16 | reply_length u16 | header_crc u16 | handle_count u8
    per handle:
        id u8 | sensor_status u8
        if VALID:            q0 qx qy qz tx ty tz error   (8 x f32)
        if VALID or MISSING: port_status u32 | frame_number u32
    system_status u16 | crc u16

CRCs are read but not validated.
"""
from __future__ import annotations

import io
import logging
import struct
import time
from typing import TYPE_CHECKING, Callable, List, Optional, Tuple

from ..errors import ProtocolFormatError, ProtocolTimeout, TruncatedFrame
from ..models import HandleReading, SensorFrame, SensorStatus

if TYPE_CHECKING:
    from ..device.registry import PortHandleRegistry

logger = logging.getLogger(__name__)

HEADER = struct.Struct('<HHH')
HANDLE_COUNT = struct.Struct('<B')
HANDLE_HEADER = struct.Struct('<BB')
POSE = struct.Struct('<8f')
HANDLE_TRAILER = struct.Struct('<II')
FOOTER = struct.Struct('<HH')


class FrameReader:
    """Reads fixed-size fields and tracks how much of the frame arrived."""

    def __init__(self, read: Callable[[int], bytes]):
        self._read = read
        self.consumed = 0

    def take(self, fmt: struct.Struct) -> Tuple:
        return fmt.unpack(self.take_bytes(fmt.size))

    def take_bytes(self, size: int) -> bytes:
        data = self._read(size) if size else b''
        if len(data) < size:
            received = self.consumed + len(data)
            if received == 0:
                raise ProtocolTimeout("No binary reply received")
            raise TruncatedFrame(
                f"Frame ended after {received} bytes, expected at least {self.consumed + size}",
                expected=self.consumed + size,
                received=received,
            )
        self.consumed += size
        return data


class FrameDecoder:
    """Decodes BX replies and applies them to a port handle registry.

    Each handle entry is applied to the registry as soon as it is decoded, so
    if the frame is cut short the entries before the cut stay applied.

    Args:
        clock: Source of the host receive timestamp
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock

    def decode(self, read: Callable[[int], bytes],
               registry: Optional[PortHandleRegistry] = None) -> SensorFrame:
        """Decode one frame from a byte source.

        Args:
            read: ``read(n)`` returning up to n bytes, short on timeout/close
            registry: Registry to update, or None to decode only

        Returns:
            The decoded SensorFrame

        Raises:
            ProtocolTimeout: if no byte of the frame arrived
            TruncatedFrame: if the frame ended early
            ProtocolFormatError: on an unknown sensor status code
        """
        reader = FrameReader(read)

        start_sequence, reply_length, header_crc = reader.take(HEADER)
        timestamp = self._clock()
        (handle_count,) = reader.take(HANDLE_COUNT)

        readings: List[HandleReading] = []
        for _ in range(handle_count):
            reading = self._decode_handle(reader)
            readings.append(reading)
            if registry is not None and not registry.apply(reading):
                logger.debug(f"Ignoring reading for unknown port handle {reading.id}")

        system_status, crc = reader.take(FOOTER)

        return SensorFrame(
            timestamp=timestamp,
            start_sequence=start_sequence,
            reply_length=reply_length,
            header_crc=header_crc,
            readings=tuple(readings),
            system_status=system_status,
            crc=crc,
        )

    def decode_bytes(self, data: bytes,
                     registry: Optional[PortHandleRegistry] = None) -> SensorFrame:
        """Decode one frame from an in-memory buffer."""
        return self.decode(io.BytesIO(data).read, registry)

    @staticmethod
    def _decode_handle(reader: FrameReader) -> HandleReading:
        raw_id, raw_status = reader.take(HANDLE_HEADER)
        handle_id = f"{raw_id:02X}"
        try:
            sensor_status = SensorStatus(f"{raw_status:02X}")
        except ValueError:
            raise ProtocolFormatError(
                f"Unknown sensor status 0x{raw_status:02X} for port handle {handle_id}"
            ) from None

        if sensor_status is SensorStatus.DISABLED:
            return HandleReading(id=handle_id, sensor_status=sensor_status)

        rotation = translation = error = None
        if sensor_status is SensorStatus.VALID:
            q0, qx, qy, qz, tx, ty, tz, error = reader.take(POSE)
            rotation = (q0, qx, qy, qz)
            translation = (tx, ty, tz)

        port_status, frame_number = reader.take(HANDLE_TRAILER)

        return HandleReading(
            id=handle_id,
            sensor_status=sensor_status,
            rotation=rotation,
            translation=translation,
            error=error,
            port_status=f"{port_status:08X}",
            frame_number=frame_number,
        )
