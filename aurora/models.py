"""Data models for Aurora tracking state.

PortHandle is the mutable per-connector record kept by the registry. The
frame and sample types are frozen dataclasses handed out to callers, so they
can be shared across threads without copying.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

from .constants import (
    DEFAULT_BAUD_RATE,
    PORT_STATUS_ENABLED,
    PORT_STATUS_INITIALIZED,
    PORT_STATUS_OCCUPIED,
)

Vector3 = Tuple[float, float, float]
Quaternion = Tuple[float, float, float, float]

IDENTITY_ROTATION: Quaternion = (1.0, 0.0, 0.0, 0.0)
ZERO_TRANSLATION: Vector3 = (0.0, 0.0, 0.0)

# Error reported by the single-sensor helpers when the sensor is not seen
MISSING_SENSOR_ERROR = 99.0


class SensorStatus(Enum):
    """Per-sample handle status carried in a BX frame."""
    VALID = "01"
    MISSING = "02"
    DISABLED = "04"


class PortHandleStatus(Enum):
    """PHSR reply options: which port handles to report."""
    ALL = "00"
    TO_BE_FREED = "01"
    OCCUPIED = "02"
    OCCUPIED_AND_INITIALIZED = "03"
    ENABLED = "04"


class TrackingPriority(Enum):
    """Tool tracking priority used when enabling a port handle."""
    STATIC = "S"
    DYNAMIC = "D"
    BUTTON = "B"


class DeviceMode(Enum):
    UNINITIALIZED = "uninitialized"
    SETUP = "setup"
    TRACKING = "tracking"


class CommandFormat(Enum):
    """Command framing.

    SIMPLE sends ``COMMAND params`` with no checksum. CRC_FRAMED would use
    ``COMMAND:params<CRC16>`` and is not supported.
    """
    SIMPLE = "simple"
    CRC_FRAMED = "crc"


@dataclass
class PortHandle:
    """One physical sensor connector as seen by the SCU.

    Attributes:
        id: Two hex digit handle id assigned by the SCU
        status: Three hex digit status from the last PHSR query
        sensor_status: Status of the last tracked sample, None before tracking
        translation: Position (x, y, z) in mm, valid only for VALID samples
        rotation: Unit quaternion (w, x, y, z), valid only for VALID samples
        error: RMS fit error of the last valid sample
        port_status: Eight hex digit handle status from the last sample
        frame_number: Device frame counter of the last sample
    """
    id: str
    status: str
    sensor_status: Optional[SensorStatus] = None
    translation: Vector3 = ZERO_TRANSLATION
    rotation: Quaternion = IDENTITY_ROTATION
    error: float = 0.0
    port_status: Optional[str] = None
    frame_number: int = 0

    @property
    def status_bits(self) -> int:
        return int(self.status, 16)

    @property
    def occupied(self) -> bool:
        return bool(self.status_bits & PORT_STATUS_OCCUPIED)

    @property
    def initialized(self) -> bool:
        return bool(self.status_bits & PORT_STATUS_INITIALIZED)

    @property
    def enabled(self) -> bool:
        return bool(self.status_bits & PORT_STATUS_ENABLED)

    def apply(self, reading: HandleReading) -> None:
        """Update this handle in place from a decoded frame entry.

        Fields the reading does not carry keep their previous values.
        """
        self.sensor_status = reading.sensor_status
        if reading.rotation is not None:
            self.rotation = reading.rotation
        if reading.translation is not None:
            self.translation = reading.translation
        if reading.error is not None:
            self.error = reading.error
        if reading.port_status is not None:
            self.port_status = reading.port_status
        if reading.frame_number is not None:
            self.frame_number = reading.frame_number

    def copy(self) -> PortHandle:
        return replace(self)


@dataclass(frozen=True)
class HandleReading:
    """One handle entry decoded from a BX frame.

    Pose fields are None unless sensor_status is VALID; port_status and
    frame_number are None when sensor_status is DISABLED.
    """
    id: str
    sensor_status: SensorStatus
    rotation: Optional[Quaternion] = None
    translation: Optional[Vector3] = None
    error: Optional[float] = None
    port_status: Optional[str] = None
    frame_number: Optional[int] = None


@dataclass(frozen=True)
class SensorFrame:
    """A decoded BX reply.

    Attributes:
        timestamp: Host time (time.time()) when the frame was received
        start_sequence: Start sequence word as read
        reply_length: Reply length as announced in the header
        header_crc: Header CRC as read (not validated)
        readings: One entry per handle in frame order
        system_status: System status word
        crc: Trailing CRC as read (not validated)
    """
    timestamp: float
    start_sequence: int
    reply_length: int
    header_crc: int
    readings: Tuple[HandleReading, ...]
    system_status: int
    crc: int

    def reading_for(self, handle_id: str) -> Optional[HandleReading]:
        for reading in self.readings:
            if reading.id == handle_id:
                return reading
        return None


@dataclass(frozen=True)
class TrackingSample:
    """Registry snapshot taken right after a frame was applied.

    This is what polling returns and what streaming callbacks receive.
    """
    timestamp: float
    frame: SensorFrame
    handles: Tuple[PortHandle, ...]

    @property
    def translations(self) -> Tuple[Vector3, ...]:
        return tuple(h.translation for h in self.handles)

    @property
    def rotations(self) -> Tuple[Quaternion, ...]:
        return tuple(h.rotation for h in self.handles)

    @property
    def errors(self) -> Tuple[float, ...]:
        return tuple(h.error for h in self.handles)

    @property
    def frame_numbers(self) -> Tuple[int, ...]:
        return tuple(h.frame_number for h in self.handles)

    def handle(self, handle_id: str) -> Optional[PortHandle]:
        for h in self.handles:
            if h.id == handle_id:
                return h
        return None


@dataclass
class DeviceSession:
    """Driver-side view of the SCU state."""
    mode: DeviceMode = DeviceMode.UNINITIALIZED
    baud_rate: int = DEFAULT_BAUD_RATE
    command_format: CommandFormat = CommandFormat.SIMPLE


def quaternion_to_euler(q: Quaternion) -> Tuple[float, float, float]:
    """Convert a (w, x, y, z) quaternion to ZYX Euler angles.

    Returns:
        (yaw, pitch, roll) in radians, rotations about Z, Y and X
    """
    w, x, y, z = q
    norm = math.sqrt(w * w + x * x + y * y + z * z)
    if norm == 0.0:
        raise ValueError("Zero-length quaternion")
    w, x, y, z = w / norm, x / norm, y / norm, z / norm

    yaw = math.atan2(2.0 * (x * y + w * z), w * w + x * x - y * y - z * z)
    sin_pitch = max(-1.0, min(1.0, -2.0 * (x * z - w * y)))
    pitch = math.asin(sin_pitch)
    roll = math.atan2(2.0 * (y * z + w * x), w * w - x * x - y * y + z * z)
    return yaw, pitch, roll
