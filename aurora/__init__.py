"""NDI Aurora electromagnetic tracker driver."""

from .device import AuroraDevice
from .errors import (
    AuroraError,
    CommandError,
    CommandFormatNotImplemented,
    InvalidState,
    ProtocolFormatError,
    ProtocolTimeout,
    TransportError,
    TruncatedFrame,
)
from .models import (
    CommandFormat,
    DeviceMode,
    HandleReading,
    PortHandle,
    PortHandleStatus,
    SensorFrame,
    SensorStatus,
    TrackingPriority,
    TrackingSample,
)
from .transport import Link, SerialLink

__all__ = [
    "AuroraDevice",
    "AuroraError",
    "CommandError",
    "CommandFormatNotImplemented",
    "InvalidState",
    "ProtocolFormatError",
    "ProtocolTimeout",
    "TransportError",
    "TruncatedFrame",
    "CommandFormat",
    "DeviceMode",
    "HandleReading",
    "PortHandle",
    "PortHandleStatus",
    "SensorFrame",
    "SensorStatus",
    "TrackingPriority",
    "TrackingSample",
    "Link",
    "SerialLink",
]
