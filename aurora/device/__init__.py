"""Device layer for the NDI Aurora SCU.

This module provides:
- Line-based command exchange, reset and baud negotiation (CommandChannel)
- Port handle discovery and lifecycle (PortHandleRegistry)
- Tracking mode, polling and streaming (AcquisitionController)
- The public driver facade (AuroraDevice)
"""

from .acquisition import AcquisitionController, StreamingSession
from .channel import CommandChannel
from .driver import AuroraDevice
from .registry import PortHandleRegistry

__all__ = [
    'AcquisitionController',
    'AuroraDevice',
    'CommandChannel',
    'PortHandleRegistry',
    'StreamingSession',
]
