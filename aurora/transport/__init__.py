"""Transport layer for the serial link to the Aurora SCU."""

from .base import Link
from .buffer import ReceiveBuffer
from .serial import SerialLink

__all__ = ["Link", "ReceiveBuffer", "SerialLink"]
