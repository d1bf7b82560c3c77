"""Aurora device facade.

Composes the link, command channel, port handle registry and acquisition
controller into the public driver interface.
"""
from __future__ import annotations

import logging
from typing import Optional, Tuple

from ..constants import DEFAULT_BAUD_RATE
from ..errors import TransportError
from ..models import (
    MISSING_SENSOR_ERROR,
    CommandFormat,
    DeviceMode,
    DeviceSession,
    PortHandle,
    SensorStatus,
    TrackingPriority,
    TrackingSample,
    quaternion_to_euler,
)
from ..protocol.commands import ApiCommands
from ..transport.base import Link
from ..transport.serial import REPLY_TIMEOUT, SerialLink
from .acquisition import AcquisitionController, SampleCallback, StreamingSession
from .channel import CommandChannel
from .registry import PortHandleRegistry

logger = logging.getLogger(__name__)


class AuroraDevice:
    """High-level interface to an NDI Aurora SCU.

    This class acts as a facade, managing:
    1. The serial link and command channel
    2. Port handle discovery and activation (PortHandleRegistry)
    3. Tracking mode, polling and streaming (AcquisitionController)

    Typical use:
        >>> device = AuroraDevice("/dev/ttyUSB0")
        >>> device.init()
        True
        >>> device.detect_port_handles()
        >>> device.init_port_handles()
        >>> device.enable_port_handles()
        >>> device.start_tracking(fast=True)
        >>> sample = device.update_sensor_data()
        >>> sample.translations
        ((12.5, -3.1, -250.0),)
        >>> device.stop_tracking()
        >>> device.close()

    Command replies are not checked for device errors (``ERROR<code>``);
    use ``device.api`` and ``Reply.raise_for_error()`` where that matters.
    """

    def __init__(self,
                 port: Optional[str] = None,
                 link: Optional[Link] = None,
                 timeout: float = REPLY_TIMEOUT,
                 command_format: CommandFormat = CommandFormat.SIMPLE):
        """Initialize the device driver. Nothing is opened until ``init()``.

        Args:
            port: Serial port path, used when no link is given
            link: Existing Link, or None to create a SerialLink on ``port``
            timeout: Seconds to wait for each reply
            command_format: Command framing; only SIMPLE is supported
        """
        if link is None:
            if port is None:
                raise ValueError("Either port or link is required")
            link = SerialLink(port, baudrate=DEFAULT_BAUD_RATE, timeout=timeout)

        self._link = link
        self._channel = CommandChannel(link, command_format=command_format, timeout=timeout)
        self._session = DeviceSession(command_format=command_format)
        self._registry = PortHandleRegistry(self._channel)
        self._acquisition = AcquisitionController(self._channel, self._registry, self._session)
        self._api = ApiCommands(self._channel, guard=self._acquisition.require_not_streaming)

    # --- Connection ---

    def init(self) -> bool:
        """Reset and initialize the SCU.

        Sequence: break reset, reopen at 9600 baud, clear input, negotiate the
        fastest baud rate, INIT. On success the device is in setup mode.

        Returns:
            True if initialization succeeded, False if no baud rate was accepted

        Raises:
            TransportError: if the port cannot be opened
        """
        if self._acquisition.mode is not DeviceMode.UNINITIALIZED:
            logger.warning("Re-initializing device")
            self._acquisition.reset()

        self._channel.reset_device()

        self._link.baudrate = DEFAULT_BAUD_RATE
        self._session.baud_rate = DEFAULT_BAUD_RATE
        self._link.open()
        self._link.reset_input_buffer()

        baud_rate = self._channel.negotiate_baud_rate()
        if baud_rate is None:
            logger.error("Device initialization failed: no baud rate accepted")
            return False
        self._session.baud_rate = baud_rate

        self._channel.send_and_receive("INIT")
        self._acquisition.enter_setup()
        return True

    def close(self) -> None:
        """Stop streaming and tracking if active, then close the link.

        Safe to call multiple times.
        """
        try:
            if self._acquisition.is_streaming:
                self._acquisition.stop_streaming()
            if self._acquisition.mode is DeviceMode.TRACKING and self._link.is_open():
                self._acquisition.stop_tracking()
        except TransportError as e:
            logger.warning(f"Could not stop tracking cleanly: {e}")
        finally:
            self._acquisition.reset()
            self._link.close()

    def __enter__(self) -> AuroraDevice:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # --- State ---

    @property
    def mode(self) -> DeviceMode:
        return self._acquisition.mode

    @property
    def baud_rate(self) -> int:
        return self._session.baud_rate

    @property
    def command_format(self) -> CommandFormat:
        return self._session.command_format

    @property
    def is_streaming(self) -> bool:
        return self._acquisition.is_streaming

    @property
    def port_handles(self) -> Tuple[PortHandle, ...]:
        return self._registry.snapshot()

    @property
    def n_port_handles(self) -> int:
        return len(self._registry)

    @property
    def api(self) -> ApiCommands:
        """Raw SCU command set.

        Replies are returned verbatim. TSTART/TSTOP/INIT sent through here
        do not change ``mode``; use the methods of this class for that.
        """
        return self._api

    def select_command_format(self, command_format: CommandFormat) -> None:
        """Select the command framing.

        Raises:
            CommandFormatNotImplemented: for CommandFormat.CRC_FRAMED
        """
        self._channel.command_format = command_format
        self._session.command_format = command_format

    # --- Port handles ---

    def detect_port_handles(self) -> Tuple[PortHandle, ...]:
        """Discover all port handles, replacing the known set."""
        self._acquisition.require_mode(DeviceMode.SETUP, "Port handle discovery")
        return self._registry.discover_all()

    def update_port_handle_statuses(self) -> None:
        """Refresh the status of already discovered port handles."""
        self._acquisition.require_not_streaming("Port handle status query")
        self._registry.refresh_statuses()

    def init_port_handle(self, handle_id: str) -> None:
        self._acquisition.require_mode(DeviceMode.SETUP, "Port handle initialization")
        self._registry.initialize(handle_id)

    def init_port_handles(self) -> None:
        """Initialize every discovered port handle and refresh statuses."""
        self._acquisition.require_mode(DeviceMode.SETUP, "Port handle initialization")
        self._registry.initialize_all()

    def enable_port_handle(self, handle_id: str,
                           priority: TrackingPriority = TrackingPriority.DYNAMIC) -> None:
        self._acquisition.require_mode(DeviceMode.SETUP, "Port handle enabling")
        self._registry.enable(handle_id, priority)

    def enable_port_handles(self, priority: TrackingPriority = TrackingPriority.DYNAMIC) -> None:
        """Enable every discovered port handle and refresh statuses."""
        self._acquisition.require_mode(DeviceMode.SETUP, "Port handle enabling")
        self._registry.enable_all(priority)

    # --- Tracking ---

    def start_tracking(self, fast: bool = False, reset_frame_counter: bool = True) -> None:
        self._acquisition.start_tracking(fast, reset_frame_counter)

    def stop_tracking(self) -> None:
        self._acquisition.stop_tracking()

    def update_sensor_data(self) -> TrackingSample:
        """Read the current measurement of all sensors (one BX poll)."""
        return self._acquisition.poll_once()

    def start_streaming(self, callback: SampleCallback) -> StreamingSession:
        return self._acquisition.start_streaming(callback)

    def stop_streaming(self) -> None:
        self._acquisition.stop_streaming()

    # --- Single sensor helpers (first port handle) ---

    def _first_handle(self) -> PortHandle:
        if not len(self._registry):
            raise IndexError("No port handles discovered")
        return self._registry[0].copy()

    def read_sensor_status(self) -> Optional[SensorStatus]:
        """Poll once and return the first sensor's status."""
        self.update_sensor_data()
        return self._first_handle().sensor_status

    def measure_tip_orientation(self) -> Tuple[float, float]:
        """Poll once and return the first sensor's pitch and RMS error.

        Returns:
            (pitch in radians, error)
        """
        self.update_sensor_data()
        handle = self._first_handle()
        _, pitch, _ = quaternion_to_euler(handle.rotation)
        return pitch, handle.error

    def get_error(self) -> float:
        """Poll once and return the first sensor's RMS error.

        Returns MISSING_SENSOR_ERROR when the sensor is missing or disabled.
        """
        self.update_sensor_data()
        handle = self._first_handle()
        if handle.sensor_status in (SensorStatus.MISSING, SensorStatus.DISABLED):
            return MISSING_SENSOR_ERROR
        return handle.error

    def is_sensor_available(self) -> bool:
        """True if tracking and the first sensor currently reports a valid sample."""
        if self.mode is not DeviceMode.TRACKING:
            return False
        return self.read_sensor_status() is SensorStatus.VALID
