"""Acquisition controller: tracking mode state machine, polling and streaming.

Polling sends one BX request and blocks until its frame is decoded.
Streaming keeps exactly one BX request outstanding: the link's receive
threshold wakes a worker thread, which decodes the frame, hands a
TrackingSample to the callback and then requests the next frame. Frame
handling and the callback run on that one worker thread, so they never
overlap.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from ..constants import (
    READ_OUT_OF_VOLUME_ALLOWED,
    TRACKING_OPTION_FAST_MODE,
    TRACKING_OPTION_FAST_MODE_RESET_COUNTER,
    TRACKING_OPTION_NONE,
    TRACKING_OPTION_RESET_COUNTER,
)
from ..errors import AuroraError, InvalidState, TransportError
from ..models import DeviceMode, DeviceSession, SensorFrame, TrackingSample
from ..protocol.frame import FrameDecoder
from .channel import CommandChannel
from .registry import PortHandleRegistry

logger = logging.getLogger(__name__)

STREAM_BYTE_THRESHOLD = 2  # bytes buffered before the stream worker wakes
WAKE_POLL_INTERVAL = 0.1  # seconds

SampleCallback = Callable[[TrackingSample], None]

# (fast, reset_frame_counter) -> TSTART option
_TRACKING_OPTIONS = {
    (False, False): TRACKING_OPTION_NONE,
    (True, False): TRACKING_OPTION_FAST_MODE,
    (False, True): TRACKING_OPTION_RESET_COUNTER,
    (True, True): TRACKING_OPTION_FAST_MODE_RESET_COUNTER,
}


class StreamingSession:
    """One run of continuous streaming, from start_streaming to stop_streaming.

    The session is armed on ``start()`` and disarmed by ``stop()``. After
    ``stop()`` returns (when called from any thread other than the worker) the
    worker has exited, so the callback will not run again and no BX request is
    left unanswered.
    """

    def __init__(self,
                 channel: CommandChannel,
                 registry: PortHandleRegistry,
                 decoder: FrameDecoder,
                 callback: SampleCallback,
                 reply_option: str = READ_OUT_OF_VOLUME_ALLOWED):
        self._channel = channel
        self._link = channel.link
        self._registry = registry
        self._decoder = decoder
        self._callback = callback
        self._reply_option = reply_option

        self._armed = False
        self._outstanding = False  # a BX request is waiting for its frame
        self._drained = False
        self._wake = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self.frames_delivered = 0
        self.frames_failed = 0

    @property
    def armed(self) -> bool:
        return self._armed

    def start(self) -> None:
        """Arm the receive handler and request the first frame.

        Raises:
            TransportError: if the first request cannot be sent
        """
        self._armed = True
        self._link.reset_input_buffer()
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name="AuroraStream"
        )
        self._thread.start()
        self._link.set_receive_callback(STREAM_BYTE_THRESHOLD, self._on_data)

        try:
            self._request_frame()
        except TransportError:
            self.stop()
            raise
        logger.info("Streaming started")

    def stop(self) -> None:
        """Disarm the session.

        Safe to call from inside the sample callback. In that case the link is
        drained here, before returning, and the worker exits right after the
        callback without touching the link again, so a new session may be
        started from the same callback.
        """
        self._armed = False
        self._link.clear_receive_callback()
        self._wake.set()

        if self._thread is threading.current_thread():
            self._drain()
        elif self._thread is not None:
            self._thread.join()
        logger.info(
            f"Streaming stopped ({self.frames_delivered} delivered, {self.frames_failed} failed)"
        )

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the worker to exit. Returns True if it has."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _on_data(self) -> None:
        # Runs on the link's reader thread: only signal the worker
        self._wake.set()

    def _run(self) -> None:
        logger.debug("Stream worker started")

        while self._armed:
            if not self._wake.wait(WAKE_POLL_INTERVAL):
                continue
            self._wake.clear()
            if not self._armed:
                break
            if self._link.in_waiting < STREAM_BYTE_THRESHOLD:
                continue
            self._handle_frame()

        self._drain()
        logger.debug("Stream worker exiting")

    def _handle_frame(self) -> None:
        sample = None
        try:
            with self._channel.transaction():
                frame = self._decoder.decode(self._channel.read, self._registry)
                sample = _make_sample(frame, self._registry)
        except AuroraError as e:
            self.frames_failed += 1
            logger.warning(f"Failed to read streamed frame: {e}")
        finally:
            self._outstanding = False

        if sample is not None and self._armed:
            self.frames_delivered += 1
            try:
                self._callback(sample)
            except Exception as e:
                logger.error(f"Error in streaming callback: {e}")

        if self._armed:
            with self._channel.transaction():
                self._link.reset_input_buffer()
                try:
                    self._request_frame()
                except TransportError as e:
                    logger.error(f"Cannot request next frame, streaming stops: {e}")
                    self._armed = False

    def _request_frame(self) -> None:
        # Set before sending: the reply may be handled before send() returns
        self._outstanding = True
        try:
            self._channel.send("BX", self._reply_option)
        except TransportError:
            self._outstanding = False
            raise

    def _drain(self) -> None:
        """Consume the reply to a request that was still outstanding at stop.

        Runs once per session.
        """
        with self._channel.transaction():
            if self._drained:
                return
            self._drained = True
            if self._outstanding:
                try:
                    self._decoder.decode(self._channel.read)
                except AuroraError as e:
                    logger.debug(f"Discarding outstanding frame failed: {e}")
                self._outstanding = False
            self._link.reset_input_buffer()


class AcquisitionController:
    """Owns the device mode and runs polling or streaming acquisition.

    States: SETUP <-> TRACKING, and within TRACKING the streaming sub-state
    IDLE <-> STREAMING. Mode only changes through start/stop tracking
    (and ``enter_setup`` after device initialization).
    """

    def __init__(self,
                 channel: CommandChannel,
                 registry: PortHandleRegistry,
                 session: Optional[DeviceSession] = None,
                 decoder: Optional[FrameDecoder] = None):
        self._channel = channel
        self._registry = registry
        self._session = session or DeviceSession()
        self._decoder = decoder or FrameDecoder()
        self._streaming: Optional[StreamingSession] = None

    @property
    def session(self) -> DeviceSession:
        return self._session

    @property
    def mode(self) -> DeviceMode:
        return self._session.mode

    @property
    def is_streaming(self) -> bool:
        return self._streaming is not None

    @property
    def streaming_session(self) -> Optional[StreamingSession]:
        return self._streaming

    # --- Guards ---

    def require_mode(self, mode: DeviceMode, action: str) -> None:
        if self._session.mode is not mode:
            raise InvalidState(
                f"{action} requires {mode.value} mode, device is in {self._session.mode.value} mode"
            )

    def require_not_streaming(self, action: str = "Command") -> None:
        if self._streaming is not None:
            raise InvalidState(f"{action} is not allowed while streaming")

    # --- Transitions ---

    def enter_setup(self) -> None:
        """Mark the device initialized (after reset, COMM and INIT)."""
        self._session.mode = DeviceMode.SETUP
        logger.info("Device in setup mode")

    def reset(self) -> None:
        """Forget the device state, e.g. after the link was closed."""
        if self._streaming is not None:
            self.stop_streaming()
        self._session.mode = DeviceMode.UNINITIALIZED

    def start_tracking(self, fast: bool = False, reset_frame_counter: bool = True) -> None:
        """Put the SCU into tracking mode.

        Args:
            fast: Also select fast tracking mode
            reset_frame_counter: Restart the device frame counter at zero

        Raises:
            InvalidState: if the device is not in setup mode
        """
        self.require_mode(DeviceMode.SETUP, "Start tracking")
        option = _TRACKING_OPTIONS[(bool(fast), bool(reset_frame_counter))]
        self._channel.send_and_receive("TSTART", option)
        self._session.mode = DeviceMode.TRACKING
        logger.info(f"Tracking started (fast={fast}, reset_frame_counter={reset_frame_counter})")

    def stop_tracking(self) -> None:
        """Stop streaming if needed and put the SCU back into setup mode."""
        self.require_mode(DeviceMode.TRACKING, "Stop tracking")
        if self._streaming is not None:
            self.stop_streaming()
        self._channel.send_and_receive("TSTOP")
        self._session.mode = DeviceMode.SETUP
        logger.info("Tracking stopped")

    # --- Acquisition ---

    def poll_once(self, reply_option: str = READ_OUT_OF_VOLUME_ALLOWED) -> TrackingSample:
        """Request and decode one frame.

        Args:
            reply_option: BX reply option; READ_OUT_OF_VOLUME_NOT_ALLOWED
                reports sensors outside the measurement volume as missing

        Returns:
            Registry snapshot after the frame was applied

        Raises:
            InvalidState: if not tracking, or streaming is active
            ProtocolTimeout: if no reply arrives
            TruncatedFrame: if the frame is cut short
        """
        self.require_mode(DeviceMode.TRACKING, "Reading sensor data")
        self.require_not_streaming("Polling")

        with self._channel.transaction():
            self._channel.link.reset_input_buffer()
            self._channel.send("BX", reply_option)
            frame = self._decoder.decode(self._channel.read, self._registry)
        return _make_sample(frame, self._registry)

    def start_streaming(self, callback: SampleCallback) -> StreamingSession:
        """Start continuous acquisition, delivering each sample to ``callback``.

        The callback runs on the stream worker thread and may call
        ``stop_streaming()`` itself.

        Raises:
            InvalidState: if not tracking, or already streaming
        """
        self.require_mode(DeviceMode.TRACKING, "Streaming")
        self.require_not_streaming("Starting a stream")

        session = StreamingSession(self._channel, self._registry, self._decoder, callback)
        self._streaming = session
        try:
            session.start()
        except Exception:
            self._streaming = None
            raise
        return session

    def stop_streaming(self) -> None:
        """Stop continuous acquisition. No callback runs after this returns."""
        session = self._streaming
        if session is None:
            logger.debug("stop_streaming called while not streaming")
            return
        self._streaming = None
        session.stop()


def _make_sample(frame: SensorFrame, registry: PortHandleRegistry) -> TrackingSample:
    return TrackingSample(timestamp=frame.timestamp, frame=frame, handles=registry.snapshot())
