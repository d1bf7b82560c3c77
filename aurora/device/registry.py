"""Port handle registry.

Holds the port handles discovered on the SCU in discovery order, with an
id -> slot index for lookups, and drives their discovery / init / enable
lifecycle over the command channel.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Tuple

from ..models import HandleReading, PortHandle, PortHandleStatus, TrackingPriority
from ..protocol.replies import parse_port_handle_reply
from .channel import CommandChannel

logger = logging.getLogger(__name__)


class PortHandleRegistry:
    """Authoritative set of discovered port handles.

    Only ``discover_all`` changes which handles exist. Everything else
    mutates existing PortHandle records in place. Callers outside the driver
    get copies through ``snapshot()``.

    Device command replies to PINIT/PENA are not checked; the follow-up status
    refresh is the only feedback.
    """

    def __init__(self, channel: CommandChannel):
        self._channel = channel
        self._handles: List[PortHandle] = []
        self._index: Dict[str, int] = {}

    # --- Lookup ---

    def __len__(self) -> int:
        return len(self._handles)

    def __iter__(self) -> Iterator[PortHandle]:
        return iter(self._handles)

    def __getitem__(self, index: int) -> PortHandle:
        return self._handles[index]

    def index_of(self, handle_id: str) -> Optional[int]:
        return self._index.get(handle_id.upper())

    def get(self, handle_id: str) -> Optional[PortHandle]:
        index = self.index_of(handle_id)
        return None if index is None else self._handles[index]

    @property
    def ids(self) -> Tuple[str, ...]:
        return tuple(h.id for h in self._handles)

    def snapshot(self) -> Tuple[PortHandle, ...]:
        """Copies of all handles in discovery order."""
        return tuple(h.copy() for h in self._handles)

    def apply(self, reading: HandleReading) -> bool:
        """Apply a decoded frame entry to the matching handle.

        Returns:
            False if no handle with that id is registered
        """
        handle = self.get(reading.id)
        if handle is None:
            return False
        handle.apply(reading)
        return True

    def replace(self, entries: List[Tuple[str, str]]) -> None:
        """Replace the registry contents with fresh (id, status) pairs."""
        handles = [PortHandle(id=handle_id, status=status) for handle_id, status in entries]
        index = {h.id: i for i, h in enumerate(handles)}
        if len(index) != len(handles):
            logger.warning(f"Duplicate port handle ids in discovery: {[h.id for h in handles]}")
        self._handles = handles
        self._index = index

    # --- Lifecycle ---

    def discover_all(self) -> Tuple[PortHandle, ...]:
        """Query all port handles and replace the registry with them.

        Returns:
            Snapshot of the new registry

        Raises:
            ProtocolFormatError: if the reply is malformed; the registry is
                left unchanged
        """
        reply = self._channel.send_and_receive("PHSR", PortHandleStatus.ALL)
        entries = parse_port_handle_reply(reply.text)
        self.replace(entries)
        logger.info(f"Discovered {len(entries)} port handle(s): {', '.join(self.ids) or 'none'}")
        return self.snapshot()

    def refresh_statuses(self) -> None:
        """Re-query all port handles and update the status of known ones.

        Handles the SCU reports that were not discovered before are ignored.
        """
        reply = self._channel.send_and_receive("PHSR", PortHandleStatus.ALL)
        for handle_id, status in parse_port_handle_reply(reply.text):
            handle = self.get(handle_id)
            if handle is None:
                logger.debug(f"Status for undiscovered port handle {handle_id} ignored")
                continue
            handle.status = status

    def initialize(self, handle_id: str) -> None:
        self._channel.send_and_receive("PINIT", handle_id)

    def initialize_all(self) -> None:
        for handle in self._handles:
            self.initialize(handle.id)
        self.refresh_statuses()

    def enable(self, handle_id: str,
               priority: TrackingPriority = TrackingPriority.DYNAMIC) -> None:
        self._channel.send_and_receive("PENA", handle_id, priority)

    def enable_all(self, priority: TrackingPriority = TrackingPriority.DYNAMIC) -> None:
        for handle in self._handles:
            self.enable(handle.id, priority)
        self.refresh_statuses()
