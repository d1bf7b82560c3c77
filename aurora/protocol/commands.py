"""Command serialization and the Aurora API command vocabulary.

CommandSerializer turns a command name and its parameters into the wire
line. ApiCommands exposes every SCU command as a thin pass-through whose
reply is returned verbatim; only PHSR and BX are interpreted elsewhere.
"""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional, Union

from ..constants import (
    READ_OUT_OF_VOLUME_ALLOWED,
    RESET_SOFT,
    TERMINATOR,
    TRACKING_OPTION_NONE,
)
from ..errors import CommandFormatNotImplemented
from ..models import CommandFormat, PortHandleStatus, TrackingPriority
from .replies import BinaryReply, Reply

if TYPE_CHECKING:
    from ..device.channel import CommandChannel

Param = Union[str, int, Enum]


class CommandSerializer:
    """Serializer for SCU command lines."""

    @staticmethod
    def serialize(command: str, *params: Param,
                  command_format: CommandFormat = CommandFormat.SIMPLE) -> bytes:
        """Build the bytes for one command.

        Args:
            command: Command name, e.g. 'PHSR'
            *params: Parameters, concatenated without separators
            command_format: Only SIMPLE is supported

        Returns:
            ``b"<COMMAND> <params>\\r"``

        Raises:
            CommandFormatNotImplemented: for CRC_FRAMED

        Examples:
            >>> CommandSerializer.serialize('PENA', '0A', TrackingPriority.DYNAMIC)
            b'PENA 0AD\\r'
            >>> CommandSerializer.serialize('INIT')
            b'INIT \\r'
        """
        if command_format is not CommandFormat.SIMPLE:
            raise CommandFormatNotImplemented("CRC framed command format is not implemented")
        line = f"{command} {''.join(CommandSerializer._param(p) for p in params)}"
        return line.encode('ascii') + TERMINATOR

    @staticmethod
    def _param(value: Param) -> str:
        if isinstance(value, Enum):
            return str(value.value)
        return str(value)


class ApiCommands:
    """Pass-through access to the SCU command set.

    Arguments are not validated; they are formatted as given. Every method
    returns the reply as received (``Reply``), including ``ERROR`` replies.

    Args:
        channel: Command channel to send through
        guard: Called before each command, may raise to forbid the call
            (the device uses it to block commands while streaming)
    """

    def __init__(self, channel: CommandChannel, guard: Optional[Callable[[], None]] = None):
        self._channel = channel
        self._guard = guard

    def _call(self, command: str, *params: Param) -> Reply:
        if self._guard is not None:
            self._guard()
        return self._channel.send_and_receive(command, *params)

    def apirev(self) -> Reply:
        return self._call("APIREV")

    def beep(self, n_beeps: int) -> Reply:
        return self._call("BEEP", n_beeps)

    def bx(self, reply_option: str = READ_OUT_OF_VOLUME_ALLOWED) -> BinaryReply:
        if self._guard is not None:
            self._guard()
        return self._channel.send_and_receive_binary("BX", reply_option)

    def comm(self, baud_rate: str, data_bits: str, parity: str,
             stop_bits: str, hardware_handshaking: str) -> Reply:
        return self._call("COMM", baud_rate, data_bits, parity, stop_bits, hardware_handshaking)

    def echo(self, message: str) -> Reply:
        return self._call("ECHO", message)

    def get(self, user_parameter_name: str) -> Reply:
        return self._call("GET", user_parameter_name)

    def init(self) -> Reply:
        return self._call("INIT")

    def led(self, port_handle: str, led_number: str, state: str) -> Reply:
        return self._call("LED", port_handle, led_number, state)

    def pdis(self, port_handle: str) -> Reply:
        return self._call("PDIS", port_handle)

    def pena(self, port_handle: str,
             priority: Union[str, TrackingPriority] = TrackingPriority.DYNAMIC) -> Reply:
        return self._call("PENA", port_handle, priority)

    def phf(self, port_handle: str) -> Reply:
        return self._call("PHF", port_handle)

    def phinf(self, port_handle: str, reply_option: str) -> Reply:
        return self._call("PHINF", port_handle, reply_option)

    def phsr(self, reply_option: Union[str, PortHandleStatus] = PortHandleStatus.ALL) -> Reply:
        return self._call("PHSR", reply_option)

    def pinit(self, port_handle: str) -> Reply:
        return self._call("PINIT", port_handle)

    def pprd(self, port_handle: str, srom_device_address: str) -> Reply:
        return self._call("PPRD", port_handle, srom_device_address)

    def ppwr(self, port_handle: str, srom_device_address: str, srom_device_data: str) -> Reply:
        return self._call("PPWR", port_handle, srom_device_address, srom_device_data)

    def psel(self, port_handle: str, tool_srom_device_id: str) -> Reply:
        return self._call("PSEL", port_handle, tool_srom_device_id)

    def psout(self, port_handle: str, gpio_1_state: str, gpio_2_state: str,
              gpio_3_state: str) -> Reply:
        return self._call("PSOUT", port_handle, gpio_1_state, gpio_2_state, gpio_3_state)

    def psrch(self, port_handle: str) -> Reply:
        return self._call("PSRCH", port_handle)

    def purd(self, port_handle: str, user_srom_device_address: str) -> Reply:
        return self._call("PURD", port_handle, user_srom_device_address)

    def puwr(self, port_handle: str, user_srom_device_address: str,
             user_srom_device_data: str) -> Reply:
        return self._call("PUWR", port_handle, user_srom_device_address, user_srom_device_data)

    def pvwr(self, port_handle: str, start_address: str, tool_definition_data: str) -> Reply:
        return self._call("PVWR", port_handle, start_address, tool_definition_data)

    def reset(self, reset_option: str = RESET_SOFT) -> Reply:
        return self._call("RESET", reset_option)

    def sflist(self, reply_option: str) -> Reply:
        return self._call("SFLIST", reply_option)

    def tstart(self, reply_option: str = TRACKING_OPTION_NONE) -> Reply:
        return self._call("TSTART", reply_option)

    def tstop(self) -> Reply:
        return self._call("TSTOP")

    def ttcfg(self, port_handle: str) -> Reply:
        return self._call("TTCFG", port_handle)

    def tx(self, reply_option: str) -> Reply:
        return self._call("TX", reply_option)

    def ver(self, reply_option: str) -> Reply:
        return self._call("VER", reply_option)

    def vsel(self, volume_number: str) -> Reply:
        return self._call("VSEL", volume_number)
