"""Protocol layer: command serialization, reply parsing and frame decoding."""

from .commands import ApiCommands, CommandSerializer
from .frame import FrameDecoder
from .replies import BinaryReply, Reply, parse_port_handle_reply

__all__ = [
    "ApiCommands",
    "CommandSerializer",
    "FrameDecoder",
    "BinaryReply",
    "Reply",
    "parse_port_handle_reply",
]
