"""Constants of the Aurora SCU command protocol (Aurora API Guide)."""
from __future__ import annotations

from typing import Dict, Tuple

# Line terminator for every command and ASCII reply
TERMINATOR = b'\r'

# Leading literal of a successful reply
REPLY_OKAY = "OKAY"
REPLY_ERROR = "ERROR"

# Start sequence of a binary (BX) reply, little-endian 0xA5C4
BINARY_START_SEQUENCE = 0xA5C4

# Sensor reading options for BX
READ_OUT_OF_VOLUME_NOT_ALLOWED = "0001"
READ_OUT_OF_VOLUME_ALLOWED = "0801"

# Link speed the SCU uses after power-up or reset
DEFAULT_BAUD_RATE = 9600

# Baud rate -> COMM code
BAUD_RATE_CODES: Dict[int, str] = {
    9600: "0",
    14400: "1",
    19200: "2",
    38400: "3",
    57600: "4",
    115200: "5",
    921600: "6",
    230400: "A",
}

# Order in which COMM candidates are tried
BAUD_RATE_PREFERENCE: Tuple[int, ...] = (
    921600, 230400, 115200, 57600, 38400, 19200, 14400, 9600,
)

# COMM framing fields
DATA_BITS_8 = "0"
PARITY_NONE = "0"
STOP_BITS_1 = "0"
HANDSHAKE_OFF = "0"

# Tracking start options
TRACKING_OPTION_NONE = ""
TRACKING_OPTION_FAST_MODE = "40"
TRACKING_OPTION_RESET_COUNTER = "80"
TRACKING_OPTION_FAST_MODE_RESET_COUNTER = "C0"

# Reset options
RESET_SOFT = "0"
RESET_HARD = "1"

# Bits of the 3-hex-digit port handle status reported by PHSR
PORT_STATUS_OCCUPIED = 0x01
PORT_STATUS_INITIALIZED = 0x10
PORT_STATUS_ENABLED = 0x20

# Width of the fields in a PHSR reply
PHSR_COUNT_WIDTH = 2
PHSR_ID_WIDTH = 2
PHSR_STATUS_WIDTH = 3
