"""Reply parsing for the Aurora SCU protocol.

Pure functions and value types with no side effects.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..constants import (
    PHSR_COUNT_WIDTH,
    PHSR_ID_WIDTH,
    PHSR_STATUS_WIDTH,
    REPLY_ERROR,
    REPLY_OKAY,
)
from ..errors import CommandError, ProtocolFormatError

_HEX = re.compile(r'[0-9A-Fa-f]+\Z')


@dataclass(frozen=True)
class Reply:
    """One ASCII reply line, without the CR terminator.

    The SCU answers a failed command with ``ERROR<code>``. The driver does not
    raise on those by default; callers may inspect ``is_error`` or call
    ``raise_for_error()``.

    Attributes:
        text: Reply text as received
    """
    text: str

    @classmethod
    def from_bytes(cls, line: bytes) -> Reply:
        return cls(line.decode('ascii', errors='replace'))

    @property
    def ok(self) -> bool:
        return self.text.startswith(REPLY_OKAY)

    @property
    def is_error(self) -> bool:
        return self.text.startswith(REPLY_ERROR)

    @property
    def error_code(self) -> Optional[str]:
        """Two hex digit error code of an ERROR reply, None otherwise."""
        if not self.is_error:
            return None
        return self.text[len(REPLY_ERROR):len(REPLY_ERROR) + 2] or None

    def raise_for_error(self) -> Reply:
        if self.is_error:
            raise CommandError(f"SCU replied {self.text!r}", code=self.error_code)
        return self

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class BinaryReply:
    """A raw binary reply (e.g. to ``BX``) with its framing fields.

    CRCs are carried as read and never validated.
    """
    start_sequence: int
    reply_length: int
    header_crc: int
    body: bytes
    crc: int


def is_hex(text: str) -> bool:
    return bool(_HEX.match(text))


def parse_port_handle_reply(text: str) -> List[Tuple[str, str]]:
    """Parse a PHSR reply into (handle id, status) pairs.

    Format: two hex digit count, then per handle two hex digit id and three
    hex digit status, no delimiters. Trailing characters (the reply CRC) are
    ignored.

    Args:
        text: Reply text

    Returns:
        List of (id, status) in reply order, ids and statuses upper-cased

    Raises:
        ProtocolFormatError: if the count or any field is malformed, or the
            reply is shorter than the count announces

    Examples:
        >>> parse_port_handle_reply("020A0010B031")
        [('0A', '001'), ('0B', '031')]
    """
    count_text = text[:PHSR_COUNT_WIDTH]
    if len(count_text) < PHSR_COUNT_WIDTH or not is_hex(count_text):
        raise ProtocolFormatError(f"Bad port handle count in reply {text!r}", reply=text)
    count = int(count_text, 16)

    entry_width = PHSR_ID_WIDTH + PHSR_STATUS_WIDTH
    needed = PHSR_COUNT_WIDTH + count * entry_width
    if len(text) < needed:
        raise ProtocolFormatError(
            f"Reply announces {count} port handles but is {len(text)} chars long, need {needed}",
            reply=text,
        )

    entries = []
    for i in range(count):
        start = PHSR_COUNT_WIDTH + i * entry_width
        handle_id = text[start:start + PHSR_ID_WIDTH]
        status = text[start + PHSR_ID_WIDTH:start + entry_width]
        if not is_hex(handle_id) or not is_hex(status):
            raise ProtocolFormatError(
                f"Non-hex port handle entry {text[start:start + entry_width]!r}", reply=text
            )
        entries.append((handle_id.upper(), status.upper()))

    return entries
