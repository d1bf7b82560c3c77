"""Exception types raised by the Aurora driver."""


class AuroraError(RuntimeError):
    """Base class for all driver errors."""
    pass


class TransportError(AuroraError):
    """Raised when the serial link is unusable (closed, unplugged, write failure).

    Fatal to the session: the device needs a full reset and re-init.
    """
    pass


class ProtocolTimeout(AuroraError):
    """Raised when no reply arrives within the configured timeout."""
    pass


class ProtocolFormatError(AuroraError):
    """Raised when a reply does not have the expected shape."""

    def __init__(self, message, reply=None):
        super().__init__(message)
        self.reply = reply


class TruncatedFrame(ProtocolFormatError):
    """Raised when a binary frame ends before all of its fields were read."""

    def __init__(self, message, expected: int = 0, received: int = 0):
        super().__init__(message)
        self.expected = expected
        self.received = received


class InvalidState(AuroraError):
    """Raised when an operation is not legal in the current device mode."""
    pass


class CommandFormatNotImplemented(AuroraError, NotImplementedError):
    """Raised when the CRC-framed command format is selected."""
    pass


class CommandError(AuroraError):
    """Raised by ``Reply.raise_for_error`` for an ``ERROR`` reply from the device."""

    def __init__(self, message, code=None):
        super().__init__(message)
        self.code = code  # two hex digits as sent by the SCU
