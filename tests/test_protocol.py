"""Unit tests for the protocol layer: command lines and ASCII replies."""

import unittest
from unittest.mock import Mock

from aurora.constants import (
    READ_OUT_OF_VOLUME_ALLOWED,
    READ_OUT_OF_VOLUME_NOT_ALLOWED,
    RESET_HARD,
    RESET_SOFT,
    TRACKING_OPTION_NONE,
)
from aurora.errors import CommandError, CommandFormatNotImplemented, ProtocolFormatError
from aurora.models import CommandFormat, PortHandleStatus, TrackingPriority
from aurora.protocol import ApiCommands, CommandSerializer, Reply, parse_port_handle_reply
from aurora.protocol.replies import is_hex


class TestCommandSerializer(unittest.TestCase):
    """Tests for command line formatting."""

    def test_no_params(self):
        """Test a bare command still carries the separating space."""
        self.assertEqual(CommandSerializer.serialize("INIT"), b"INIT \r")

    def test_params_concatenated(self):
        """Test parameters are joined without separators."""
        self.assertEqual(CommandSerializer.serialize("COMM", "6", "0", "0", "0", "0"),
                         b"COMM 60000\r")

    def test_enum_params_use_value(self):
        """Test enums are sent as their wire value."""
        self.assertEqual(CommandSerializer.serialize("PENA", "0A", TrackingPriority.DYNAMIC),
                         b"PENA 0AD\r")
        self.assertEqual(CommandSerializer.serialize("PHSR", PortHandleStatus.ALL),
                         b"PHSR 00\r")

    def test_int_param(self):
        """Test integer parameters are formatted as decimal text."""
        self.assertEqual(CommandSerializer.serialize("BEEP", 3), b"BEEP 3\r")

    def test_crc_framed_not_implemented(self):
        """Test the CRC framed format is refused."""
        with self.assertRaises(CommandFormatNotImplemented):
            CommandSerializer.serialize("INIT", command_format=CommandFormat.CRC_FRAMED)

    def test_not_implemented_is_also_builtin(self):
        """Test the error can be caught as NotImplementedError."""
        with self.assertRaises(NotImplementedError):
            CommandSerializer.serialize("INIT", command_format=CommandFormat.CRC_FRAMED)


class TestReply(unittest.TestCase):
    """Tests for ASCII reply classification."""

    def test_okay(self):
        """Test OKAY replies (with trailing CRC) are ok."""
        reply = Reply.from_bytes(b"OKAYA896")
        self.assertTrue(reply.ok)
        self.assertFalse(reply.is_error)
        self.assertIsNone(reply.error_code)
        self.assertIs(reply.raise_for_error(), reply)
        self.assertEqual(str(reply), "OKAYA896")

    def test_error(self):
        """Test ERROR replies expose their code and can be raised."""
        reply = Reply("ERROR0D4E3F")
        self.assertFalse(reply.ok)
        self.assertTrue(reply.is_error)
        self.assertEqual(reply.error_code, "0D")

        with self.assertRaises(CommandError) as ctx:
            reply.raise_for_error()
        self.assertEqual(ctx.exception.code, "0D")

    def test_other_text(self):
        """Test data replies are neither ok nor error."""
        reply = Reply("020A0010B031")
        self.assertFalse(reply.ok)
        self.assertFalse(reply.is_error)

    def test_non_ascii_replaced(self):
        """Test undecodable bytes do not raise."""
        reply = Reply.from_bytes(b"OK\xffAY")
        self.assertFalse(reply.ok)


class TestParsePortHandleReply(unittest.TestCase):
    """Tests for PHSR reply parsing."""

    def test_is_hex(self):
        """Test the hex digit check."""
        self.assertTrue(is_hex("0a1F"))
        self.assertFalse(is_hex(""))
        self.assertFalse(is_hex("0G"))

    def test_two_handles(self):
        """Test a two-handle reply parses in order."""
        self.assertEqual(parse_port_handle_reply("020A0010B031"),
                         [("0A", "001"), ("0B", "031")])

    def test_zero_handles(self):
        """Test an empty discovery."""
        self.assertEqual(parse_port_handle_reply("00"), [])

    def test_trailing_crc_ignored(self):
        """Test characters after the last entry are ignored."""
        self.assertEqual(parse_port_handle_reply("010A031BEEF"), [("0A", "031")])

    def test_lowercase_normalized(self):
        """Test ids and statuses are upper-cased."""
        self.assertEqual(parse_port_handle_reply("010a03f"), [("0A", "03F")])

    def test_bad_count(self):
        """Test a non-hex or missing count is rejected."""
        for text in ("", "0", "ZZ0A001"):
            with self.subTest(text=text):
                with self.assertRaises(ProtocolFormatError):
                    parse_port_handle_reply(text)

    def test_short_reply(self):
        """Test a reply shorter than its count announces."""
        with self.assertRaises(ProtocolFormatError) as ctx:
            parse_port_handle_reply("020A001")
        self.assertEqual(ctx.exception.reply, "020A001")

    def test_non_hex_entry(self):
        """Test a malformed entry is rejected."""
        with self.assertRaises(ProtocolFormatError):
            parse_port_handle_reply("010AXYZ")


class TestApiCommands(unittest.TestCase):
    """Tests for the pass-through command set."""

    def setUp(self):
        self.channel = Mock()
        self.channel.send_and_receive.return_value = Reply("OKAYA896")
        self.api = ApiCommands(self.channel)

    def test_pass_through(self):
        """Test commands forward their name and arguments unchanged."""
        self.api.pinit("0A")
        self.channel.send_and_receive.assert_called_with("PINIT", "0A")

        self.api.pena("0A", TrackingPriority.STATIC)
        self.channel.send_and_receive.assert_called_with("PENA", "0A", TrackingPriority.STATIC)

        self.api.comm("5", "0", "0", "0", "0")
        self.channel.send_and_receive.assert_called_with("COMM", "5", "0", "0", "0", "0")

    def test_pvwr_name(self):
        """Test PVWR is sent under its own name."""
        self.api.pvwr("0A", "0000", "00" * 64)
        self.assertEqual(self.channel.send_and_receive.call_args[0][0], "PVWR")

    def test_error_reply_returned(self):
        """Test ERROR replies are returned, not raised."""
        self.channel.send_and_receive.return_value = Reply("ERROR01")
        reply = self.api.init()
        self.assertTrue(reply.is_error)

    def test_bx_uses_binary_exchange(self):
        """Test BX goes through the binary reply path."""
        self.api.bx("0801")
        self.channel.send_and_receive_binary.assert_called_once_with("BX", "0801")
        self.channel.send_and_receive.assert_not_called()

    def test_option_defaults(self):
        """Test BX, RESET and TSTART default to their usual options."""
        self.api.bx()
        self.channel.send_and_receive_binary.assert_called_once_with("BX", READ_OUT_OF_VOLUME_ALLOWED)

        self.api.reset()
        self.channel.send_and_receive.assert_called_with("RESET", RESET_SOFT)
        self.api.reset(RESET_HARD)
        self.channel.send_and_receive.assert_called_with("RESET", RESET_HARD)

        self.api.tstart()
        self.channel.send_and_receive.assert_called_with("TSTART", TRACKING_OPTION_NONE)

    def test_bx_out_of_volume_not_allowed(self):
        """Test BX passes an explicit reply option through."""
        self.api.bx(READ_OUT_OF_VOLUME_NOT_ALLOWED)
        self.channel.send_and_receive_binary.assert_called_once_with("BX", "0001")

    def test_guard_blocks_calls(self):
        """Test the guard runs before every command and may forbid it."""
        guard = Mock(side_effect=RuntimeError("blocked"))
        api = ApiCommands(self.channel, guard=guard)

        with self.assertRaises(RuntimeError):
            api.apirev()
        with self.assertRaises(RuntimeError):
            api.bx("0801")
        self.channel.send_and_receive.assert_not_called()
        self.channel.send_and_receive_binary.assert_not_called()


if __name__ == '__main__':
    unittest.main()
